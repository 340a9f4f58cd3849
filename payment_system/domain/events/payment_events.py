"""Payment, refund and payout events published on the event bus."""

from dataclasses import dataclass

from infrastructure.events import DomainEvent


@dataclass
class PaymentSucceededEvent(DomainEvent):
    event_type: str = "payment.succeeded"


@dataclass
class PaymentFailedEvent(DomainEvent):
    event_type: str = "payment.failed"


@dataclass
class PaymentRefundedEvent(DomainEvent):
    event_type: str = "payment.refunded"


@dataclass
class PaymentRefundFailedEvent(DomainEvent):
    event_type: str = "payment.refund_failed"


@dataclass
class PayoutProcessedEvent(DomainEvent):
    event_type: str = "payout.processed"


@dataclass
class PayoutFailedEvent(DomainEvent):
    event_type: str = "payout.failed"


def transaction_payload(transaction, **extra) -> dict:
    payload = {
        "transaction_id": str(transaction.id),
        "buyer_id": str(transaction.buyer_id),
        "amount": str(transaction.amount),
        "currency": transaction.currency,
        "status": transaction.status,
        "external_reference": transaction.external_reference,
    }
    payload.update(extra)
    return payload


def refund_payload(refund, **extra) -> dict:
    payload = {
        "refund_id": str(refund.id),
        "order_id": str(refund.order_id),
        "transaction_id": str(refund.payment_transaction_id),
        "amount": str(refund.amount),
        "currency": refund.currency,
        "refund_type": refund.refund_type,
        "reason": refund.reason,
    }
    payload.update(extra)
    return payload


def payout_payload(payout, **extra) -> dict:
    payload = {
        "payout_id": str(payout.id),
        "seller_id": str(payout.seller_id),
        "amount": str(payout.amount),
        "currency": payout.currency,
        "status": payout.status,
    }
    payload.update(extra)
    return payload
