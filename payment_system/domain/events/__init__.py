from .payment_events import (
    PaymentFailedEvent,
    PaymentRefundedEvent,
    PaymentRefundFailedEvent,
    PaymentSucceededEvent,
    PayoutFailedEvent,
    PayoutProcessedEvent,
    payout_payload,
    refund_payload,
    transaction_payload,
)


__all__ = [
    "PaymentSucceededEvent",
    "PaymentFailedEvent",
    "PaymentRefundedEvent",
    "PaymentRefundFailedEvent",
    "PayoutProcessedEvent",
    "PayoutFailedEvent",
    "transaction_payload",
    "refund_payload",
    "payout_payload",
]
