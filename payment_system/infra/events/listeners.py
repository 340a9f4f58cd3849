import logging
from decimal import Decimal

from infrastructure.email import EmailException, EmailMessage
from infrastructure.events import get_event_bus


logger = logging.getLogger(__name__)


def _send(message: EmailMessage) -> None:
    from infrastructure.container import container

    try:
        container.email().send(message)
    except EmailException as e:
        logger.error(f"[LISTENER] E-mail '{message.subject}' failed: {e}")


def handle_payment_refunded(event_data):
    """Tell the buyer their refund is on the way."""
    from django.contrib.auth import get_user_model

    from payment_system.domain.models import PaymentTransaction

    try:
        payload = event_data.get("payload", {})
        transaction = PaymentTransaction.objects.filter(id=payload.get("transaction_id")).first()
        if not transaction:
            logger.warning(f"[LISTENER] Refund for unknown transaction {payload.get('transaction_id')}")
            return
        buyer = get_user_model().objects.filter(pk=transaction.buyer_id).first()
        if not buyer or not buyer.email:
            return

        amount = f"{Decimal(payload.get('amount') or '0'):.2f} {payload.get('currency', '')}"
        _send(
            EmailMessage(
                subject="Your refund has been processed",
                body=(
                    f"We have refunded {amount} to your original payment method.\n\n"
                    f"Reason: {payload.get('reason', '')}\n\n"
                    "Depending on your bank it can take a few business days to appear."
                ),
                to=[buyer.email],
                tags=["payment_refunded"],
            )
        )
    except Exception as e:
        logger.error(f"Error handling payment.refunded event: {e}", exc_info=True)


def handle_payment_refund_failed(event_data):
    payload = event_data.get("payload", {})
    logger.error(
        f"[LISTENER] Refund {payload.get('refund_id')} for order {payload.get('order_id')} failed: "
        f"{payload.get('error')}"
    )


def handle_payout_processed(event_data):
    """Let the seller know a payout was sent."""
    from sellers.domain.models import Store

    try:
        payload = event_data.get("payload", {})
        store = Store.objects.select_related("owner").filter(id=payload.get("seller_id")).first()
        if not store or not store.owner.email:
            return
        _send(
            EmailMessage(
                subject="A payout is on its way",
                body=f"We have sent {payload.get('amount')} {payload.get('currency')} to your payout account.",
                to=[store.owner.email],
                tags=["payout_processed"],
            )
        )
    except Exception as e:
        logger.error(f"Error handling payout.processed event: {e}", exc_info=True)


def handle_payout_failed(event_data):
    payload = event_data.get("payload", {})
    logger.error(
        f"[LISTENER] Payout {payload.get('payout_id')} for store {payload.get('seller_id')} failed "
        f"(reference {payload.get('error_reference')})"
    )


def register_payment_listeners():
    """Register all payment system event listeners."""
    event_bus = get_event_bus()
    event_bus.subscribe("payment.refunded", handle_payment_refunded)
    event_bus.subscribe("payment.refund_failed", handle_payment_refund_failed)
    event_bus.subscribe("payout.processed", handle_payout_processed)
    event_bus.subscribe("payout.failed", handle_payout_failed)
    logger.info("Payment event listeners registered")
