import logging
from decimal import ROUND_DOWN, Decimal

from django.conf import settings
from django.db import transaction

from infrastructure.events import get_event_bus


logger = logging.getLogger(__name__)


def seller_allocations(order):
    """
    Per-store share of what the buyer paid.

    The order discount is spread over sub-orders in proportion to their
    totals; the last sub-order absorbs the rounding remainder so the shares
    add up to the order total.
    """
    sub_orders = list(order.sub_orders.order_by("sub_order_number"))
    gross = sum((sub_order.total_amount for sub_order in sub_orders), Decimal("0.00"))
    discount = order.discount_amount or Decimal("0.00")

    allocations = []
    remaining = order.total_amount
    for index, sub_order in enumerate(sub_orders):
        if index == len(sub_orders) - 1:
            amount = remaining
        else:
            share = (discount * sub_order.total_amount / gross) if gross else Decimal("0.00")
            amount = (sub_order.total_amount - share).quantize(Decimal("0.01"), rounding=ROUND_DOWN)
            remaining -= amount
        allocations.append({"seller_id": str(sub_order.store_id), "amount": amount, "sub_order": sub_order})
    return allocations


def _primary_category(sub_order):
    item = sub_order.items.select_related("product__category").first()
    if item and item.product and item.product.category_id:
        return item.product.category.name
    return None


def create_escrow_and_commission(order, payment_transaction_id):
    """Hold each seller's share in escrow and record the platform commission on it."""
    from infrastructure.container import container

    allocations = [
        allocation for allocation in seller_allocations(order) if allocation["amount"] > 0
    ]
    if not allocations:
        return

    currency = settings.PAYMENT_SETTINGS["CURRENCY"]
    with transaction.atomic():
        escrow = container.escrow_service().create_escrow_entries(
            payment_transaction_id=payment_transaction_id,
            order_id=order.id,
            allocations=[{"seller_id": a["seller_id"], "amount": a["amount"]} for a in allocations],
            currency=currency,
        )
        if not escrow.ok:
            logger.error(f"[LISTENER] Escrow creation failed for order {order.order_number}: {escrow.error_detail}")
            return

        for allocation in allocations:
            commission = container.commission_service().calculate_commission(
                payment_transaction_id=payment_transaction_id,
                order_id=order.id,
                seller_id=allocation["seller_id"],
                amount=allocation["amount"],
                category=_primary_category(allocation["sub_order"]),
            )
            if not commission.ok:
                logger.error(
                    f"[LISTENER] Commission failed for order {order.order_number}, "
                    f"store {allocation['seller_id']}: {commission.error_detail}"
                )


def _order_for_transaction(payload):
    from marketplace.ordering.domain.models import Order

    transaction_id = payload.get("transaction_id")
    order = Order.objects.filter(payment_transaction_id=transaction_id).first()
    if not order:
        logger.warning(f"[LISTENER] No order found for payment transaction {transaction_id}")
    return order


def handle_payment_succeeded(event_data):
    """Mark the order paid, then create escrow entries and commission records."""
    from infrastructure.container import container

    try:
        payload = event_data.get("payload", {})
        order = _order_for_transaction(payload)
        if not order:
            return

        result = container.order_service().update_order_status(order.id, is_payment_successful=True)
        if not result.ok:
            logger.warning(f"[LISTENER] Payment success not applied to {order.order_number}: {result.error_detail}")
            return

        create_escrow_and_commission(result.value, payload.get("transaction_id"))
        logger.info(f"[LISTENER] Order {order.order_number} paid")
    except Exception as e:
        logger.error(f"Error handling payment.succeeded event: {e}", exc_info=True)


def handle_payment_failed(event_data):
    from infrastructure.container import container

    try:
        payload = event_data.get("payload", {})
        order = _order_for_transaction(payload)
        if not order:
            return

        result = container.order_service().update_order_status(order.id, is_payment_successful=False)
        if not result.ok:
            logger.warning(f"[LISTENER] Payment failure not applied to {order.order_number}: {result.error_detail}")
            return
        logger.info(f"[LISTENER] Order {order.order_number} failed: {payload.get('error_message', '')}")
    except Exception as e:
        logger.error(f"Error handling payment.failed event: {e}", exc_info=True)


def handle_order_status_changed(event_data):
    """Send the shipping e-mail when a sub-order ships."""
    from infrastructure.container import container
    from marketplace.ordering.domain.models import SellerSubOrder

    try:
        payload = event_data.get("payload", {})
        if payload.get("new_status") != SellerSubOrder.STATUS_SHIPPED:
            return
        result = container.order_service().send_shipping_notification(payload.get("sub_order_id"))
        if not result.ok:
            sub_order_number = payload.get("sub_order_number")
            logger.error(f"[LISTENER] Shipping e-mail failed for {sub_order_number}: {result.error_detail}")
    except Exception as e:
        logger.error(f"Error handling order.status_changed event: {e}", exc_info=True)


def register_marketplace_listeners():
    """Register all marketplace event listeners."""
    event_bus = get_event_bus()
    event_bus.subscribe("payment.succeeded", handle_payment_succeeded)
    event_bus.subscribe("payment.failed", handle_payment_failed)
    event_bus.subscribe("order.status_changed", handle_order_status_changed)
    logger.info("Marketplace event listeners registered")
