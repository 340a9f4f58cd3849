"""
OrderService - Order Lifecycle Management

Creates orders (split per store into seller sub-orders), applies the payment
outcome, and drives sub-order fulfilment: status transitions, tracking,
per-item statuses, cancellations and notification e-mails.
"""

import csv
import io
import logging
from collections import OrderedDict
from decimal import ROUND_DOWN, Decimal
from typing import Any, Dict, List, Optional

from django.contrib.auth import get_user_model
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from infrastructure.email import EmailException, EmailMessage
from infrastructure.observability import add_span_attributes, tracer
from marketplace.domain.events import (
    OrderCancelledEvent,
    OrderPlacedEvent,
    OrderStatusChangedEvent,
    order_payload,
    sub_order_payload,
)
from marketplace.infra.observability.metrics import (
    order_value,
    orders_cancelled_total,
    orders_placed_total,
    sub_order_transitions_total,
)
from marketplace.ordering.domain.models import (
    Order,
    OrderItem,
    SellerSubOrder,
    SellerSubOrderItem,
    ShippingStatusHistory,
)
from sellers.domain.models import Store
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

User = get_user_model()
logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

DELIVERY_REQUIRED_FIELDS = (
    ("full_name", "Full name is required."),
    ("address_line1", "Address line 1 is required."),
    ("city", "City is required."),
    ("postal_code", "Postal code is required."),
    ("country", "Country is required."),
)

CARRIER_TRACKING_URLS = {
    "ups": "https://www.ups.com/track?tracknum={tracking}",
    "fedex": "https://www.fedex.com/fedextrack/?trknbr={tracking}",
    "usps": "https://tools.usps.com/go/TrackConfirmAction?tLabels={tracking}",
    "dhl": "https://www.dhl.com/en/express/tracking.html?AWB={tracking}",
}

CSV_COLUMNS = [
    "Sub-Order Number",
    "Order Number",
    "Creation Date",
    "Status",
    "Buyer Name",
    "Delivery Address Line 1",
    "Delivery Address Line 2",
    "City",
    "State",
    "Postal Code",
    "Country",
    "Phone",
    "Shipping Method",
    "Tracking Number",
    "Shipping Carrier",
    "Items",
    "Total Amount",
]

SUB_ORDER_STATUS_LABELS = dict(SellerSubOrder.STATUS_CHOICES)
ITEM_STATUS_LABELS = dict(SellerSubOrderItem.STATUS_CHOICES)


def tracking_url(carrier: str, tracking_number: str) -> Optional[str]:
    """Carrier tracking page for the well-known carriers, else None."""
    template = CARRIER_TRACKING_URLS.get((carrier or "").strip().lower())
    if not template or not tracking_number:
        return None
    return template.format(tracking=tracking_number)


def paginate(queryset, page: int, page_size: int) -> Dict[str, Any]:
    paginator = Paginator(queryset, page_size)
    page_obj = paginator.get_page(page)
    return {
        "results": list(page_obj.object_list),
        "count": paginator.count,
        "page": page_obj.number,
        "page_size": page_size,
        "num_pages": paginator.num_pages,
        "has_next": page_obj.has_next(),
        "has_previous": page_obj.has_previous(),
    }


def validate_filters(filters: Dict[str, Any], max_page_size: int = 100) -> List[str]:
    errors = []
    page = filters.get("page", 1)
    page_size = filters.get("page_size", 20)
    if page < 1:
        errors.append("Page number must be at least 1.")
    if page_size < 1 or page_size > max_page_size:
        errors.append(f"Page size must be between 1 and {max_page_size}.")
    from_date, to_date = filters.get("from_date"), filters.get("to_date")
    if from_date and to_date and from_date > to_date:
        errors.append("From date cannot be after to date.")
    return errors


def apply_date_filters(queryset, filters: Dict[str, Any]):
    if filters.get("statuses"):
        queryset = queryset.filter(status__in=filters["statuses"])
    if filters.get("from_date"):
        queryset = queryset.filter(created_at__date__gte=filters["from_date"])
    if filters.get("to_date"):
        queryset = queryset.filter(created_at__date__lte=filters["to_date"])
    return queryset


def split_shipping(shipping_total: Decimal, seller_count: int) -> List[Decimal]:
    """Split shipping evenly; the last sub-order absorbs the rounding remainder."""
    share = (shipping_total / seller_count).quantize(CENT, rounding=ROUND_DOWN)
    shares = [share] * seller_count
    shares[-1] = shipping_total - share * (seller_count - 1)
    return shares


class OrderService(BaseService):
    """
    Service for managing order lifecycle.
    """

    def __init__(self, catalog_service=None, email_service=None, event_bus=None, refund_service=None):
        super().__init__()
        if catalog_service is None:
            from marketplace.catalog.domain.services import CatalogService

            catalog_service = CatalogService()
        self.catalog_service = catalog_service
        self.email_service = email_service
        self.event_bus = event_bus
        self.refund_service = refund_service

    # Creation

    def _validate_order_input(self, buyer, payment_transaction_id, items, delivery_address) -> List[str]:
        errors = []
        if buyer is None:
            errors.append("Buyer ID is required.")
        if not payment_transaction_id:
            errors.append("Payment transaction ID is required.")
        if not items:
            errors.append("Order must contain at least one item.")
        else:
            for item in items:
                if not item.get("product_id") or not item.get("store_id"):
                    errors.append("Each item must reference a product and a store.")
                    break
                if (item.get("quantity") or 0) <= 0:
                    errors.append("Item quantity must be greater than zero.")
                    break

        if not delivery_address:
            errors.append("Delivery address is required.")
        else:
            for key, message in DELIVERY_REQUIRED_FIELDS:
                if not (delivery_address.get(key) or "").strip():
                    errors.append(message)
        return errors

    @BaseService.log_performance
    def create_order(
        self,
        buyer,
        payment_transaction_id,
        items: List[Dict[str, Any]],
        shipping_total: Decimal,
        delivery_address: Dict[str, str],
        payment_method_name: str = "",
        discount_amount: Decimal = Decimal("0.00"),
        promo_code: str = "",
        buyer_email: str = "",
        delivery_instructions: str = "",
    ) -> ServiceResult[Order]:
        """
        Create an order in ``new`` status and one sub-order per store.

        ``items`` are dicts with product_id, store_id, store_name,
        product_title, unit_price, quantity and optionally product_image_url
        and shipping_method_name. Sub-orders are numbered in the order their
        store first appears.
        """
        errors = self._validate_order_input(buyer, payment_transaction_id, items, delivery_address)
        if errors:
            return validation_err(errors)

        with tracer.start_as_current_span("order_create_transaction") as span:
            span.set_attribute("user.id", str(buyer.id))
            span.set_attribute("order.item_count", len(items))
            try:
                with transaction.atomic():
                    order = self._create_order_rows(
                        buyer,
                        payment_transaction_id,
                        items,
                        Decimal(shipping_total or 0),
                        delivery_address,
                        payment_method_name,
                        Decimal(discount_amount or 0),
                        promo_code,
                        buyer_email,
                        delivery_instructions,
                    )
            except Exception as e:
                self.logger.error(f"Error creating order for user {buyer.id}: {e}", exc_info=True)
                span.record_exception(e)
                orders_placed_total.labels(status="failure").inc()
                return service_err(ErrorCodes.INTERNAL_ERROR, "An error occurred while creating the order.")

            add_span_attributes(span, **{"order.id": order.id, "order.total": order.total_amount})

        orders_placed_total.labels(status="success").inc()
        order_value.observe(float(order.total_amount))
        OrderPlacedEvent(payload=order_payload(order, sub_order_count=order.sub_orders.count())).publish(
            self.event_bus
        )
        self.logger.info(f"Created order {order.order_number} for user {buyer.id}: total {order.total_amount}")
        return service_ok(order)

    def _create_order_rows(
        self,
        buyer,
        payment_transaction_id,
        items,
        shipping_total,
        delivery_address,
        payment_method_name,
        discount_amount,
        promo_code,
        buyer_email,
        delivery_instructions,
    ) -> Order:
        items_subtotal = sum((Decimal(item["unit_price"]) * item["quantity"] for item in items), Decimal("0.00"))

        order = Order.objects.create(
            buyer=buyer,
            payment_transaction_id=payment_transaction_id,
            payment_method_name=payment_method_name or "",
            items_subtotal=items_subtotal,
            shipping_total=shipping_total,
            discount_amount=discount_amount,
            total_amount=items_subtotal + shipping_total - discount_amount,
            promo_code=promo_code or "",
            delivery_full_name=delivery_address["full_name"].strip(),
            delivery_address_line1=delivery_address["address_line1"].strip(),
            delivery_address_line2=(delivery_address.get("address_line2") or "").strip(),
            delivery_city=delivery_address["city"].strip(),
            delivery_state=(delivery_address.get("state") or "").strip(),
            delivery_postal_code=delivery_address["postal_code"].strip(),
            delivery_country=delivery_address["country"].strip(),
            delivery_phone_number=(delivery_address.get("phone_number") or "").strip(),
            delivery_instructions=delivery_instructions or "",
            buyer_email=buyer_email or buyer.email,
        )

        groups: "OrderedDict[str, List[Dict]]" = OrderedDict()
        for item in items:
            groups.setdefault(str(item["store_id"]), []).append(item)
            OrderItem.objects.create(
                order=order,
                product_id=item["product_id"],
                store_id=item["store_id"],
                store_name=item.get("store_name", ""),
                product_title=item.get("product_title", ""),
                product_image_url=item.get("product_image_url") or "",
                unit_price=Decimal(item["unit_price"]),
                quantity=item["quantity"],
            )

        shipping_shares = split_shipping(shipping_total, len(groups))
        for index, (store_id, group) in enumerate(groups.items(), start=1):
            subtotal = sum((Decimal(item["unit_price"]) * item["quantity"] for item in group), Decimal("0.00"))
            shipping_cost = shipping_shares[index - 1]
            sub_order = SellerSubOrder.objects.create(
                order=order,
                store_id=store_id,
                store_name=group[0].get("store_name", ""),
                sub_order_number=f"{order.order_number}-S{index}",
                items_subtotal=subtotal,
                shipping_cost=shipping_cost,
                total_amount=subtotal + shipping_cost,
                shipping_method_name=group[0].get("shipping_method_name") or "",
            )
            SellerSubOrderItem.objects.bulk_create(
                [
                    SellerSubOrderItem(
                        sub_order=sub_order,
                        product_id=item["product_id"],
                        product_title=item.get("product_title", ""),
                        product_image_url=item.get("product_image_url") or "",
                        unit_price=Decimal(item["unit_price"]),
                        quantity=item["quantity"],
                    )
                    for item in group
                ]
            )
            ShippingStatusHistory.objects.create(
                sub_order=sub_order, previous_status="", new_status=sub_order.status, notes="Order created."
            )
        return order

    # Payment outcome

    @BaseService.log_performance
    @transaction.atomic
    def update_order_status(self, order_id, is_payment_successful: bool) -> ServiceResult[Order]:
        """Mark the order and its sub-orders paid or failed. Failed orders get their stock back."""
        order = Order.objects.select_for_update().select_related("buyer").filter(id=order_id).first()
        if not order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found.")
        if order.status != Order.STATUS_NEW:
            return service_err(
                ErrorCodes.INVALID_STATE,
                f"Cannot process payment for order in status '{order.get_status_display()}'. "
                "Order must be in 'New' status.",
            )

        now = timezone.now()
        if is_payment_successful:
            order.status, order.paid_at = Order.STATUS_PAID, now
            order.save(update_fields=["status", "paid_at", "updated_at"])
            for sub_order in order.sub_orders.select_for_update():
                sub_order.status, sub_order.paid_at = SellerSubOrder.STATUS_PAID, now
                sub_order.save(update_fields=["status", "paid_at", "updated_at"])
                self._record_history(sub_order, SellerSubOrder.STATUS_NEW, notes="Payment confirmed.")
            self.send_order_confirmation(order)
        else:
            order.status, order.failed_at = Order.STATUS_FAILED, now
            order.save(update_fields=["status", "failed_at", "updated_at"])
            for sub_order in order.sub_orders.select_for_update():
                sub_order.status, sub_order.failed_at = SellerSubOrder.STATUS_FAILED, now
                sub_order.save(update_fields=["status", "failed_at", "updated_at"])
                self._record_history(sub_order, SellerSubOrder.STATUS_NEW, notes="Payment failed.")
            self._restore_stock(order.items.all())

        self.logger.info(f"Order {order.order_number} payment outcome applied: {order.status}")
        return service_ok(order)

    def _restore_stock(self, items) -> None:
        for item in items:
            if not item.product_id:
                continue
            result = self.catalog_service.restore_stock(item.product_id, item.quantity)
            if not result.ok:
                self.logger.error(f"Failed to restore stock for product {item.product_id}: {result.error_detail}")

    def _record_history(self, sub_order, previous_status: str, changed_by=None, notes: str = ""):
        ShippingStatusHistory.objects.create(
            sub_order=sub_order,
            previous_status=previous_status,
            new_status=sub_order.status,
            changed_by=changed_by,
            tracking_number=sub_order.tracking_number,
            shipping_carrier=sub_order.shipping_carrier,
            notes=notes,
        )

    # Buyer queries

    def _order_queryset(self):
        return Order.objects.select_related("buyer").prefetch_related("items", "sub_orders__items")

    @BaseService.log_performance
    def get_order(self, order_id, buyer) -> ServiceResult[Order]:
        order = self._order_queryset().filter(id=order_id, buyer_id=buyer.id).first()
        if not order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found.")
        return service_ok(order)

    @BaseService.log_performance
    def get_order_by_transaction(self, payment_transaction_id, buyer=None) -> ServiceResult[Order]:
        queryset = self._order_queryset().filter(payment_transaction_id=payment_transaction_id)
        if buyer is not None:
            queryset = queryset.filter(buyer_id=buyer.id)
        order = queryset.first()
        if not order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found.")
        return service_ok(order)

    @BaseService.log_performance
    def get_orders_for_buyer(self, buyer) -> ServiceResult[List[Order]]:
        return service_ok(list(self._order_queryset().filter(buyer_id=buyer.id)))

    @BaseService.log_performance
    def get_filtered_orders_for_buyer(self, buyer, filters: Optional[Dict[str, Any]] = None) -> ServiceResult[Dict]:
        """
        Filters: ``statuses`` (list), ``from_date``/``to_date`` (dates),
        ``store_id``, ``page`` and ``page_size`` (1..100).
        """
        filters = filters or {}
        errors = validate_filters(filters)
        if errors:
            return validation_err(errors)

        queryset = apply_date_filters(self._order_queryset().filter(buyer_id=buyer.id), filters)
        if filters.get("store_id"):
            queryset = queryset.filter(sub_orders__store_id=filters["store_id"]).distinct()
        page = paginate(queryset.order_by("-created_at"), filters.get("page", 1), filters.get("page_size", 20))
        return service_ok(page)

    # Seller queries

    def _sub_order_queryset(self):
        return SellerSubOrder.objects.select_related("order", "order__buyer", "store").prefetch_related("items")

    def _seller_sub_order(self, sub_order_id, store_id, lock: bool = False):
        queryset = self._sub_order_queryset()
        if lock:
            queryset = SellerSubOrder.objects.select_for_update().select_related("order")
        return queryset.filter(id=sub_order_id, store_id=store_id).first()

    @BaseService.log_performance
    def get_seller_sub_orders(self, store_id) -> ServiceResult[List[SellerSubOrder]]:
        return service_ok(list(self._sub_order_queryset().filter(store_id=store_id)))

    @BaseService.log_performance
    def get_seller_sub_order(self, sub_order_id, store_id) -> ServiceResult[SellerSubOrder]:
        sub_order = self._seller_sub_order(sub_order_id, store_id)
        if not sub_order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found.")
        return service_ok(sub_order)

    def _filtered_sub_orders(self, store_id, filters: Dict[str, Any]):
        queryset = apply_date_filters(self._sub_order_queryset().filter(store_id=store_id), filters)
        if filters.get("search"):
            queryset = queryset.filter(sub_order_number__icontains=filters["search"].strip())
        return queryset.order_by("-created_at")

    @BaseService.log_performance
    def get_filtered_seller_sub_orders(self, store_id, filters: Optional[Dict[str, Any]] = None) -> ServiceResult[Dict]:
        filters = filters or {}
        errors = validate_filters(filters)
        if errors:
            return validation_err(errors)
        queryset = self._filtered_sub_orders(store_id, filters)
        return service_ok(paginate(queryset, filters.get("page", 1), filters.get("page_size", 20)))

    @BaseService.log_performance
    def export_seller_sub_orders_csv(self, store_id, filters: Optional[Dict[str, Any]] = None) -> ServiceResult[Dict]:
        """Render the filtered sub-orders as CSV. Returns ``content`` (bytes) and ``filename``."""
        filters = dict(filters or {})
        filters.setdefault("page_size", 10000)
        errors = validate_filters(filters, max_page_size=10000)
        if errors:
            return validation_err(errors)

        page = paginate(self._filtered_sub_orders(store_id, filters), filters.get("page", 1), filters["page_size"])

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_COLUMNS)
        for sub_order in page["results"]:
            order = sub_order.order
            writer.writerow(
                [
                    sub_order.sub_order_number,
                    order.order_number,
                    sub_order.created_at.strftime("%Y-%m-%d %H:%M:%S"),
                    sub_order.get_status_display(),
                    order.delivery_full_name,
                    order.delivery_address_line1,
                    order.delivery_address_line2,
                    order.delivery_city,
                    order.delivery_state,
                    order.delivery_postal_code,
                    order.delivery_country,
                    order.delivery_phone_number,
                    sub_order.shipping_method_name,
                    sub_order.tracking_number,
                    sub_order.shipping_carrier,
                    "; ".join(f"{item.product_title} x{item.quantity}" for item in sub_order.items.all()),
                    f"{sub_order.total_amount:.2f}",
                ]
            )

        filename = f"sub_orders_{timezone.now():%Y%m%d_%H%M%S}.csv"
        self.logger.info(f"Exported {len(page['results'])} sub-orders for store {store_id}")
        return service_ok({"content": buffer.getvalue().encode("utf-8"), "filename": filename})

    # Fulfilment

    @BaseService.log_performance
    @transaction.atomic
    def update_seller_sub_order_status(
        self,
        sub_order_id,
        store_id,
        new_status: str,
        tracking_number: str = "",
        shipping_carrier: str = "",
        changed_by=None,
        notes: str = "",
    ) -> ServiceResult[SellerSubOrder]:
        sub_order = self._seller_sub_order(sub_order_id, store_id, lock=True)
        if not sub_order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found.")
        if new_status not in SUB_ORDER_STATUS_LABELS:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Invalid status '{new_status}'.")

        previous_status = sub_order.status
        if not sub_order.can_transition_to(new_status):
            return service_err(
                ErrorCodes.INVALID_TRANSITION,
                f"Cannot transition from {SUB_ORDER_STATUS_LABELS[previous_status]} "
                f"to {SUB_ORDER_STATUS_LABELS[new_status]}.",
            )

        now = timezone.now()
        sub_order.status = new_status
        items = sub_order.items.all()

        if new_status == SellerSubOrder.STATUS_PAID:
            sub_order.paid_at = now
        elif new_status == SellerSubOrder.STATUS_PREPARING:
            items.filter(status=SellerSubOrderItem.STATUS_NEW).update(
                status=SellerSubOrderItem.STATUS_PREPARING, updated_at=now
            )
        elif new_status == SellerSubOrder.STATUS_SHIPPED:
            if tracking_number:
                sub_order.tracking_number = tracking_number.strip()
            if shipping_carrier:
                sub_order.shipping_carrier = shipping_carrier.strip()
            sub_order.shipped_at = now
            items.exclude(status=SellerSubOrderItem.STATUS_CANCELLED).update(
                status=SellerSubOrderItem.STATUS_SHIPPED, shipped_at=now, updated_at=now
            )
        elif new_status == SellerSubOrder.STATUS_DELIVERED:
            sub_order.delivered_at = now
            items.filter(status=SellerSubOrderItem.STATUS_SHIPPED).update(
                status=SellerSubOrderItem.STATUS_DELIVERED, delivered_at=now, updated_at=now
            )
        elif new_status == SellerSubOrder.STATUS_CANCELLED:
            sub_order.cancelled_at = now
            open_items = list(items.exclude(status=SellerSubOrderItem.STATUS_CANCELLED))
            self._restore_stock(open_items)
            items.exclude(status=SellerSubOrderItem.STATUS_CANCELLED).update(
                status=SellerSubOrderItem.STATUS_CANCELLED, cancelled_at=now, updated_at=now
            )
        elif new_status == SellerSubOrder.STATUS_REFUNDED:
            sub_order.refunded_at = now

        sub_order.save()
        self._record_history(sub_order, previous_status, changed_by=changed_by, notes=notes)
        sub_order_transitions_total.labels(status=new_status).inc()

        if new_status == SellerSubOrder.STATUS_REFUNDED:
            self._refund_parent_when_complete(sub_order.order, now)

        OrderStatusChangedEvent(payload=sub_order_payload(sub_order, previous_status)).publish(self.event_bus)
        self.logger.info(f"Sub-order {sub_order.sub_order_number}: {previous_status} -> {new_status}")
        return service_ok(sub_order)

    def _refund_parent_when_complete(self, order: Order, now) -> None:
        if order.sub_orders.exclude(status=SellerSubOrder.STATUS_REFUNDED).exists():
            return
        order.status, order.refunded_at = Order.STATUS_REFUNDED, now
        order.save(update_fields=["status", "refunded_at", "updated_at"])
        self.logger.info(f"All sub-orders refunded, order {order.order_number} marked refunded")

    @BaseService.log_performance
    @transaction.atomic
    def update_tracking_info(
        self, sub_order_id, store_id, tracking_number: str, shipping_carrier: str = "", changed_by=None
    ) -> ServiceResult[SellerSubOrder]:
        sub_order = self._seller_sub_order(sub_order_id, store_id, lock=True)
        if not sub_order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found.")
        if sub_order.status != SellerSubOrder.STATUS_SHIPPED:
            return service_err(
                ErrorCodes.INVALID_STATE, "Tracking information can only be updated for shipped orders."
            )
        if not (tracking_number or "").strip():
            return service_err(ErrorCodes.VALIDATION_ERROR, "Tracking number is required.")

        sub_order.tracking_number = tracking_number.strip()
        sub_order.shipping_carrier = (shipping_carrier or "").strip()
        sub_order.save(update_fields=["tracking_number", "shipping_carrier", "updated_at"])
        self._record_history(
            sub_order, SellerSubOrder.STATUS_SHIPPED, changed_by=changed_by, notes="Tracking information updated."
        )
        return service_ok(sub_order)

    @BaseService.log_performance
    @transaction.atomic
    def update_sub_order_item_statuses(
        self, sub_order_id, store_id, updates: List[Dict[str, Any]], changed_by=None
    ) -> ServiceResult[SellerSubOrder]:
        """
        Apply per-item status changes, then derive the sub-order status:
        all items cancelled gives cancelled, all remaining items delivered
        gives delivered, any shipped or delivered item gives shipped and any
        preparing item gives preparing.
        """
        if not updates:
            return service_err(ErrorCodes.VALIDATION_ERROR, "At least one item update is required.")
        if any(not update.get("item_id") for update in updates):
            return service_err(ErrorCodes.VALIDATION_ERROR, "Item ID is required for each update.")

        sub_order = self._seller_sub_order(sub_order_id, store_id, lock=True)
        if not sub_order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found.")
        if sub_order.status not in (SellerSubOrder.STATUS_PAID, SellerSubOrder.STATUS_PREPARING):
            return service_err(
                ErrorCodes.INVALID_STATE,
                "Item statuses can only be updated when sub-order is in Paid or Preparing status.",
            )

        items = {str(item.id): item for item in sub_order.items.select_for_update()}
        now = timezone.now()
        for update in updates:
            item = items.get(str(update["item_id"]))
            if not item:
                return service_err(ErrorCodes.NOT_FOUND, f"Item {update['item_id']} not found in sub-order.")
            new_status = update.get("status")
            if new_status not in SellerSubOrderItem.ALLOWED_TRANSITIONS.get(item.status, ()):
                return service_err(
                    ErrorCodes.INVALID_TRANSITION,
                    f"Cannot transition item from {ITEM_STATUS_LABELS.get(item.status, item.status)} "
                    f"to {ITEM_STATUS_LABELS.get(new_status, new_status)}.",
                )
            item.status = new_status
            if new_status == SellerSubOrderItem.STATUS_SHIPPED:
                item.shipped_at = now
            elif new_status == SellerSubOrderItem.STATUS_DELIVERED:
                item.delivered_at = now
            elif new_status == SellerSubOrderItem.STATUS_CANCELLED:
                item.cancelled_at = now
                self._restore_stock([item])
            item.save()

        previous_status = sub_order.status
        derived = self._derive_sub_order_status([item.status for item in items.values()], previous_status)
        if derived != previous_status:
            sub_order.status = derived
            if derived == SellerSubOrder.STATUS_SHIPPED:
                sub_order.shipped_at = now
            elif derived == SellerSubOrder.STATUS_DELIVERED:
                sub_order.delivered_at = now
            elif derived == SellerSubOrder.STATUS_CANCELLED:
                sub_order.cancelled_at = now
            sub_order.save()
            self._record_history(sub_order, previous_status, changed_by=changed_by, notes="Updated from item statuses.")
            sub_order_transitions_total.labels(status=derived).inc()
            OrderStatusChangedEvent(payload=sub_order_payload(sub_order, previous_status)).publish(self.event_bus)

        return service_ok(sub_order)

    @staticmethod
    def _derive_sub_order_status(statuses: List[str], current: str) -> str:
        if all(status == SellerSubOrderItem.STATUS_CANCELLED for status in statuses):
            return SellerSubOrder.STATUS_CANCELLED
        remaining = [status for status in statuses if status != SellerSubOrderItem.STATUS_CANCELLED]
        if all(status == SellerSubOrderItem.STATUS_DELIVERED for status in remaining):
            return SellerSubOrder.STATUS_DELIVERED
        in_transit = (SellerSubOrderItem.STATUS_SHIPPED, SellerSubOrderItem.STATUS_DELIVERED)
        if any(status in in_transit for status in remaining):
            return SellerSubOrder.STATUS_SHIPPED
        if any(status == SellerSubOrderItem.STATUS_PREPARING for status in remaining):
            return SellerSubOrder.STATUS_PREPARING
        return current

    @BaseService.log_performance
    def calculate_cancelled_items_refund(self, sub_order_id, store_id) -> ServiceResult[Decimal]:
        sub_order = self._seller_sub_order(sub_order_id, store_id)
        if not sub_order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found.")
        cancelled = sub_order.items.filter(status=SellerSubOrderItem.STATUS_CANCELLED)
        return service_ok(sum((item.unit_price * item.quantity for item in cancelled), Decimal("0.00")))

    def get_shipping_status_history(self, sub_order_id) -> ServiceResult[List[ShippingStatusHistory]]:
        return service_ok(
            list(ShippingStatusHistory.objects.filter(sub_order_id=sub_order_id).select_related("changed_by"))
        )

    # Admin

    @BaseService.log_performance
    def get_admin_orders(self, filters: Optional[Dict[str, Any]] = None) -> ServiceResult[Dict]:
        """Every order. Extra filters: ``store_id`` and ``search`` (order number or buyer e-mail)."""
        filters = filters or {}
        errors = validate_filters(filters)
        if errors:
            return validation_err(errors)

        queryset = apply_date_filters(self._order_queryset(), filters)
        if filters.get("store_id"):
            queryset = queryset.filter(sub_orders__store_id=filters["store_id"]).distinct()
        if filters.get("search"):
            term = filters["search"].strip()
            queryset = queryset.filter(Q(order_number__icontains=term) | Q(buyer_email__icontains=term))
        page = paginate(queryset.order_by("-created_at"), filters.get("page", 1), filters.get("page_size", 20))
        return service_ok(page)

    @BaseService.log_performance
    def get_order_for_admin(self, order_id) -> ServiceResult[Order]:
        order = self._order_queryset().filter(id=order_id).first()
        if not order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found.")
        return service_ok(order)

    # Cancellation

    @BaseService.log_performance
    @transaction.atomic
    def cancel_order(self, order_id, buyer, reason: str = "") -> ServiceResult[Order]:
        """
        Cancel an order that no seller has started preparing.

        Paid orders are refunded in full before anything else changes; a
        failed refund leaves the order untouched.
        """
        order = Order.objects.select_for_update().filter(id=order_id, buyer_id=buyer.id).first()
        if not order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Order not found.")
        if order.status not in (Order.STATUS_NEW, Order.STATUS_PAID):
            return service_err(
                ErrorCodes.INVALID_STATE, f"Cannot cancel order in status '{order.get_status_display()}'."
            )

        sub_orders = list(order.sub_orders.select_for_update())
        cancellable = (SellerSubOrder.STATUS_NEW, SellerSubOrder.STATUS_PAID, SellerSubOrder.STATUS_CANCELLED)
        if any(sub_order.status not in cancellable for sub_order in sub_orders):
            return service_err(
                ErrorCodes.INVALID_STATE,
                "This order can no longer be cancelled because a seller has already started processing it.",
            )

        was_paid = order.status == Order.STATUS_PAID
        now = timezone.now()
        if was_paid and order.payment_transaction_id:
            if self.refund_service is None:
                return service_err(ErrorCodes.INTERNAL_ERROR, "Refunds are not available.")
            refund = self.refund_service.process_full_refund(
                order_id=order.id,
                payment_transaction_id=order.payment_transaction_id,
                reason=reason or "Order cancelled by buyer.",
                initiated_by_user_id=buyer.id,
                initiated_by_role="buyer",
                audit_note=f"Order cancellation: {order.order_number}",
            )
            if not refund.ok:
                return refund

        open_items = []
        for sub_order in sub_orders:
            if sub_order.status == SellerSubOrder.STATUS_CANCELLED:
                continue
            previous_status = sub_order.status
            sub_order.status, sub_order.cancelled_at = SellerSubOrder.STATUS_CANCELLED, now
            sub_order.save(update_fields=["status", "cancelled_at", "updated_at"])
            open_sub_order_items = sub_order.items.exclude(status=SellerSubOrderItem.STATUS_CANCELLED)
            open_items.extend(open_sub_order_items)
            open_sub_order_items.update(
                status=SellerSubOrderItem.STATUS_CANCELLED, cancelled_at=now, updated_at=now
            )
            self._record_history(sub_order, previous_status, changed_by=buyer, notes="Cancelled by buyer.")
            sub_order_transitions_total.labels(status=SellerSubOrder.STATUS_CANCELLED).inc()

        self._restore_stock(open_items)

        order.status = Order.STATUS_CANCELLED
        order.cancelled_at = now
        order.cancellation_reason = reason or ""
        fields = ["status", "cancelled_at", "cancellation_reason", "updated_at"]
        if was_paid:
            order.refunded_at = now
            fields.append("refunded_at")
        order.save(update_fields=fields)

        orders_cancelled_total.inc()
        OrderCancelledEvent(payload=order_payload(order, reason=reason or "", was_paid=was_paid)).publish(
            self.event_bus
        )
        self.logger.info(f"Cancelled order {order.order_number} by user {buyer.id}")
        return service_ok(order)

    # Notifications

    def _send(self, message: EmailMessage) -> bool:
        if not self.email_service:
            return False
        try:
            return self.email_service.send(message)
        except EmailException as e:
            self.logger.error(f"Order e-mail '{message.subject}' failed: {e}")
            return False

    def send_order_confirmation(self, order: Order) -> bool:
        lines = [f"Thank you for your order {order.order_number}.", ""]
        for item in order.items.all():
            lines.append(f"- {item.product_title} x{item.quantity}: {item.total_price:.2f}")
        lines += [
            "",
            f"Items: {order.items_subtotal:.2f}",
            f"Shipping: {order.shipping_total:.2f}",
        ]
        if order.discount_amount:
            lines.append(f"Discount: -{order.discount_amount:.2f}")
        lines += [
            f"Total: {order.total_amount:.2f}",
            "",
            "Delivering to:",
            order.delivery_full_name,
            order.delivery_address_line1,
            f"{order.delivery_postal_code} {order.delivery_city}",
            order.delivery_country,
        ]
        return self._send(
            EmailMessage(
                subject=f"Order Confirmation - {order.order_number}",
                body="\n".join(lines),
                to=[order.buyer_email or order.buyer.email],
                tags=["order_confirmation"],
            )
        )

    @BaseService.log_performance
    def send_shipping_notification(self, sub_order_id) -> ServiceResult[bool]:
        sub_order = self._sub_order_queryset().filter(id=sub_order_id).first()
        if not sub_order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found.")

        order = sub_order.order
        lines = [f"Good news! Part of your order {order.order_number} from {sub_order.store_name} is on its way.", ""]
        for item in sub_order.items.exclude(status=SellerSubOrderItem.STATUS_CANCELLED):
            lines.append(f"- {item.product_title} x{item.quantity}")
        if sub_order.tracking_number:
            lines += [
                "",
                f"Carrier: {sub_order.shipping_carrier or 'N/A'}",
                f"Tracking number: {sub_order.tracking_number}",
            ]
            url = tracking_url(sub_order.shipping_carrier, sub_order.tracking_number)
            if url:
                lines.append(f"Track your package: {url}")

        sent = self._send(
            EmailMessage(
                subject=f"Your order {sub_order.sub_order_number} has shipped",
                body="\n".join(lines),
                to=[order.buyer_email or order.buyer.email],
                tags=["order_shipped"],
            )
        )
        return service_ok(sent)

    def store_for_seller(self, user) -> Optional[Store]:
        return Store.objects.filter(owner_id=user.id).first()
