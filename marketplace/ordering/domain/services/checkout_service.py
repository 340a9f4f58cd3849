"""
CheckoutService - turns the buyer's cart into an order.

Steps: validate the cart against the catalog, price shipping per store,
start the payment, create the order, take the stock, count the promo code
use and empty the cart. Everything from the payment record to the cart
clean-up happens in one transaction; a stock failure rolls it all back.
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction

from infrastructure.observability import tracer
from marketplace.cart.domain.models import Cart
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok


class CheckoutAborted(Exception):
    """Carries a failed ServiceResult out of the checkout transaction."""

    def __init__(self, result: ServiceResult):
        super().__init__(result.error_detail)
        self.result = result


class CheckoutService(BaseService):
    def __init__(
        self,
        cart_service,
        checkout_validation_service,
        shipping_calculator,
        promo_code_service,
        order_service,
        catalog_service,
        payment_service,
    ):
        super().__init__()
        self.cart_service = cart_service
        self.checkout_validation_service = checkout_validation_service
        self.shipping_calculator = shipping_calculator
        self.promo_code_service = promo_code_service
        self.order_service = order_service
        self.catalog_service = catalog_service
        self.payment_service = payment_service

    @staticmethod
    def _store_groups(validated_items):
        groups: "OrderedDict[str, Dict]" = OrderedDict()
        for item in validated_items:
            group = groups.setdefault(
                item["store_id"],
                {
                    "store_id": item["store_id"],
                    "store_name": item["store_name"],
                    "subtotal": Decimal("0.00"),
                    "item_count": 0,
                },
            )
            group["subtotal"] += item["unit_price"] * item["quantity"]
            group["item_count"] += item["quantity"]
        return groups

    @BaseService.log_performance
    def create_order_from_cart(
        self,
        buyer,
        delivery_address: Dict[str, str],
        payment_method: str,
        return_url: str,
        cancel_url: str = "",
        idempotency_key: Optional[str] = None,
        blik_code: Optional[str] = None,
        delivery_instructions: str = "",
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Place an order for everything in the buyer's cart.

        Returns ``order`` and ``payment`` (the transaction, its redirect URL
        and whether a BLIK code is still needed). A BLIK payment authorized
        with its code is confirmed once the order exists.
        """
        with tracer.start_as_current_span("checkout_create_order") as span:
            span.set_attribute("user.id", str(buyer.id))
            span.set_attribute("payment.method", payment_method or "")

            validation = self.checkout_validation_service.validate_checkout(buyer)
            if not validation.ok:
                return validation
            validated_items = validation.value["validated_items"]

            groups = self._store_groups(validated_items)
            shipping = self.shipping_calculator.calculate_shipping(groups.values())
            shipping_total = self.shipping_calculator.total(shipping)
            subtotal = sum((group["subtotal"] for group in groups.values()), Decimal("0.00"))

            cart = Cart.objects.select_related("applied_promo_code").get(buyer=buyer)
            discount = self.promo_code_service.calculate_discount(cart)
            total = subtotal - discount["discount_amount"] + shipping_total
            span.set_attribute("order.total", str(total))

            try:
                with transaction.atomic():
                    payment = self.payment_service.initiate_payment(
                        buyer=buyer,
                        amount=total,
                        payment_method=payment_method,
                        return_url=return_url,
                        cancel_url=cancel_url,
                        idempotency_key=idempotency_key,
                        blik_code=blik_code,
                    )
                    if not payment.ok:
                        raise CheckoutAborted(payment)
                    payment_transaction = payment.value["transaction"]

                    order = self.order_service.create_order(
                        buyer=buyer,
                        payment_transaction_id=payment_transaction.id,
                        items=validated_items,
                        shipping_total=shipping_total,
                        delivery_address=delivery_address,
                        payment_method_name=payment_method,
                        discount_amount=discount["discount_amount"],
                        promo_code=discount["code"] or "",
                        buyer_email=buyer.email,
                        delivery_instructions=delivery_instructions,
                    )
                    if not order.ok:
                        raise CheckoutAborted(order)

                    for item in validated_items:
                        reserved = self.catalog_service.decrement_stock(item["product_id"], item["quantity"])
                        if not reserved.ok:
                            raise CheckoutAborted(reserved)

                    if discount["promo_code_id"]:
                        self.promo_code_service.increment_usage(discount["promo_code_id"])
                    self.cart_service.clear_cart(buyer)
            except CheckoutAborted as aborted:
                self.logger.warning(f"Checkout aborted for buyer {buyer.id}: {aborted.result.error_detail}")
                return aborted.result
            except Exception as e:
                self.logger.error(f"Checkout failed for buyer {buyer.id}: {e}", exc_info=True)
                span.record_exception(e)
                return service_err(ErrorCodes.INTERNAL_ERROR, "An error occurred while creating the order.")

            if payment.value.get("authorized"):
                self.payment_service.handle_payment_callback(
                    payment_transaction.id,
                    buyer,
                    is_success=True,
                    external_ref=payment_transaction.external_reference,
                )
                order.value.refresh_from_db()

            span.set_attribute("order.id", str(order.value.id))
            self.logger.info(f"Checkout completed for buyer {buyer.id}: order {order.value.order_number}")
            return service_ok({"order": order.value, "payment": payment.value})
