"""
CheckoutValidationService - re-checks a cart against the live catalog
before an order is placed.
"""

from typing import Dict

from django.db import transaction

from marketplace.cart.domain.models import Cart
from marketplace.catalog.domain.models import Product
from marketplace.infra.observability.metrics import cart_validation_duration, cart_validations_total
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok

VALIDATION_FAILED_MESSAGE = "Some items in your cart have changed. Please review them before checkout."


class CheckoutValidationService(BaseService):
    def __init__(self):
        super().__init__()

    @BaseService.log_performance
    def validate_checkout(self, buyer) -> ServiceResult[Dict]:
        """
        Check stock and prices of every cart item.

        On success the value holds ``validated_items`` priced at the current
        catalog price. When any item is unavailable, short on stock or has a
        new price, the result fails with ``stock_issues`` and
        ``price_changes`` and no validated items.
        """
        with cart_validation_duration.time():
            if buyer is None:
                return service_err(ErrorCodes.VALIDATION_ERROR, "Buyer ID is required.")

            cart = Cart.objects.filter(buyer=buyer).first()
            items = list(cart.items.all()) if cart else []
            if not items:
                cart_validations_total.labels(outcome="empty").inc()
                return service_err(ErrorCodes.CART_EMPTY, "Cart is empty.")

            products = {
                str(product.id): product
                for product in Product.objects.filter(id__in=[item.product_id for item in items])
            }

            stock_issues = []
            price_changes = []
            validated_items = []

            for item in items:
                product = products.get(str(item.product_id))
                if product is None or not product.is_active:
                    stock_issues.append(
                        {
                            "cart_item_id": str(item.id),
                            "product_id": str(item.product_id),
                            "product_title": item.product_title,
                            "requested_quantity": item.quantity,
                            "available_stock": 0,
                            "is_unavailable": True,
                        }
                    )
                    continue

                if item.quantity > product.stock:
                    stock_issues.append(
                        {
                            "cart_item_id": str(item.id),
                            "product_id": str(item.product_id),
                            "product_title": item.product_title,
                            "requested_quantity": item.quantity,
                            "available_stock": product.stock,
                            "is_unavailable": False,
                        }
                    )

                if item.product_price != product.price:
                    price_changes.append(
                        {
                            "cart_item_id": str(item.id),
                            "product_id": str(item.product_id),
                            "product_title": item.product_title,
                            "original_price": item.product_price,
                            "current_price": product.price,
                        }
                    )

                validated_items.append(
                    {
                        "cart_item_id": str(item.id),
                        "product_id": str(product.id),
                        "store_id": str(item.store_id),
                        "store_name": item.store_name,
                        "product_title": product.title,
                        "unit_price": product.price,
                        "quantity": item.quantity,
                        "product_image_url": item.product_image_url,
                        "category": product.category.name if product.category_id else None,
                    }
                )

            if stock_issues or price_changes:
                cart_validations_total.labels(outcome="failed").inc()
                self.logger.info(
                    f"Checkout validation failed for buyer {buyer.id}: {len(stock_issues)} stock issues, "
                    f"{len(price_changes)} price changes"
                )
                return ServiceResult(
                    ok=False,
                    value={"stock_issues": stock_issues, "price_changes": price_changes, "validated_items": []},
                    error=ErrorCodes.CHECKOUT_VALIDATION_FAILED,
                    error_detail=VALIDATION_FAILED_MESSAGE,
                    errors=[VALIDATION_FAILED_MESSAGE],
                )

            cart_validations_total.labels(outcome="passed").inc()
            return service_ok({"validated_items": validated_items})

    @BaseService.log_performance
    @transaction.atomic
    def update_cart_prices_to_current(self, buyer) -> ServiceResult[int]:
        """Refresh price snapshots of active products. Returns how many items changed."""
        cart = Cart.objects.filter(buyer=buyer).first()
        if not cart:
            return service_ok(0)

        updated = 0
        for item in cart.items.select_related("product").select_for_update():
            product = item.product
            if product.is_active and item.product_price != product.price:
                item.product_price = product.price
                item.save(update_fields=["product_price", "last_updated_at"])
                updated += 1

        if updated:
            cart.save(update_fields=["updated_at"])
            self.logger.info(f"Updated {updated} cart prices to current for buyer {buyer.id}")
        return service_ok(updated)
