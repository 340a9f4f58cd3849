"""
CartService - the buyer's shopping cart.

Cart items snapshot the product title, price, cover image and store when
they are added. Checkout validation compares those snapshots against the
live catalog.
"""

from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List

from django.db import transaction

from marketplace.cart.domain.models import Cart, CartItem
from marketplace.catalog.domain.models import Product
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

from .promo_code_service import PromoCodeService
from .shipping_calculator import ShippingCalculator

PLACEHOLDER_IMAGE = "/images/placeholder.png"
ALLOWED_IMAGE_PREFIXES = ("/uploads/", "/images/")


def first_image_url(images) -> str:
    """First product image if it is a safe local path, else the placeholder."""
    if not isinstance(images, list) or not images:
        return PLACEHOLDER_IMAGE
    url = images[0]
    if not isinstance(url, str) or not url.strip():
        return PLACEHOLDER_IMAGE
    if ".." in url or "//" in url or "\\" in url:
        return PLACEHOLDER_IMAGE
    if not url.lower().startswith(ALLOWED_IMAGE_PREFIXES):
        return PLACEHOLDER_IMAGE
    return url


def insufficient_stock(available: int) -> ServiceResult:
    message = f"Insufficient stock. Only {available} items available."
    return ServiceResult(
        ok=False,
        value={"available_stock": available},
        error=ErrorCodes.INSUFFICIENT_STOCK,
        error_detail=message,
        errors=[message],
    )


def group_items_by_store(items: List[CartItem]) -> "OrderedDict[str, Dict]":
    """Group items by store, keeping the order in which stores first appear."""
    groups: "OrderedDict[str, Dict]" = OrderedDict()
    for item in items:
        key = str(item.store_id)
        group = groups.setdefault(
            key,
            {
                "store_id": key,
                "store_name": item.store_name,
                "items": [],
                "subtotal": Decimal("0.00"),
                "item_count": 0,
            },
        )
        group["items"].append(item)
        group["subtotal"] += item.product_price * item.quantity
        group["item_count"] += item.quantity
    return groups


class CartService(BaseService):
    def __init__(self, promo_code_service: PromoCodeService = None, shipping_calculator: ShippingCalculator = None):
        super().__init__()
        self.promo_code_service = promo_code_service or PromoCodeService()
        self.shipping_calculator = shipping_calculator or ShippingCalculator()

    @BaseService.log_performance
    @transaction.atomic
    def add_item(self, buyer, product_id, quantity: int = 1) -> ServiceResult[CartItem]:
        errors = []
        if buyer is None:
            errors.append("Buyer ID is required.")
        if not product_id:
            errors.append("Product ID is required.")
        if quantity is None or quantity <= 0:
            errors.append("Quantity must be greater than zero.")
        if errors:
            return validation_err(errors)

        cart = Cart.get_or_create_cart(buyer)
        product = Product.objects.select_related("store").filter(id=product_id).first()
        existing = CartItem.objects.select_for_update().filter(cart=cart, product_id=product_id).first()

        if existing:
            if product is None or not product.is_active:
                return service_err(ErrorCodes.PRODUCT_UNAVAILABLE, "Product is not available.")
            new_quantity = existing.quantity + quantity
            if new_quantity > product.stock:
                return insufficient_stock(product.stock)
            existing.quantity = new_quantity
            existing.save(update_fields=["quantity", "last_updated_at"])
            cart.save(update_fields=["updated_at"])
            self.logger.info(f"Cart {cart.id}: product {product_id} quantity now {new_quantity}")
            return service_ok(existing)

        if product is None or not product.is_active:
            return service_err(ErrorCodes.PRODUCT_UNAVAILABLE, "Product is not available.")
        if quantity > product.stock:
            return insufficient_stock(product.stock)

        item = CartItem.objects.create(
            cart=cart,
            product=product,
            quantity=quantity,
            store_id=product.store_id,
            store_name=product.store.name,
            product_title=product.title,
            product_price=product.price,
            product_image_url=first_image_url(product.images),
        )
        cart.save(update_fields=["updated_at"])
        self.logger.info(f"Cart {cart.id}: added product {product_id} x{quantity}")
        return service_ok(item)

    def _owned_item(self, buyer, item_id, lock: bool = False):
        queryset = CartItem.objects.select_related("cart", "product")
        if lock:
            queryset = queryset.select_for_update()
        item = queryset.filter(id=item_id).first()
        if not item:
            return None, service_err(ErrorCodes.ITEM_NOT_IN_CART, "Cart item not found.")
        if item.cart.buyer_id != buyer.id:
            return None, service_err(ErrorCodes.NOT_AUTHORIZED, "Not authorized to modify this cart.")
        return item, None

    @BaseService.log_performance
    @transaction.atomic
    def update_quantity(self, buyer, item_id, quantity: int) -> ServiceResult[CartItem]:
        """Set an item's quantity. Zero or less removes the item."""
        item, failure = self._owned_item(buyer, item_id, lock=True)
        if failure:
            return failure

        if quantity <= 0:
            item.delete()
            item.cart.save(update_fields=["updated_at"])
            self.logger.info(f"Removed cart item {item_id} for buyer {buyer.id} due to zero quantity")
            return service_ok(None)

        product = item.product
        if not product.is_active:
            return service_err(ErrorCodes.PRODUCT_UNAVAILABLE, "Product is not available.")
        if quantity > product.stock:
            return insufficient_stock(product.stock)

        item.quantity = quantity
        item.save(update_fields=["quantity", "last_updated_at"])
        item.cart.save(update_fields=["updated_at"])
        return service_ok(item)

    @BaseService.log_performance
    @transaction.atomic
    def remove_item(self, buyer, item_id) -> ServiceResult[None]:
        item, failure = self._owned_item(buyer, item_id)
        if failure:
            return failure
        cart = item.cart
        item.delete()
        cart.save(update_fields=["updated_at"])
        return service_ok(None)

    @BaseService.log_performance
    def get_cart(self, buyer) -> ServiceResult[Dict]:
        """
        Cart contents grouped by store.

        Returns a dict with ``stores`` (items, subtotal and shipping per
        store), ``items``, ``item_count``, ``subtotal``, ``discount``,
        ``promo_code``, ``shipping_total`` and ``total``.
        """
        cart = Cart.get_or_create_cart(buyer)
        items = list(cart.items.select_related("product").all())
        groups = group_items_by_store(items)
        shipping = self.shipping_calculator.calculate_shipping(groups.values())

        stores = []
        for store_id, group in groups.items():
            group["shipping"] = shipping[store_id]
            stores.append(group)

        subtotal = sum((group["subtotal"] for group in stores), Decimal("0.00"))
        discount = self.promo_code_service.calculate_discount(cart, items)
        shipping_total = self.shipping_calculator.total(shipping)

        return service_ok(
            {
                "cart_id": cart.id,
                "stores": stores,
                "items": items,
                "item_count": sum(item.quantity for item in items),
                "subtotal": subtotal,
                "discount": discount["discount_amount"],
                "promo_code": discount["code"],
                "shipping_total": shipping_total,
                "total": subtotal - discount["discount_amount"] + shipping_total,
            }
        )

    def get_item_count(self, buyer) -> int:
        cart = Cart.objects.filter(buyer=buyer).first()
        if not cart:
            return 0
        return sum(cart.items.values_list("quantity", flat=True))

    @BaseService.log_performance
    @transaction.atomic
    def clear_cart(self, buyer) -> ServiceResult[None]:
        """Empty the cart and drop its promo code. Runs after an order is created."""
        cart = Cart.objects.filter(buyer=buyer).first()
        if cart:
            cart.items.all().delete()
            cart.applied_promo_code = None
            cart.save(update_fields=["applied_promo_code", "updated_at"])
        return service_ok(None)
