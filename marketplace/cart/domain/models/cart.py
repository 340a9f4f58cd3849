import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import models

from marketplace.catalog.domain.models import Product

from .promo_code import PromoCode


User = get_user_model()


class Cart(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    buyer = models.OneToOneField(User, on_delete=models.CASCADE, related_name="cart")
    applied_promo_code = models.ForeignKey(
        PromoCode, on_delete=models.SET_NULL, null=True, blank=True, related_name="carts"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Shopping Cart"
        verbose_name_plural = "Shopping Carts"
        app_label = "marketplace"
        db_table = "marketplace_carts"

    @classmethod
    def get_or_create_cart(cls, buyer):
        """Get existing cart or create a new one for the buyer."""
        cart, _ = cls.objects.get_or_create(buyer=buyer)
        return cart

    def __str__(self):
        return f"Cart for {self.buyer.email}"


class CartItem(models.Model):
    """A product in a cart, with the title, price and store captured when it was added."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="cart_items")
    quantity = models.PositiveIntegerField(default=1)

    # Snapshot
    store_id = models.UUIDField()
    store_name = models.CharField(max_length=200)
    product_title = models.CharField(max_length=200)
    product_price = models.DecimalField(max_digits=10, decimal_places=2)
    product_image_url = models.CharField(max_length=500, blank=True)

    added_at = models.DateTimeField(auto_now_add=True)
    last_updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ["cart", "product"]
        ordering = ["added_at"]
        app_label = "marketplace"
        db_table = "marketplace_cart_items"

    @property
    def total_price(self) -> Decimal:
        return self.quantity * self.product_price

    def __str__(self):
        return f"{self.quantity}x {self.product_title} in {self.cart.buyer.email}'s cart"
