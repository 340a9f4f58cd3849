import uuid
from decimal import ROUND_HALF_UP, Decimal

from django.db import models
from django.utils import timezone

from sellers.domain.models import Store


class PromoCode(models.Model):
    """Discount code, either platform-wide or limited to one store's items."""

    DISCOUNT_PERCENTAGE = "percentage"
    DISCOUNT_FIXED = "fixed"

    DISCOUNT_TYPE_CHOICES = [
        (DISCOUNT_PERCENTAGE, "Percentage"),
        (DISCOUNT_FIXED, "Fixed Amount"),
    ]

    SCOPE_PLATFORM = "platform"
    SCOPE_SELLER = "seller"

    SCOPE_CHOICES = [
        (SCOPE_PLATFORM, "Platform"),
        (SCOPE_SELLER, "Seller"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=50, unique=True)
    description = models.CharField(max_length=500, blank=True)

    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES, default=DISCOUNT_PERCENTAGE)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2)
    minimum_order_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    max_discount_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    scope = models.CharField(max_length=20, choices=SCOPE_CHOICES, default=SCOPE_PLATFORM)
    store = models.ForeignKey(Store, on_delete=models.CASCADE, null=True, blank=True, related_name="promo_codes")

    start_date = models.DateTimeField(default=timezone.now)
    end_date = models.DateTimeField(null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "marketplace"
        db_table = "marketplace_promo_codes"
        ordering = ["-created_at"]

    def save(self, *args, **kwargs):
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.code

    def is_valid(self, now=None) -> bool:
        now = now or timezone.now()
        if not self.is_active or now < self.start_date:
            return False
        if self.end_date and now > self.end_date:
            return False
        if self.usage_limit is not None and self.usage_count >= self.usage_limit:
            return False
        return True

    def meets_minimum_order_amount(self, amount: Decimal) -> bool:
        return self.minimum_order_amount is None or amount >= self.minimum_order_amount

    def calculate_discount(self, subtotal: Decimal) -> Decimal:
        if self.discount_type == self.DISCOUNT_PERCENTAGE:
            discount = subtotal * self.discount_value / Decimal("100")
            if self.max_discount_amount is not None and discount > self.max_discount_amount:
                discount = self.max_discount_amount
        else:
            discount = self.discount_value

        discount = min(discount, subtotal)
        return discount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
