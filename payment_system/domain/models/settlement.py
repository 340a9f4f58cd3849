import uuid
from decimal import Decimal

from django.db import models

from sellers.domain.models import Store


ZERO = Decimal("0.00")


class Settlement(models.Model):
    """Monthly statement of a seller's sales, refunds and commission."""

    STATUS_DRAFT = "draft"
    STATUS_FINALIZED = "finalized"
    STATUS_EXPORTED = "exported"

    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_FINALIZED, "Finalized"),
        (STATUS_EXPORTED, "Exported"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller = models.ForeignKey(Store, on_delete=models.PROTECT, related_name="settlements")
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField()
    period_start = models.DateTimeField()
    period_end = models.DateTimeField()

    gross_sales = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    total_refunds = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    net_sales = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    total_commission = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    previous_month_adjustments = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    net_payable = models.DecimalField(max_digits=14, decimal_places=2, default=ZERO)
    order_count = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, default="USD")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    version = models.PositiveIntegerField(default=1)
    audit_note = models.TextField(blank=True)

    generated_at = models.DateTimeField()
    regenerated_at = models.DateTimeField(null=True, blank=True)
    finalized_at = models.DateTimeField(null=True, blank=True)
    exported_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_settlements"
        ordering = ["-year", "-month", "seller"]
        constraints = [
            models.UniqueConstraint(fields=["seller", "year", "month"], name="unique_settlement_per_period"),
        ]

    def __str__(self):
        return f"Settlement {self.seller_id} {self.year}-{self.month:02d} v{self.version}"


class SettlementLineItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    settlement = models.ForeignKey(Settlement, on_delete=models.CASCADE, related_name="line_items")
    order_id = models.UUIDField()
    order_number = models.CharField(max_length=50)
    order_date = models.DateTimeField()

    gross_amount = models.DecimalField(max_digits=12, decimal_places=2)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2)
    net_amount = models.DecimalField(max_digits=12, decimal_places=2)
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2)

    is_adjustment = models.BooleanField(default=False)
    original_year = models.PositiveIntegerField(null=True, blank=True)
    original_month = models.PositiveSmallIntegerField(null=True, blank=True)
    notes = models.CharField(max_length=500, blank=True)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_settlement_line_items"
        ordering = ["is_adjustment", "order_date"]
