import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import models

from sellers.domain.models import Store

from .payment_transaction import PaymentTransaction


User = get_user_model()


class CommissionRule(models.Model):
    """
    Platform commission configuration.

    A rule can target a seller, a category, both, or neither (global). The
    most specific active rule wins; ``priority`` breaks ties.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=200)
    seller = models.ForeignKey(
        Store, on_delete=models.CASCADE, null=True, blank=True, related_name="commission_rules"
    )
    category = models.CharField(max_length=100, blank=True, null=True)

    commission_rate = models.DecimalField(max_digits=7, decimal_places=4, help_text="Percent of the order amount")
    fixed_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    min_commission = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    max_commission = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    priority = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    effective_date = models.DateTimeField()

    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    modified_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    version = models.PositiveIntegerField(default=1)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_commission_rules"
        ordering = ["-priority", "name"]
        indexes = [
            models.Index(fields=["is_active", "seller"]),
        ]

    def __str__(self):
        return self.get_description()

    def get_description(self) -> str:
        if self.seller_id and self.category:
            scope = f"Seller: {self.seller_id}, Category: {self.category}"
        elif self.seller_id:
            scope = f"Seller: {self.seller_id}"
        elif self.category:
            scope = f"Category: {self.category}"
        else:
            scope = "Global default"

        description = f"{scope} - {self.commission_rate:.4f}%"
        if self.fixed_fee and self.fixed_fee > 0:
            description += f" + {self.fixed_fee:.2f} fixed"

        limits = []
        if self.min_commission is not None:
            limits.append(f"min: {self.min_commission:.2f}")
        if self.max_commission is not None:
            limits.append(f"max: {self.max_commission:.2f}")
        if limits:
            description += f" ({', '.join(limits)})"
        return description

    def overlaps_with(self, other: "CommissionRule") -> bool:
        """Two active rules with exactly the same seller and category scope."""
        if other.pk == self.pk or not (self.is_active and other.is_active):
            return False
        same_category = (self.category or "").lower() == (other.category or "").lower()
        return self.seller_id == other.seller_id and same_category


class CommissionRecord(models.Model):
    """Commission charged on one seller's share of one order."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payment_transaction = models.ForeignKey(
        PaymentTransaction, on_delete=models.PROTECT, related_name="commission_records"
    )
    order_id = models.UUIDField(db_index=True)
    seller = models.ForeignKey(Store, on_delete=models.PROTECT, related_name="commission_records")

    order_amount = models.DecimalField(max_digits=12, decimal_places=2)
    commission_rate = models.DecimalField(max_digits=7, decimal_places=4)
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2)
    refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    refunded_commission_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    net_commission_amount = models.DecimalField(max_digits=12, decimal_places=2)

    applied_rule_id = models.UUIDField(null=True, blank=True)
    applied_rule_description = models.CharField(max_length=500, blank=True)

    calculated_at = models.DateTimeField()
    last_refund_recalculated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_commission_records"
        ordering = ["calculated_at"]
        indexes = [
            models.Index(fields=["order_id", "seller"]),
            models.Index(fields=["seller", "calculated_at"]),
            models.Index(fields=["seller", "last_refund_recalculated_at"]),
        ]

    def __str__(self):
        return f"Commission {self.commission_amount} on {self.order_amount} ({self.seller_id})"
