import uuid
from decimal import Decimal

from django.db import models

from sellers.domain.models import Store

from .payment_transaction import PaymentTransaction


class EscrowEntry(models.Model):
    """A seller's share of a paid order, held until fulfilment."""

    STATUS_HELD = "held"
    STATUS_RELEASED = "released"
    STATUS_REFUNDED = "refunded"
    STATUS_PARTIALLY_REFUNDED = "partially_refunded"

    STATUS_CHOICES = [
        (STATUS_HELD, "Held"),
        (STATUS_RELEASED, "Released"),
        (STATUS_REFUNDED, "Refunded"),
        (STATUS_PARTIALLY_REFUNDED, "Partially Refunded"),
    ]

    REFUNDABLE_STATUSES = (STATUS_HELD, STATUS_PARTIALLY_REFUNDED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    payment_transaction = models.ForeignKey(
        PaymentTransaction, on_delete=models.PROTECT, related_name="escrow_entries"
    )
    order_id = models.UUIDField(db_index=True)
    seller = models.ForeignKey(Store, on_delete=models.PROTECT, related_name="escrow_entries")

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_HELD)

    is_eligible_for_payout = models.BooleanField(default=False)
    payout = models.ForeignKey(
        "payment_system.Payout", on_delete=models.SET_NULL, null=True, blank=True, related_name="escrow_entries"
    )
    audit_note = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    released_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_escrow_entries"
        ordering = ["created_at"]
        verbose_name_plural = "escrow entries"
        indexes = [
            models.Index(fields=["order_id", "seller"]),
            models.Index(fields=["seller", "status"]),
            models.Index(fields=["status", "payout"]),
        ]

    def __str__(self):
        return f"Escrow {self.amount} {self.currency} for {self.seller_id} ({self.status})"

    @property
    def remaining_amount(self) -> Decimal:
        return self.amount - self.refunded_amount
