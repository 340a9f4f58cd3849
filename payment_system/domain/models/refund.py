import uuid
from decimal import Decimal

from django.db import models

from sellers.domain.models import Store

from .payment_transaction import PaymentTransaction


class Refund(models.Model):
    TYPE_FULL = "full"
    TYPE_PARTIAL = "partial"

    REFUND_TYPE_CHOICES = [
        (TYPE_FULL, "Full"),
        (TYPE_PARTIAL, "Partial"),
    ]

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_id = models.UUIDField(db_index=True)
    payment_transaction = models.ForeignKey(PaymentTransaction, on_delete=models.PROTECT, related_name="refunds")
    seller = models.ForeignKey(Store, on_delete=models.SET_NULL, null=True, blank=True, related_name="refunds")

    refund_type = models.CharField(max_length=10, choices=REFUND_TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    reason = models.TextField(max_length=1000)

    initiated_by_user_id = models.CharField(max_length=64)
    initiated_by_role = models.CharField(max_length=20)
    audit_note = models.TextField(blank=True)

    escrow_refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    commission_refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    external_reference = models.CharField(max_length=255, blank=True)
    provider_error = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_refunds"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Refund {self.amount} {self.currency} for order {self.order_id} ({self.status})"
