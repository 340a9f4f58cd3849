import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.db import models


User = get_user_model()


class PaymentTransaction(models.Model):
    """
    One buyer payment for a whole order.

    Created when checkout starts and moved to paid or failed by the
    provider callback. ``refunded_amount`` accumulates completed refunds.
    """

    METHOD_CREDIT_CARD = "credit_card"
    METHOD_PAYPAL = "paypal"
    METHOD_BANK_TRANSFER = "bank_transfer"
    METHOD_BLIK = "blik"

    PAYMENT_METHOD_CHOICES = [
        (METHOD_CREDIT_CARD, "Credit Card"),
        (METHOD_PAYPAL, "PayPal"),
        (METHOD_BANK_TRANSFER, "Bank Transfer"),
        (METHOD_BLIK, "BLIK"),
    ]

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_PAID = "paid"
    STATUS_FAILED = "failed"
    STATUS_CANCELLED = "cancelled"
    STATUS_REFUNDED = "refunded"

    PAYMENT_STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_PAID, "Paid"),
        (STATUS_FAILED, "Failed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REFUNDED, "Refunded"),
    ]

    FINAL_STATUSES = (STATUS_PAID, STATUS_FAILED, STATUS_CANCELLED, STATUS_REFUNDED)

    # Identifiers
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    external_reference = models.CharField(
        max_length=255, blank=True, db_index=True, help_text="Payment provider reference"
    )
    idempotency_key = models.CharField(max_length=255, blank=True, null=True, db_index=True)

    # Relations
    buyer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="payment_transactions")

    # Payment Details
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES)
    status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=STATUS_PENDING)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])
    currency = models.CharField(max_length=3, default="USD")
    refunded_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # Redirect flow
    return_url = models.URLField(max_length=500)
    cancel_url = models.URLField(max_length=500, blank=True)
    redirect_url = models.URLField(max_length=1000, blank=True)

    error_message = models.TextField(blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["buyer", "status"]),
            models.Index(fields=["buyer", "idempotency_key"]),
        ]

    def __str__(self):
        return f"Payment {self.id} - {self.amount} {self.currency} ({self.status})"

    @property
    def is_final(self) -> bool:
        return self.status in self.FINAL_STATUSES

    @property
    def refundable_amount(self) -> Decimal:
        return self.amount - self.refunded_amount
