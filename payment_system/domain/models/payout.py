import uuid

from django.db import models

from sellers.domain.models import Store


class Payout(models.Model):
    """
    Disbursement of a seller's released escrow balance.

    Each payout groups the released escrow entries it pays out
    (``escrow_entry_ids``); failed payouts are retried up to
    ``PAYOUT_SETTINGS['MAX_RETRY_ATTEMPTS']`` times.
    """

    STATUS_SCHEDULED = "scheduled"
    STATUS_PROCESSING = "processing"
    STATUS_PAID = "paid"
    STATUS_FAILED = "failed"

    PAYOUT_STATUS_CHOICES = [
        (STATUS_SCHEDULED, "Scheduled"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_PAID, "Paid"),
        (STATUS_FAILED, "Failed"),
    ]

    FREQUENCY_WEEKLY = "weekly"
    FREQUENCY_MONTHLY = "monthly"

    FREQUENCY_CHOICES = [
        (FREQUENCY_WEEKLY, "Weekly"),
        (FREQUENCY_MONTHLY, "Monthly"),
    ]

    # Identifiers
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    external_transfer_reference = models.CharField(max_length=255, blank=True, db_index=True)
    batch_id = models.CharField(max_length=64, blank=True, db_index=True)

    # Relations
    seller = models.ForeignKey(Store, on_delete=models.PROTECT, related_name="payouts")

    # Payout Details
    status = models.CharField(max_length=20, choices=PAYOUT_STATUS_CHOICES, default=STATUS_SCHEDULED)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3)
    schedule_frequency = models.CharField(max_length=10, choices=FREQUENCY_CHOICES, default=FREQUENCY_WEEKLY)
    scheduled_at = models.DateTimeField()
    escrow_entry_ids = models.JSONField(default=list, blank=True)

    # Retry tracking
    retry_count = models.PositiveIntegerField(default=0)
    last_retry_at = models.DateTimeField(null=True, blank=True)

    # Failure Information
    error_reference = models.CharField(max_length=64, blank=True)
    error_message = models.TextField(blank=True)

    audit_note = models.TextField(blank=True)

    # Timestamps
    processing_started_at = models.DateTimeField(null=True, blank=True)
    processing_completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "payment_system"
        db_table = "payment_payouts"
        ordering = ["-scheduled_at"]
        indexes = [
            models.Index(fields=["seller", "status"]),
            models.Index(fields=["status", "scheduled_at"]),
        ]

    def __str__(self):
        return f"Payout {self.amount} {self.currency} to {self.seller_id} ({self.status})"
