import uuid

from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()


class KycSubmission(models.Model):
    """A seller identity/business verification document awaiting admin review."""

    DOC_GOVERNMENT_ID = "government_id"
    DOC_BUSINESS_LICENSE = "business_license"
    DOC_PROOF_OF_ADDRESS = "proof_of_address"
    DOC_TAX_CERTIFICATE = "tax_certificate"

    DOCUMENT_TYPE_CHOICES = [
        (DOC_GOVERNMENT_ID, "Government ID"),
        (DOC_BUSINESS_LICENSE, "Business License"),
        (DOC_PROOF_OF_ADDRESS, "Proof of Address"),
        (DOC_TAX_CERTIFICATE, "Tax Certificate"),
    ]

    STATUS_PENDING = "pending"
    STATUS_UNDER_REVIEW = "under_review"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_UNDER_REVIEW, "Under Review"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]

    REVIEWABLE_STATUSES = (STATUS_PENDING, STATUS_UNDER_REVIEW)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller = models.ForeignKey(User, on_delete=models.CASCADE, related_name="kyc_submissions")
    document_type = models.CharField(max_length=30, choices=DOCUMENT_TYPE_CHOICES)
    file_name = models.CharField(max_length=255)
    content_type = models.CharField(max_length=100)
    file_size = models.PositiveIntegerField(default=0)
    storage_key = models.CharField(max_length=500)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)

    submitted_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="reviewed_kyc_submissions"
    )
    rejection_reason = models.TextField(blank=True)

    class Meta:
        app_label = "sellers"
        db_table = "sellers_kyc_submissions"
        ordering = ["-submitted_at"]
        indexes = [
            models.Index(fields=["seller", "status"]),
            models.Index(fields=["status"]),
        ]

    def __str__(self):
        return f"{self.get_document_type_display()} from {self.seller.email} ({self.status})"


class KycAuditLog(models.Model):
    ACTION_SUBMITTED = "submitted"
    ACTION_REVIEW_STARTED = "review_started"
    ACTION_APPROVED = "approved"
    ACTION_REJECTED = "rejected"

    ACTION_CHOICES = [
        (ACTION_SUBMITTED, "Submitted"),
        (ACTION_REVIEW_STARTED, "Review Started"),
        (ACTION_APPROVED, "Approved"),
        (ACTION_REJECTED, "Rejected"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    submission = models.ForeignKey(KycSubmission, on_delete=models.CASCADE, related_name="audit_logs")
    action = models.CharField(max_length=30, choices=ACTION_CHOICES)
    old_status = models.CharField(max_length=20, blank=True)
    new_status = models.CharField(max_length=20)
    performed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, related_name="+")
    details = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "sellers"
        db_table = "sellers_kyc_audit_logs"
        ordering = ["-created_at"]
