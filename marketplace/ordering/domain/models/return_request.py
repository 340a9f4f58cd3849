import uuid

from django.contrib.auth import get_user_model
from django.db import models

from .order import SellerSubOrder, SellerSubOrderItem

User = get_user_model()


class ReturnRequest(models.Model):
    """A buyer-opened case (return or complaint) on a delivered sub-order."""

    TYPE_RETURN = "return"
    TYPE_COMPLAINT = "complaint"

    CASE_TYPE_CHOICES = [
        (TYPE_RETURN, "Return"),
        (TYPE_COMPLAINT, "Complaint"),
    ]

    STATUS_REQUESTED = "requested"
    STATUS_UNDER_REVIEW = "under_review"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_COMPLETED = "completed"

    STATUS_CHOICES = [
        (STATUS_REQUESTED, "Requested"),
        (STATUS_UNDER_REVIEW, "Under Review"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
        (STATUS_COMPLETED, "Completed"),
    ]

    OPEN_STATUSES = (STATUS_REQUESTED, STATUS_UNDER_REVIEW, STATUS_APPROVED)

    ALLOWED_TRANSITIONS = {
        STATUS_REQUESTED: (STATUS_UNDER_REVIEW, STATUS_APPROVED, STATUS_REJECTED),
        STATUS_UNDER_REVIEW: (STATUS_APPROVED, STATUS_REJECTED),
        STATUS_APPROVED: (STATUS_COMPLETED,),
        STATUS_REJECTED: (),
        STATUS_COMPLETED: (),
    }

    RESOLUTION_FULL_REFUND = "full_refund"
    RESOLUTION_PARTIAL_REFUND = "partial_refund"
    RESOLUTION_REPLACEMENT = "replacement"
    RESOLUTION_REPAIR = "repair"
    RESOLUTION_NO_REFUND = "no_refund"

    RESOLUTION_CHOICES = [
        (RESOLUTION_FULL_REFUND, "Full Refund"),
        (RESOLUTION_PARTIAL_REFUND, "Partial Refund"),
        (RESOLUTION_REPLACEMENT, "Replacement"),
        (RESOLUTION_REPAIR, "Repair"),
        (RESOLUTION_NO_REFUND, "No Refund"),
    ]

    REFUND_RESOLUTIONS = (RESOLUTION_FULL_REFUND, RESOLUTION_PARTIAL_REFUND)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    case_number = models.CharField(max_length=20, unique=True, editable=False)
    case_type = models.CharField(max_length=20, choices=CASE_TYPE_CHOICES, default=TYPE_RETURN)
    sub_order = models.ForeignKey(SellerSubOrder, on_delete=models.CASCADE, related_name="cases")
    buyer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="cases")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_REQUESTED)
    reason = models.TextField(max_length=2000)
    seller_notes = models.TextField(blank=True, max_length=2000)

    # Resolution
    resolution_type = models.CharField(max_length=20, choices=RESOLUTION_CHOICES, blank=True)
    resolution_reason = models.TextField(blank=True, max_length=2000)
    linked_refund_id = models.UUIDField(null=True, blank=True)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    # Activity tracking for the "new messages" badge
    last_activity_at = models.DateTimeField(null=True, blank=True)
    last_activity_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    buyer_last_viewed_at = models.DateTimeField(null=True, blank=True)
    seller_last_viewed_at = models.DateTimeField(null=True, blank=True)
    admin_last_viewed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Return Request"
        verbose_name_plural = "Return Requests"
        app_label = "marketplace"
        db_table = "marketplace_return_requests"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["buyer", "-created_at"]),
            models.Index(fields=["sub_order", "status"]),
        ]

    def save(self, *args, **kwargs):
        if not self.case_number:
            self.case_number = f"CASE-{self.id.hex[:8].upper()}"
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.case_number} ({self.status})"

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES


class CaseItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    return_request = models.ForeignKey(ReturnRequest, on_delete=models.CASCADE, related_name="case_items")
    sub_order_item = models.ForeignKey(SellerSubOrderItem, on_delete=models.CASCADE, related_name="case_items")
    quantity = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "marketplace"
        db_table = "marketplace_case_items"


class CaseMessage(models.Model):
    ROLE_BUYER = "buyer"
    ROLE_SELLER = "seller"
    ROLE_ADMIN = "admin"

    ROLE_CHOICES = [
        (ROLE_BUYER, "Buyer"),
        (ROLE_SELLER, "Seller"),
        (ROLE_ADMIN, "Admin"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    return_request = models.ForeignKey(ReturnRequest, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(User, on_delete=models.CASCADE, related_name="case_messages")
    sender_role = models.CharField(max_length=10, choices=ROLE_CHOICES)
    content = models.TextField(max_length=5000)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "marketplace"
        db_table = "marketplace_case_messages"
        ordering = ["created_at"]
