import uuid

from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()


class SellerOnboarding(models.Model):
    """
    Step-by-step seller onboarding: store profile, verification data and
    payout basics. Completing it creates the store and payout settings.
    """

    STATUS_IN_PROGRESS = "in_progress"
    STATUS_PENDING_VERIFICATION = "pending_verification"
    STATUS_VERIFIED = "verified"
    STATUS_REJECTED = "rejected"

    STATUS_CHOICES = [
        (STATUS_IN_PROGRESS, "In Progress"),
        (STATUS_PENDING_VERIFICATION, "Pending Verification"),
        (STATUS_VERIFIED, "Verified"),
        (STATUS_REJECTED, "Rejected"),
    ]

    STEP_STORE_PROFILE = "store_profile"
    STEP_VERIFICATION = "verification"
    STEP_PAYOUT = "payout"
    STEP_COMPLETED = "completed"

    STEP_CHOICES = [
        (STEP_STORE_PROFILE, "Store Profile"),
        (STEP_VERIFICATION, "Verification"),
        (STEP_PAYOUT, "Payout"),
        (STEP_COMPLETED, "Completed"),
    ]

    TYPE_INDIVIDUAL = "individual"
    TYPE_COMPANY = "company"

    SELLER_TYPE_CHOICES = [
        (TYPE_INDIVIDUAL, "Individual"),
        (TYPE_COMPANY, "Company"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller = models.OneToOneField(User, on_delete=models.CASCADE, related_name="seller_onboarding")
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=STATUS_IN_PROGRESS)
    current_step = models.CharField(max_length=20, choices=STEP_CHOICES, default=STEP_STORE_PROFILE)
    seller_type = models.CharField(max_length=20, choices=SELLER_TYPE_CHOICES, blank=True)

    # Store profile step
    store_name = models.CharField(max_length=200, blank=True)
    store_description = models.TextField(blank=True)
    store_profile_completed = models.BooleanField(default=False)

    # Verification step (individual)
    full_name = models.CharField(max_length=200, blank=True)
    personal_id_number = models.CharField(max_length=50, blank=True)
    # Verification step (company)
    business_name = models.CharField(max_length=200, blank=True)
    registration_number = models.CharField(max_length=50, blank=True)
    contact_person_name = models.CharField(max_length=200, blank=True)
    contact_person_email = models.EmailField(max_length=254, blank=True)
    contact_person_phone = models.CharField(max_length=20, blank=True)
    # Verification step (both)
    address = models.CharField(max_length=500, blank=True)
    tax_id = models.CharField(max_length=50, blank=True)
    verification_completed = models.BooleanField(default=False)

    # Payout step
    bank_name = models.CharField(max_length=200, blank=True)
    bank_account_number = models.CharField(max_length=50, blank=True)
    bank_account_holder = models.CharField(max_length=200, blank=True)
    payout_completed = models.BooleanField(default=False)

    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "sellers"
        db_table = "sellers_onboarding"
        indexes = [models.Index(fields=["status"])]

    def __str__(self):
        return f"Onboarding for {self.seller.email} ({self.status})"
