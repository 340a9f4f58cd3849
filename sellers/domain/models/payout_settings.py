import uuid

from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()


class PayoutSettings(models.Model):
    """Where a seller's payouts are sent."""

    METHOD_BANK_TRANSFER = "bank_transfer"
    METHOD_PAYMENT_ACCOUNT = "payment_account"

    METHOD_CHOICES = [
        (METHOD_BANK_TRANSFER, "Bank Transfer"),
        (METHOD_PAYMENT_ACCOUNT, "Payment Account"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller = models.OneToOneField(User, on_delete=models.CASCADE, related_name="payout_settings")
    payout_method = models.CharField(max_length=20, choices=METHOD_CHOICES, default=METHOD_BANK_TRANSFER)

    bank_name = models.CharField(max_length=200, blank=True)
    bank_account_number = models.CharField(max_length=50, blank=True)
    bank_account_holder = models.CharField(max_length=200, blank=True)
    bank_routing_number = models.CharField(max_length=20, blank=True)
    bank_swift_code = models.CharField(max_length=11, blank=True)
    bank_iban = models.CharField(max_length=34, blank=True)

    payment_account_email = models.EmailField(max_length=254, blank=True)
    payment_account_id = models.CharField(max_length=100, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "sellers"
        db_table = "sellers_payout_settings"
        verbose_name_plural = "payout settings"

    def __str__(self):
        return f"Payout settings for {self.seller.email}"

    @property
    def destination(self) -> str:
        """Account identifier handed to the payment provider."""
        if self.payout_method == self.METHOD_PAYMENT_ACCOUNT:
            return self.payment_account_id or self.payment_account_email
        return self.bank_iban or self.bank_account_number
