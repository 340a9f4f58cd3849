import uuid

from django.contrib.auth import get_user_model
from django.db import models

User = get_user_model()


class Store(models.Model):
    """A seller's storefront. Products and sub-orders hang off the store."""

    STATUS_PENDING_VERIFICATION = "pending_verification"
    STATUS_ACTIVE = "active"
    STATUS_LIMITED_ACTIVE = "limited_active"
    STATUS_SUSPENDED = "suspended"

    STATUS_CHOICES = [
        (STATUS_PENDING_VERIFICATION, "Pending Verification"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_LIMITED_ACTIVE, "Limited Active"),
        (STATUS_SUSPENDED, "Suspended"),
    ]

    PUBLIC_STATUSES = (STATUS_ACTIVE, STATUS_LIMITED_ACTIVE)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.OneToOneField(User, on_delete=models.CASCADE, related_name="store")
    name = models.CharField(max_length=200, unique=True)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField(blank=True, max_length=2000)
    logo_url = models.URLField(max_length=500, blank=True)
    contact_email = models.EmailField(max_length=254, blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    website_url = models.URLField(max_length=500, blank=True)
    status = models.CharField(max_length=30, choices=STATUS_CHOICES, default=STATUS_PENDING_VERIFICATION)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "sellers"
        db_table = "sellers_stores"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["status"]),
            models.Index(fields=["slug"]),
        ]

    def __str__(self):
        return self.name

    @property
    def is_public(self) -> bool:
        return self.status in self.PUBLIC_STATUSES


class ShippingRule(models.Model):
    """Per-store shipping pricing used by the cart."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.OneToOneField(Store, on_delete=models.CASCADE, related_name="shipping_rule")
    flat_rate = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    per_item_rate = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    free_shipping_threshold = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "sellers"
        db_table = "sellers_shipping_rules"

    def __str__(self):
        return f"Shipping rule for {self.store.name}"


class ShippingMethod(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="shipping_methods")
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True)
    cost = models.DecimalField(max_digits=10, decimal_places=2)
    estimated_delivery_days = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        app_label = "sellers"
        db_table = "sellers_shipping_methods"
        ordering = ["cost", "name"]

    def __str__(self):
        return f"{self.name} ({self.store.name})"
