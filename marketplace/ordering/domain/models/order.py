import uuid

from django.contrib.auth import get_user_model
from django.db import models

from marketplace.catalog.domain.models import Product
from sellers.domain.models import Store

User = get_user_model()


class Order(models.Model):
    """
    A buyer's order. Items are split per store into SellerSubOrder rows,
    which are what sellers fulfil.
    """

    STATUS_NEW = "new"  # Default status - set to paid/failed by the payment callback
    STATUS_PAID = "paid"
    STATUS_FAILED = "failed"
    STATUS_CANCELLED = "cancelled"
    STATUS_REFUNDED = "refunded"

    STATUS_CHOICES = [
        (STATUS_NEW, "New"),
        (STATUS_PAID, "Paid"),
        (STATUS_FAILED, "Failed"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REFUNDED, "Refunded"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=20, unique=True, editable=False)
    buyer = models.ForeignKey(User, on_delete=models.CASCADE, related_name="orders")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NEW)

    # Payment
    payment_transaction_id = models.UUIDField(null=True, blank=True, db_index=True)
    payment_method_name = models.CharField(max_length=50, blank=True)

    # Pricing
    items_subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    promo_code = models.CharField(max_length=50, blank=True)

    # Delivery
    delivery_full_name = models.CharField(max_length=200)
    delivery_address_line1 = models.CharField(max_length=200)
    delivery_address_line2 = models.CharField(max_length=200, blank=True)
    delivery_city = models.CharField(max_length=100)
    delivery_state = models.CharField(max_length=100, blank=True)
    delivery_postal_code = models.CharField(max_length=20)
    delivery_country = models.CharField(max_length=100)
    delivery_phone_number = models.CharField(max_length=30, blank=True)
    delivery_instructions = models.TextField(blank=True, max_length=500)
    buyer_email = models.EmailField(blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.TextField(blank=True)

    class Meta:
        app_label = "marketplace"
        db_table = "marketplace_orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["buyer", "-created_at"]),
            models.Index(fields=["status", "-created_at"]),
        ]

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = f"ORD-{self.id.hex[:8].upper()}"
        super().save(*args, **kwargs)

    def __str__(self):
        return f"Order {self.order_number}"


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, related_name="order_items")

    # Snapshot at time of purchase
    store_id = models.UUIDField()
    store_name = models.CharField(max_length=200)
    product_title = models.CharField(max_length=200)
    product_image_url = models.CharField(max_length=500, blank=True)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        app_label = "marketplace"
        db_table = "marketplace_order_items"
        ordering = ["created_at"]

    @property
    def total_price(self):
        return self.unit_price * self.quantity

    def __str__(self):
        return f"{self.quantity}x {self.product_title} in order {self.order.order_number}"


class SellerSubOrder(models.Model):
    """The part of an order fulfilled by one store."""

    STATUS_NEW = "new"
    STATUS_PAID = "paid"
    STATUS_PREPARING = "preparing"
    STATUS_SHIPPED = "shipped"
    STATUS_DELIVERED = "delivered"
    STATUS_CANCELLED = "cancelled"
    STATUS_REFUNDED = "refunded"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_NEW, "New"),
        (STATUS_PAID, "Paid"),
        (STATUS_PREPARING, "Preparing"),
        (STATUS_SHIPPED, "Shipped"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_REFUNDED, "Refunded"),
        (STATUS_FAILED, "Failed"),
    ]

    ALLOWED_TRANSITIONS = {
        STATUS_NEW: (STATUS_PAID, STATUS_CANCELLED),
        STATUS_PAID: (STATUS_PREPARING, STATUS_CANCELLED, STATUS_REFUNDED),
        STATUS_PREPARING: (STATUS_SHIPPED, STATUS_CANCELLED),
        STATUS_SHIPPED: (STATUS_DELIVERED,),
        STATUS_DELIVERED: (STATUS_REFUNDED,),
        STATUS_CANCELLED: (STATUS_REFUNDED,),
        STATUS_REFUNDED: (),
        STATUS_FAILED: (),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="sub_orders")
    store = models.ForeignKey(Store, on_delete=models.PROTECT, related_name="sub_orders")
    store_name = models.CharField(max_length=200)
    sub_order_number = models.CharField(max_length=30, unique=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NEW)

    items_subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)

    shipping_method_name = models.CharField(max_length=100, blank=True)
    tracking_number = models.CharField(max_length=100, blank=True)
    shipping_carrier = models.CharField(max_length=100, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "marketplace"
        db_table = "marketplace_seller_sub_orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["store", "status"]),
            models.Index(fields=["store", "-created_at"]),
            models.Index(fields=["status", "delivered_at"]),
        ]

    def __str__(self):
        return self.sub_order_number

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, ())


class SellerSubOrderItem(models.Model):
    STATUS_NEW = "new"
    STATUS_PREPARING = "preparing"
    STATUS_SHIPPED = "shipped"
    STATUS_DELIVERED = "delivered"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_NEW, "New"),
        (STATUS_PREPARING, "Preparing"),
        (STATUS_SHIPPED, "Shipped"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    ALLOWED_TRANSITIONS = {
        STATUS_NEW: (STATUS_PREPARING, STATUS_SHIPPED, STATUS_CANCELLED),
        STATUS_PREPARING: (STATUS_SHIPPED, STATUS_CANCELLED),
        STATUS_SHIPPED: (STATUS_DELIVERED,),
        STATUS_DELIVERED: (),
        STATUS_CANCELLED: (),
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sub_order = models.ForeignKey(SellerSubOrder, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, related_name="sub_order_items")
    product_title = models.CharField(max_length=200)
    product_image_url = models.CharField(max_length=500, blank=True)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_NEW)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        app_label = "marketplace"
        db_table = "marketplace_seller_sub_order_items"
        ordering = ["created_at"]

    @property
    def total_price(self):
        return self.unit_price * self.quantity

    def __str__(self):
        return f"{self.quantity}x {self.product_title} in {self.sub_order.sub_order_number}"


class ShippingStatusHistory(models.Model):
    """Audit trail of sub-order status changes."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sub_order = models.ForeignKey(SellerSubOrder, on_delete=models.CASCADE, related_name="status_history")
    previous_status = models.CharField(max_length=20, blank=True)
    new_status = models.CharField(max_length=20)
    changed_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    changed_at = models.DateTimeField(auto_now_add=True)
    tracking_number = models.CharField(max_length=100, blank=True)
    shipping_carrier = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        app_label = "marketplace"
        db_table = "marketplace_shipping_status_history"
        ordering = ["changed_at"]
        verbose_name_plural = "Shipping status history"

    def __str__(self):
        return f"{self.sub_order.sub_order_number}: {self.previous_status} -> {self.new_status}"
