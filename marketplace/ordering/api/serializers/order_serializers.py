from rest_framework import serializers

from marketplace.ordering.domain.models import (
    Order,
    OrderItem,
    SellerSubOrder,
    SellerSubOrderItem,
    ShippingStatusHistory,
)


class OrderItemSerializer(serializers.ModelSerializer):
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = (
            "id",
            "product_id",
            "store_id",
            "store_name",
            "product_title",
            "product_image_url",
            "unit_price",
            "quantity",
            "total_price",
        )
        read_only_fields = fields


class SellerSubOrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SellerSubOrderItem
        fields = (
            "id",
            "product_id",
            "product_title",
            "product_image_url",
            "unit_price",
            "quantity",
            "status",
            "shipped_at",
            "delivered_at",
            "cancelled_at",
        )
        read_only_fields = fields


class SellerSubOrderSerializer(serializers.ModelSerializer):
    items = SellerSubOrderItemSerializer(many=True, read_only=True)
    order_number = serializers.CharField(source="order.order_number", read_only=True)

    class Meta:
        model = SellerSubOrder
        fields = (
            "id",
            "sub_order_number",
            "order_id",
            "order_number",
            "store_id",
            "store_name",
            "status",
            "items_subtotal",
            "shipping_cost",
            "total_amount",
            "shipping_method_name",
            "tracking_number",
            "shipping_carrier",
            "items",
            "created_at",
            "paid_at",
            "shipped_at",
            "delivered_at",
            "cancelled_at",
            "refunded_at",
        )
        read_only_fields = fields


class SellerSubOrderDetailSerializer(SellerSubOrderSerializer):
    """Adds the buyer and delivery details a seller needs to ship."""

    buyer_email = serializers.CharField(source="order.buyer_email", read_only=True)
    delivery_address = serializers.SerializerMethodField()

    class Meta(SellerSubOrderSerializer.Meta):
        fields = SellerSubOrderSerializer.Meta.fields + ("buyer_email", "delivery_address")
        read_only_fields = fields

    def get_delivery_address(self, obj):
        return DeliveryAddressSerializer.from_order(obj.order)


class DeliveryAddressSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=200)
    address_line1 = serializers.CharField(max_length=255)
    address_line2 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    postal_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100)
    phone_number = serializers.CharField(max_length=30, required=False, allow_blank=True)

    @staticmethod
    def from_order(order: Order) -> dict:
        return {
            "full_name": order.delivery_full_name,
            "address_line1": order.delivery_address_line1,
            "address_line2": order.delivery_address_line2,
            "city": order.delivery_city,
            "state": order.delivery_state,
            "postal_code": order.delivery_postal_code,
            "country": order.delivery_country,
            "phone_number": order.delivery_phone_number,
        }


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    sub_orders = SellerSubOrderSerializer(many=True, read_only=True)
    delivery_address = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = (
            "id",
            "order_number",
            "status",
            "payment_transaction_id",
            "payment_method_name",
            "items_subtotal",
            "shipping_total",
            "discount_amount",
            "total_amount",
            "promo_code",
            "buyer_email",
            "delivery_address",
            "delivery_instructions",
            "items",
            "sub_orders",
            "cancellation_reason",
            "created_at",
            "paid_at",
            "cancelled_at",
            "refunded_at",
        )
        read_only_fields = fields

    def get_delivery_address(self, obj):
        return DeliveryAddressSerializer.from_order(obj)


class ShippingStatusHistorySerializer(serializers.ModelSerializer):
    changed_by_email = serializers.SerializerMethodField()

    class Meta:
        model = ShippingStatusHistory
        fields = (
            "id",
            "previous_status",
            "new_status",
            "changed_by_email",
            "changed_at",
            "tracking_number",
            "shipping_carrier",
            "notes",
        )
        read_only_fields = fields

    def get_changed_by_email(self, obj):
        return obj.changed_by.email if obj.changed_by_id else None


class CheckoutRequestSerializer(serializers.Serializer):
    delivery_address = DeliveryAddressSerializer()
    payment_method = serializers.CharField(max_length=30)
    return_url = serializers.URLField()
    cancel_url = serializers.URLField(required=False, allow_blank=True, default="")
    idempotency_key = serializers.CharField(max_length=64, required=False, allow_null=True, default=None)
    blik_code = serializers.CharField(max_length=6, required=False, allow_null=True, default=None)
    delivery_instructions = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class CheckoutPaymentSerializer(serializers.Serializer):
    transaction_id = serializers.UUIDField(source="transaction.id")
    status = serializers.CharField(source="transaction.status")
    redirect_url = serializers.CharField(allow_null=True)
    requires_blik_code = serializers.BooleanField()


class CheckoutResponseSerializer(serializers.Serializer):
    order = OrderSerializer()
    payment = CheckoutPaymentSerializer()


class CancelOrderRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class SubOrderStatusRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[choice for choice, _ in SellerSubOrder.STATUS_CHOICES])
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    shipping_carrier = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")


class TrackingRequestSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=100, allow_blank=True)
    shipping_carrier = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")


class ItemStatusUpdateSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    status = serializers.CharField(max_length=20)


class ItemStatusesRequestSerializer(serializers.Serializer):
    updates = ItemStatusUpdateSerializer(many=True)


class OrderFilterSerializer(serializers.Serializer):
    """Query string filters shared by the buyer, seller and admin order lists."""

    status = serializers.CharField(required=False, help_text="Comma separated statuses")
    from_date = serializers.DateField(required=False)
    to_date = serializers.DateField(required=False)
    store_id = serializers.UUIDField(required=False)
    search = serializers.CharField(required=False, allow_blank=True)
    page = serializers.IntegerField(required=False, default=1)
    page_size = serializers.IntegerField(required=False, default=20)

    def to_filters(self) -> dict:
        data = dict(self.validated_data)
        statuses = data.pop("status", "")
        if statuses:
            data["statuses"] = [status.strip() for status in statuses.split(",") if status.strip()]
        return data
