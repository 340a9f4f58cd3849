from rest_framework import serializers

from marketplace.cart.domain.models import CartItem, PromoCode


class CartItemSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(read_only=True)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = (
            "id",
            "product_id",
            "store_id",
            "store_name",
            "product_title",
            "product_price",
            "product_image_url",
            "quantity",
            "total_price",
            "added_at",
        )
        read_only_fields = fields


class StoreShippingSerializer(serializers.Serializer):
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_free_shipping = serializers.BooleanField()
    amount_to_free_shipping = serializers.DecimalField(max_digits=12, decimal_places=2, allow_null=True)


class CartStoreGroupSerializer(serializers.Serializer):
    store_id = serializers.CharField()
    store_name = serializers.CharField()
    items = CartItemSerializer(many=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    item_count = serializers.IntegerField()
    shipping = StoreShippingSerializer()


class CartSerializer(serializers.Serializer):
    """Output of CartService.get_cart."""

    cart_id = serializers.UUIDField()
    stores = CartStoreGroupSerializer(many=True)
    item_count = serializers.IntegerField()
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    promo_code = serializers.CharField(allow_null=True)
    shipping_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)


class AddToCartRequestSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(required=False, default=1)


class UpdateCartItemRequestSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(help_text="0 or less removes the item")


class ApplyPromoCodeRequestSerializer(serializers.Serializer):
    code = serializers.CharField(allow_blank=True)


class AppliedPromoCodeSerializer(serializers.Serializer):
    promo_code_id = serializers.UUIDField()
    code = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class StockIssueSerializer(serializers.Serializer):
    cart_item_id = serializers.CharField()
    product_id = serializers.CharField()
    product_title = serializers.CharField()
    requested_quantity = serializers.IntegerField()
    available_stock = serializers.IntegerField()
    is_unavailable = serializers.BooleanField()


class PriceChangeSerializer(serializers.Serializer):
    cart_item_id = serializers.CharField()
    product_id = serializers.CharField()
    product_title = serializers.CharField()
    original_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    current_price = serializers.DecimalField(max_digits=10, decimal_places=2)


class CheckoutValidationSerializer(serializers.Serializer):
    is_valid = serializers.BooleanField()
    stock_issues = StockIssueSerializer(many=True)
    price_changes = PriceChangeSerializer(many=True)


class PromoCodeSerializer(serializers.ModelSerializer):
    class Meta:
        model = PromoCode
        fields = (
            "id",
            "code",
            "description",
            "discount_type",
            "discount_value",
            "minimum_order_amount",
            "max_discount_amount",
            "scope",
            "store",
            "start_date",
            "end_date",
            "usage_limit",
            "usage_count",
            "is_active",
            "created_at",
        )
        read_only_fields = fields


class PromoCodeRequestSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    description = serializers.CharField(required=False, allow_blank=True)
    discount_type = serializers.CharField(required=False, default=PromoCode.DISCOUNT_PERCENTAGE)
    discount_value = serializers.DecimalField(max_digits=10, decimal_places=2)
    minimum_order_amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    max_discount_amount = serializers.DecimalField(max_digits=10, decimal_places=2, required=False, allow_null=True)
    scope = serializers.CharField(required=False, default=PromoCode.SCOPE_PLATFORM)
    store_id = serializers.UUIDField(required=False, allow_null=True)
    start_date = serializers.DateTimeField(required=False, allow_null=True)
    end_date = serializers.DateTimeField(required=False, allow_null=True)
    usage_limit = serializers.IntegerField(required=False, allow_null=True, min_value=1)
