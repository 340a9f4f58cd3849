from rest_framework import serializers

from marketplace.ordering.domain.models import CaseItem, CaseMessage, ReturnRequest


class CaseItemSerializer(serializers.ModelSerializer):
    sub_order_item_id = serializers.UUIDField(read_only=True)
    product_title = serializers.CharField(source="sub_order_item.product_title", read_only=True)
    unit_price = serializers.DecimalField(
        source="sub_order_item.unit_price", max_digits=10, decimal_places=2, read_only=True
    )

    class Meta:
        model = CaseItem
        fields = ("id", "sub_order_item_id", "product_title", "unit_price", "quantity")
        read_only_fields = fields


class ReturnRequestSerializer(serializers.ModelSerializer):
    case_items = CaseItemSerializer(many=True, read_only=True)
    sub_order_number = serializers.CharField(source="sub_order.sub_order_number", read_only=True)
    store_name = serializers.CharField(source="sub_order.store_name", read_only=True)

    class Meta:
        model = ReturnRequest
        fields = (
            "id",
            "case_number",
            "case_type",
            "status",
            "sub_order_id",
            "sub_order_number",
            "store_name",
            "reason",
            "seller_notes",
            "resolution_type",
            "resolution_reason",
            "linked_refund_id",
            "refund_amount",
            "resolved_at",
            "case_items",
            "last_activity_at",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class SelectedItemSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity = serializers.IntegerField()


class ReturnRequestCreateSerializer(serializers.Serializer):
    sub_order_id = serializers.UUIDField()
    case_type = serializers.CharField(required=False, default=ReturnRequest.TYPE_RETURN)
    reason = serializers.CharField(allow_blank=True, trim_whitespace=False)
    selected_items = SelectedItemSerializer(many=True, required=False, default=list)


class CanInitiateResponseSerializer(serializers.Serializer):
    can_initiate = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)


class CaseStatusRequestSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    seller_notes = serializers.CharField(required=False, allow_blank=True, default="")


class ResolveCaseRequestSerializer(serializers.Serializer):
    resolution_type = serializers.CharField(max_length=20)
    resolution_reason = serializers.CharField(required=False, allow_blank=True, default="")
    refund_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    refund_amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, default=None
    )


class CaseMessageSerializer(serializers.ModelSerializer):
    sender_email = serializers.CharField(source="sender.email", read_only=True)

    class Meta:
        model = CaseMessage
        fields = ("id", "sender_id", "sender_email", "sender_role", "content", "created_at")
        read_only_fields = fields


class CaseMessageRequestSerializer(serializers.Serializer):
    content = serializers.CharField(allow_blank=True, trim_whitespace=False)
