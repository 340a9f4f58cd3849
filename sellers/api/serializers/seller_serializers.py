from rest_framework import serializers

from sellers.domain.models import (
    KycAuditLog,
    KycSubmission,
    PayoutSettings,
    SellerOnboarding,
    ShippingMethod,
    ShippingRule,
    Store,
)
from utils.logging_utils import mask_value


class StoreSerializer(serializers.ModelSerializer):
    class Meta:
        model = Store
        fields = (
            "id",
            "name",
            "slug",
            "description",
            "logo_url",
            "contact_email",
            "contact_phone",
            "website_url",
            "status",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields


class PublicStoreSerializer(serializers.ModelSerializer):
    class Meta:
        model = Store
        fields = ("id", "name", "slug", "description", "logo_url", "website_url")
        read_only_fields = fields


class StoreProfileRequestSerializer(serializers.Serializer):
    # Lengths are enforced by StoreProfileService so every message is returned together
    name = serializers.CharField()
    description = serializers.CharField(required=False, allow_blank=True, default="")
    logo_url = serializers.CharField(required=False, allow_blank=True, default="")
    website_url = serializers.CharField(required=False, allow_blank=True, default="")
    contact_email = serializers.CharField(required=False, allow_blank=True, default="")
    contact_phone = serializers.CharField(required=False, allow_blank=True, default="")


class OnboardingSerializer(serializers.ModelSerializer):
    bank_account_number = serializers.SerializerMethodField()

    class Meta:
        model = SellerOnboarding
        exclude = ("seller", "personal_id_number")
        read_only_fields = [f.name for f in SellerOnboarding._meta.fields]

    def get_bank_account_number(self, obj):
        return mask_value(obj.bank_account_number) if obj.bank_account_number else ""


class OnboardingStoreProfileSerializer(serializers.Serializer):
    store_name = serializers.CharField(allow_blank=True)
    store_description = serializers.CharField(allow_blank=True)


class OnboardingVerificationSerializer(serializers.Serializer):
    seller_type = serializers.CharField()
    full_name = serializers.CharField(required=False, allow_blank=True)
    personal_id_number = serializers.CharField(required=False, allow_blank=True)
    business_name = serializers.CharField(required=False, allow_blank=True)
    registration_number = serializers.CharField(required=False, allow_blank=True)
    contact_person_name = serializers.CharField(required=False, allow_blank=True)
    contact_person_email = serializers.CharField(required=False, allow_blank=True)
    contact_person_phone = serializers.CharField(required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    tax_id = serializers.CharField(required=False, allow_blank=True)


class OnboardingPayoutSerializer(serializers.Serializer):
    bank_name = serializers.CharField(allow_blank=True)
    account_number = serializers.CharField(allow_blank=True)
    account_holder = serializers.CharField(allow_blank=True)


class KycSubmissionSerializer(serializers.ModelSerializer):
    seller_email = serializers.EmailField(source="seller.email", read_only=True)

    class Meta:
        model = KycSubmission
        fields = (
            "id",
            "seller",
            "seller_email",
            "document_type",
            "file_name",
            "content_type",
            "file_size",
            "status",
            "submitted_at",
            "reviewed_at",
            "reviewed_by",
            "rejection_reason",
        )
        read_only_fields = fields


class KycUploadSerializer(serializers.Serializer):
    document_type = serializers.CharField()
    file = serializers.FileField()


class KycRejectSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True)


class KycAuditLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = KycAuditLog
        fields = ("id", "action", "old_status", "new_status", "performed_by", "details", "created_at")
        read_only_fields = fields


class PayoutSettingsSerializer(serializers.ModelSerializer):
    bank_account_number = serializers.SerializerMethodField()
    bank_iban = serializers.SerializerMethodField()

    class Meta:
        model = PayoutSettings
        fields = (
            "payout_method",
            "bank_name",
            "bank_account_number",
            "bank_account_holder",
            "bank_routing_number",
            "bank_swift_code",
            "bank_iban",
            "payment_account_email",
            "payment_account_id",
            "updated_at",
        )
        read_only_fields = fields

    def get_bank_account_number(self, obj):
        return mask_value(obj.bank_account_number) if obj.bank_account_number else ""

    def get_bank_iban(self, obj):
        return mask_value(obj.bank_iban) if obj.bank_iban else ""


class PayoutSettingsRequestSerializer(serializers.Serializer):
    payout_method = serializers.ChoiceField(choices=PayoutSettings.METHOD_CHOICES)
    bank_name = serializers.CharField(required=False, allow_blank=True)
    bank_account_number = serializers.CharField(required=False, allow_blank=True)
    bank_account_holder = serializers.CharField(required=False, allow_blank=True)
    bank_routing_number = serializers.CharField(required=False, allow_blank=True)
    bank_swift_code = serializers.CharField(required=False, allow_blank=True)
    bank_iban = serializers.CharField(required=False, allow_blank=True)
    payment_account_email = serializers.CharField(required=False, allow_blank=True)
    payment_account_id = serializers.CharField(required=False, allow_blank=True)


class ShippingMethodSerializer(serializers.ModelSerializer):
    class Meta:
        model = ShippingMethod
        fields = ("id", "name", "description", "cost", "estimated_delivery_days", "is_active", "created_at")
        read_only_fields = ("id", "created_at")


class ShippingMethodRequestSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True)
    cost = serializers.DecimalField(max_digits=10, decimal_places=2)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    estimated_delivery_days = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class ShippingRuleSerializer(serializers.ModelSerializer):
    class Meta:
        model = ShippingRule
        fields = ("flat_rate", "per_item_rate", "free_shipping_threshold", "updated_at")
        read_only_fields = ("updated_at",)
        extra_kwargs = {"free_shipping_threshold": {"required": False}}
