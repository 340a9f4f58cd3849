from .seller_serializers import (
    KycAuditLogSerializer,
    KycRejectSerializer,
    KycSubmissionSerializer,
    KycUploadSerializer,
    OnboardingPayoutSerializer,
    OnboardingSerializer,
    OnboardingStoreProfileSerializer,
    OnboardingVerificationSerializer,
    PayoutSettingsRequestSerializer,
    PayoutSettingsSerializer,
    PublicStoreSerializer,
    ShippingMethodRequestSerializer,
    ShippingMethodSerializer,
    ShippingRuleSerializer,
    StoreProfileRequestSerializer,
    StoreSerializer,
)


__all__ = [
    "KycAuditLogSerializer",
    "KycRejectSerializer",
    "KycSubmissionSerializer",
    "KycUploadSerializer",
    "OnboardingPayoutSerializer",
    "OnboardingSerializer",
    "OnboardingStoreProfileSerializer",
    "OnboardingVerificationSerializer",
    "PayoutSettingsRequestSerializer",
    "PayoutSettingsSerializer",
    "PublicStoreSerializer",
    "ShippingMethodRequestSerializer",
    "ShippingMethodSerializer",
    "ShippingRuleSerializer",
    "StoreProfileRequestSerializer",
    "StoreSerializer",
]
