from .admin_kyc_views import AdminKycViewSet
from .onboarding_views import KycSubmissionViewSet, OnboardingViewSet
from .store_views import PayoutSettingsView, PublicStoreView, ShippingMethodViewSet, StoreProfileView


__all__ = [
    "AdminKycViewSet",
    "KycSubmissionViewSet",
    "OnboardingViewSet",
    "PayoutSettingsView",
    "PublicStoreView",
    "ShippingMethodViewSet",
    "StoreProfileView",
]
