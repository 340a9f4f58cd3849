from .kyc_service import KycService
from .onboarding_service import SellerOnboardingService
from .payout_settings_service import PayoutSettingsService
from .shipping_service import ShippingService
from .store_profile_service import StoreProfileService


__all__ = [
    "KycService",
    "SellerOnboardingService",
    "PayoutSettingsService",
    "ShippingService",
    "StoreProfileService",
]
