from .kyc import KycAuditLog, KycSubmission
from .onboarding import SellerOnboarding
from .payout_settings import PayoutSettings
from .store import ShippingMethod, ShippingRule, Store


__all__ = [
    "Store",
    "ShippingRule",
    "ShippingMethod",
    "SellerOnboarding",
    "KycSubmission",
    "KycAuditLog",
    "PayoutSettings",
]
