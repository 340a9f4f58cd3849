from sellers.domain.models import (  # noqa: F401
    KycAuditLog,
    KycSubmission,
    PayoutSettings,
    SellerOnboarding,
    ShippingMethod,
    ShippingRule,
    Store,
)
