from .admin_views import (
    AdminCommissionRecordViewSet,
    AdminCommissionRuleViewSet,
    AdminInvoiceViewSet,
    AdminRefundViewSet,
    AdminSettlementViewSet,
)
from .payment_views import PaymentViewSet
from .payout_views import AdminPayoutViewSet
from .seller_views import SellerFinanceViewSet


__all__ = [
    "AdminCommissionRecordViewSet",
    "AdminCommissionRuleViewSet",
    "AdminInvoiceViewSet",
    "AdminPayoutViewSet",
    "AdminRefundViewSet",
    "AdminSettlementViewSet",
    "PaymentViewSet",
    "SellerFinanceViewSet",
]
