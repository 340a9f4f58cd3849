from django.urls import include, path
from rest_framework.routers import DefaultRouter

from authentication.api.views import metrics_views
from payment_system.api.views import (
    AdminCommissionRecordViewSet,
    AdminCommissionRuleViewSet,
    AdminInvoiceViewSet,
    AdminPayoutViewSet,
    AdminRefundViewSet,
    AdminSettlementViewSet,
    PaymentViewSet,
    SellerFinanceViewSet,
)

router = DefaultRouter()
router.register(r"payments", PaymentViewSet, basename="payment")
router.register(r"seller/finance", SellerFinanceViewSet, basename="seller-finance")
router.register(r"admin/refunds", AdminRefundViewSet, basename="admin-refund")
router.register(r"admin/commission-rules", AdminCommissionRuleViewSet, basename="admin-commission-rule")
router.register(r"admin/commission-records", AdminCommissionRecordViewSet, basename="admin-commission-record")
router.register(r"admin/payouts", AdminPayoutViewSet, basename="admin-payout")
router.register(r"admin/settlements", AdminSettlementViewSet, basename="admin-settlement")
router.register(r"admin/invoices", AdminInvoiceViewSet, basename="admin-invoice")

app_name = "payment_system"

urlpatterns = [
    path("metrics/", metrics_views.metrics, name="metrics"),
    path("", include(router.urls)),
]
