from django.urls import include, path
from rest_framework.routers import DefaultRouter

from authentication.api.views import metrics_views
from sellers.api.views import (
    AdminKycViewSet,
    KycSubmissionViewSet,
    OnboardingViewSet,
    PayoutSettingsView,
    PublicStoreView,
    ShippingMethodViewSet,
    StoreProfileView,
)

app_name = "sellers"

router = DefaultRouter()
router.register(r"onboarding", OnboardingViewSet, basename="onboarding")
router.register(r"kyc", KycSubmissionViewSet, basename="kyc")
router.register(r"admin/kyc", AdminKycViewSet, basename="admin-kyc")
router.register(r"shipping-methods", ShippingMethodViewSet, basename="shipping-method")

urlpatterns = [
    path("store/", StoreProfileView.as_view(), name="store-profile"),
    path("stores/<slug:slug>/", PublicStoreView.as_view(), name="store-public"),
    path("payout-settings/", PayoutSettingsView.as_view(), name="payout-settings"),
    path("metrics/", metrics_views.metrics, name="metrics"),
    path("", include(router.urls)),
]
