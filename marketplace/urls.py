from django.urls import include, path
from rest_framework.routers import DefaultRouter

from authentication.api.views import metrics_views
from marketplace.cart.api.views import CartViewSet, PromoCodeAdminViewSet
from marketplace.catalog.api.views import CategoryViewSet, ProductViewSet
from marketplace.ordering.api.views import (
    AdminOrderViewSet,
    CaseViewSet,
    CheckoutView,
    OrderViewSet,
    SellerCaseViewSet,
    SellerSubOrderViewSet,
)

router = DefaultRouter()
router.register(r"categories", CategoryViewSet, basename="category")
router.register(r"products", ProductViewSet, basename="product")
router.register(r"cart", CartViewSet, basename="cart")
router.register(r"orders", OrderViewSet, basename="order")
router.register(r"cases", CaseViewSet, basename="case")
router.register(r"seller/sub-orders", SellerSubOrderViewSet, basename="seller-sub-order")
router.register(r"seller/cases", SellerCaseViewSet, basename="seller-case")
router.register(r"admin/orders", AdminOrderViewSet, basename="admin-order")
router.register(r"admin/promo-codes", PromoCodeAdminViewSet, basename="admin-promo-code")

app_name = "marketplace"

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path("metrics/", metrics_views.metrics, name="metrics"),
    path("", include(router.urls)),
]
