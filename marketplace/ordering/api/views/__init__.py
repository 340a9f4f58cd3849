from .order_views import AdminOrderViewSet, CheckoutView, OrderViewSet, SellerSubOrderViewSet
from .return_views import CaseViewSet, SellerCaseViewSet


__all__ = [
    "AdminOrderViewSet",
    "CaseViewSet",
    "CheckoutView",
    "OrderViewSet",
    "SellerCaseViewSet",
    "SellerSubOrderViewSet",
]
