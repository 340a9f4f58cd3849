from .cart_views import CartViewSet, PromoCodeAdminViewSet


__all__ = ["CartViewSet", "PromoCodeAdminViewSet"]
