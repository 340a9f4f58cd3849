from .cart_serializers import (
    AddToCartRequestSerializer,
    AppliedPromoCodeSerializer,
    ApplyPromoCodeRequestSerializer,
    CartItemSerializer,
    CartSerializer,
    CheckoutValidationSerializer,
    PromoCodeRequestSerializer,
    PromoCodeSerializer,
    UpdateCartItemRequestSerializer,
)


__all__ = [
    "AddToCartRequestSerializer",
    "AppliedPromoCodeSerializer",
    "ApplyPromoCodeRequestSerializer",
    "CartItemSerializer",
    "CartSerializer",
    "CheckoutValidationSerializer",
    "PromoCodeRequestSerializer",
    "PromoCodeSerializer",
    "UpdateCartItemRequestSerializer",
]
