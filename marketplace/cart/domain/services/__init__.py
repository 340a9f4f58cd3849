from .cart_service import CartService
from .checkout_validation_service import CheckoutValidationService
from .promo_code_service import PromoCodeService
from .shipping_calculator import ShippingCalculator

__all__ = [
    "CartService",
    "CheckoutValidationService",
    "PromoCodeService",
    "ShippingCalculator",
]
