from .cart import Cart, CartItem
from .promo_code import PromoCode


__all__ = ["Cart", "CartItem", "PromoCode"]
