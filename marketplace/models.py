from marketplace.cart.domain.models import Cart, CartItem, PromoCode
from marketplace.catalog.domain.models import Category, Product
from marketplace.ordering.domain.models import (
    CaseItem,
    CaseMessage,
    Order,
    OrderItem,
    ReturnRequest,
    SellerSubOrder,
    SellerSubOrderItem,
    ShippingStatusHistory,
)


__all__ = [
    "Category",
    "Product",
    "Cart",
    "CartItem",
    "PromoCode",
    "Order",
    "OrderItem",
    "SellerSubOrder",
    "SellerSubOrderItem",
    "ShippingStatusHistory",
    "ReturnRequest",
    "CaseItem",
    "CaseMessage",
]
