from .order import Order, OrderItem, SellerSubOrder, SellerSubOrderItem, ShippingStatusHistory
from .return_request import CaseItem, CaseMessage, ReturnRequest


__all__ = [
    "Order",
    "OrderItem",
    "SellerSubOrder",
    "SellerSubOrderItem",
    "ShippingStatusHistory",
    "ReturnRequest",
    "CaseItem",
    "CaseMessage",
]
