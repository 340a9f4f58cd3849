from .checkout_service import CheckoutService
from .order_service import OrderService
from .return_service import ReturnService


__all__ = ["CheckoutService", "OrderService", "ReturnService"]
