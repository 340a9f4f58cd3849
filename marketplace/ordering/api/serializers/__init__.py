from .order_serializers import (
    CancelOrderRequestSerializer,
    CheckoutRequestSerializer,
    CheckoutResponseSerializer,
    ItemStatusesRequestSerializer,
    OrderFilterSerializer,
    OrderItemSerializer,
    OrderSerializer,
    SellerSubOrderDetailSerializer,
    SellerSubOrderSerializer,
    ShippingStatusHistorySerializer,
    SubOrderStatusRequestSerializer,
    TrackingRequestSerializer,
)
from .return_request_serializers import (
    CanInitiateResponseSerializer,
    CaseMessageRequestSerializer,
    CaseMessageSerializer,
    CaseStatusRequestSerializer,
    ResolveCaseRequestSerializer,
    ReturnRequestCreateSerializer,
    ReturnRequestSerializer,
)


__all__ = [
    "CancelOrderRequestSerializer",
    "CanInitiateResponseSerializer",
    "CaseMessageRequestSerializer",
    "CaseMessageSerializer",
    "CaseStatusRequestSerializer",
    "CheckoutRequestSerializer",
    "CheckoutResponseSerializer",
    "ItemStatusesRequestSerializer",
    "OrderFilterSerializer",
    "OrderItemSerializer",
    "OrderSerializer",
    "ResolveCaseRequestSerializer",
    "ReturnRequestCreateSerializer",
    "ReturnRequestSerializer",
    "SellerSubOrderDetailSerializer",
    "SellerSubOrderSerializer",
    "ShippingStatusHistorySerializer",
    "SubOrderStatusRequestSerializer",
    "TrackingRequestSerializer",
]
