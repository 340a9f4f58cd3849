from .order_events import (
    CaseOpenedEvent,
    CaseResolvedEvent,
    OrderCancelledEvent,
    OrderPlacedEvent,
    OrderStatusChangedEvent,
    order_payload,
    sub_order_payload,
)


__all__ = [
    "OrderPlacedEvent",
    "OrderStatusChangedEvent",
    "OrderCancelledEvent",
    "CaseOpenedEvent",
    "CaseResolvedEvent",
    "order_payload",
    "sub_order_payload",
]
