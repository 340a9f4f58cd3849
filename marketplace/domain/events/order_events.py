"""Order lifecycle events published on the event bus."""

from dataclasses import dataclass

from infrastructure.events import DomainEvent


@dataclass
class OrderPlacedEvent(DomainEvent):
    event_type: str = "order.placed"


@dataclass
class OrderStatusChangedEvent(DomainEvent):
    event_type: str = "order.status_changed"


@dataclass
class OrderCancelledEvent(DomainEvent):
    event_type: str = "order.cancelled"


@dataclass
class CaseOpenedEvent(DomainEvent):
    event_type: str = "case.opened"


@dataclass
class CaseResolvedEvent(DomainEvent):
    event_type: str = "case.resolved"


def order_payload(order, **extra) -> dict:
    payload = {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "buyer_id": str(order.buyer_id),
        "status": order.status,
        "total_amount": str(order.total_amount),
    }
    payload.update(extra)
    return payload


def sub_order_payload(sub_order, previous_status: str, **extra) -> dict:
    payload = {
        "order_id": str(sub_order.order_id),
        "sub_order_id": str(sub_order.id),
        "sub_order_number": sub_order.sub_order_number,
        "store_id": str(sub_order.store_id),
        "previous_status": previous_status,
        "new_status": sub_order.status,
        "tracking_number": sub_order.tracking_number,
        "shipping_carrier": sub_order.shipping_carrier,
    }
    payload.update(extra)
    return payload
