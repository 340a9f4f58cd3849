from dataclasses import dataclass, field
from typing import Any, Dict

from django.utils import timezone


@dataclass
class DomainEvent:
    """Base class for domain events published on the event bus."""

    event_type: str
    occurred_at: str = field(default_factory=lambda: timezone.now().isoformat())
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"event_type": self.event_type, "occurred_at": self.occurred_at, "payload": self.payload}

    @classmethod
    def from_dict(cls, data: dict) -> "DomainEvent":
        return cls(event_type=data["event_type"], occurred_at=data["occurred_at"], payload=data.get("payload", {}))

    def publish(self, event_bus=None) -> None:
        """Publish the payload under this event's type."""
        if event_bus is None:
            from infrastructure.events import get_event_bus

            event_bus = get_event_bus()
        event_bus.publish(self.event_type, self.payload)
