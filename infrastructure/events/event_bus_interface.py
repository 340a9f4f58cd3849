from abc import ABC, abstractmethod
from typing import Callable


class EventBus(ABC):
    """
    Publish/subscribe contract for domain events.

    Handlers receive the event envelope:
        {"event_type": ..., "occurred_at": ..., "payload": {...}}
    """

    @abstractmethod
    def publish(self, event_type: str, payload: dict):
        pass

    @abstractmethod
    def subscribe(self, event_type: str, handler: Callable):
        pass

    def start_listening(self):
        """Begin delivering events to subscribers (no-op for synchronous buses)."""
        return None
