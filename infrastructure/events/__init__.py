import logging

from django.conf import settings

from .domain_event import DomainEvent
from .event_bus_interface import EventBus
from .local_event_bus import LocalEventBus
from .redis_event_bus import RedisEventBus


logger = logging.getLogger(__name__)

_event_bus_instance = None


def get_event_bus() -> EventBus:
    """Get the process-wide event bus selected by INFRASTRUCTURE['EVENT_BUS']."""
    global _event_bus_instance
    if _event_bus_instance is None:
        backend = settings.INFRASTRUCTURE.get("EVENT_BUS", "redis")
        if backend == "local":
            _event_bus_instance = LocalEventBus()
        elif backend == "redis":
            _event_bus_instance = RedisEventBus()
        else:
            raise ValueError(f"Invalid event bus backend: {backend}. Must be 'local' or 'redis'")
        logger.info(f"Created event bus: {type(_event_bus_instance).__name__}")
    return _event_bus_instance


__all__ = ["DomainEvent", "EventBus", "LocalEventBus", "RedisEventBus", "get_event_bus"]
