"""
Health Check Endpoints

Liveness and readiness probes.
"""

import logging

from django.conf import settings
from django.db import connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_live(request):
    """Liveness probe: returns 200 while the process is running."""
    return JsonResponse({"status": "ok"}, status=200)


def health_ready(request):
    """
    Readiness probe: Can the service handle requests?

    Returns 200 when every dependency check passes, 503 otherwise.
    """
    checks = {"database": check_database(), "event_bus": check_event_bus()}

    all_ok = all(checks.values())
    return JsonResponse({"status": "ready" if all_ok else "not_ready", "checks": checks}, status=200 if all_ok else 503)


def check_database():
    try:
        connection.ensure_connection()
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


def check_event_bus():
    """Ping Redis when the Redis bus is configured. The local bus is always up."""
    if settings.INFRASTRUCTURE.get("EVENT_BUS") != "redis":
        return True
    try:
        from infrastructure.events import get_event_bus

        event_bus = get_event_bus()
        return bool(event_bus.redis_client and event_bus.redis_client.ping())
    except Exception as e:
        logger.error(f"Event bus health check failed: {e}")
        return False
