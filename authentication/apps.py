import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class AuthenticationConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "authentication"

    def ready(self):
        """
        Register event listeners and start tracing.
        """
        try:
            from authentication.infra.events.listeners import register_authentication_listeners
            from infrastructure.events import get_event_bus

            register_authentication_listeners()

            # No-op for the local bus; spawns the pub/sub thread for Redis
            get_event_bus().start_listening()
        except Exception as e:
            logger.warning(f"Failed to initialize Event Bus listeners: {e}")

        try:
            from django.conf import settings

            from infrastructure.observability import setup_tracing

            tracing = getattr(settings, "TRACING", {})
            setup_tracing(
                service_name=tracing.get("SERVICE_NAME", "mercato"),
                enable=tracing.get("ENABLED", False),
            )
        except Exception as e:
            logger.warning(f"Failed to initialize OpenTelemetry tracing: {e}")
