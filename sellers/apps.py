import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class SellersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sellers"

    def ready(self):
        try:
            from sellers.infra.events.listeners import register_sellers_listeners

            register_sellers_listeners()
        except Exception as e:
            logger.warning(f"Failed to register sellers event listeners: {e}")
