import logging

from django.conf import settings

from infrastructure.email import EmailException, EmailMessage
from infrastructure.events import get_event_bus

logger = logging.getLogger(__name__)


def register_authentication_listeners():
    """
    Register all event listeners for the identity context.
    Called when Django app starts.
    """
    event_bus = get_event_bus()

    event_bus.subscribe("user.registered", send_welcome_email)
    event_bus.subscribe("user.role_changed", log_role_change)

    logger.info("Authentication event listeners registered")


def send_welcome_email(event):
    """Send the welcome e-mail for a new account."""
    payload = event.get("payload", {})
    email = payload.get("email")
    if not email:
        return

    from infrastructure.container import container

    platform = settings.INVOICE_SETTINGS.get("PLATFORM_NAME", "Mercato")
    if payload.get("account_type") == "seller":
        body = (
            f"Hi {payload.get('first_name') or 'there'},\n\n"
            f"Your {platform} seller account has been created. Finish onboarding and submit your "
            "KYC documents so we can verify your store."
        )
    else:
        body = f"Hi {payload.get('first_name') or 'there'},\n\nWelcome to {platform}!"

    try:
        container.email().send(
            EmailMessage(subject=f"Welcome to {platform}", body=body, to=[email], tags=["welcome"])
        )
    except EmailException as e:
        logger.error(f"[LISTENER] Welcome e-mail failed for user {payload.get('user_id')}: {e}")


def log_role_change(event):
    payload = event.get("payload", {})
    logger.info(f"[LISTENER] User {payload.get('user_id')} now has role '{payload.get('role')}'")
