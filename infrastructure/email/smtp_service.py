"""
SMTP Email Service
==================

EmailServiceInterface on top of Django's configured email backend.
"""

import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives

from .interface import EmailException, EmailMessage, EmailServiceInterface


logger = logging.getLogger(__name__)


class SMTPEmailService(EmailServiceInterface):
    """
    Django email service implementation.

    Configuration (in settings.py):
        EMAIL_BACKEND, EMAIL_HOST, EMAIL_PORT, EMAIL_HOST_USER,
        EMAIL_HOST_PASSWORD, EMAIL_USE_TLS, DEFAULT_FROM_EMAIL
    """

    def __init__(self):
        self.default_from = getattr(settings, "DEFAULT_FROM_EMAIL", "noreply@example.com")

    def send(self, message: EmailMessage) -> bool:
        try:
            msg = EmailMultiAlternatives(
                subject=message.subject,
                body=message.body,
                from_email=message.from_email or self.default_from,
                to=message.to,
            )
            if message.html_body:
                msg.attach_alternative(message.html_body, "text/html")
            for filename, content, mimetype in message.attachments:
                msg.attach(filename, content, mimetype)

            success = msg.send(fail_silently=False) > 0
            if success:
                logger.info(f"Email '{message.subject}' sent to {len(message.to)} recipient(s)")
            else:
                logger.warning(f"Email '{message.subject}' was not sent")
            return success

        except Exception as e:
            logger.error(f"Failed to send email: {str(e)}")
            raise EmailException(f"Email send failed: {str(e)}") from e
