"""
Email Service Factory
======================

Creates the email service selected by INFRASTRUCTURE['EMAIL_BACKEND_TYPE'].
"""

import logging
from typing import Literal, Optional

from django.conf import settings

from .interface import EmailServiceInterface
from .mock_service import MockEmailService
from .smtp_service import SMTPEmailService


logger = logging.getLogger(__name__)

EmailBackend = Literal["smtp", "mock"]


class EmailFactory:
    """
    Factory for creating email service instances.

    Usage:
        email_service = EmailFactory.create()
    """

    @staticmethod
    def create(backend: Optional[EmailBackend] = None) -> EmailServiceInterface:
        default_backend = "mock" if getattr(settings, "TESTING", False) else "smtp"
        backend_type = backend or settings.INFRASTRUCTURE.get("EMAIL_BACKEND_TYPE", default_backend)

        logger.info(f"Creating email service backend: {backend_type}")

        if backend_type == "smtp":
            return SMTPEmailService()
        if backend_type == "mock":
            return MockEmailService()
        raise ValueError(f"Invalid email backend: {backend_type}. Must be 'smtp' or 'mock'")
