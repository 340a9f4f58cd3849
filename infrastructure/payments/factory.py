"""
Payment Provider Factory
=========================

Creates the payment provider selected by INFRASTRUCTURE['PAYMENT_PROVIDER'].
"""

import logging
from typing import Literal, Optional

from django.conf import settings

from .interface import PaymentProviderInterface
from .simulated_provider import SimulatedPaymentProvider
from .stripe_provider import StripeProvider

logger = logging.getLogger(__name__)

PaymentBackend = Literal["simulated", "stripe"]


class PaymentFactory:
    """
    Factory for creating payment provider instances.

    Usage:
        payment_provider = PaymentFactory.create()
    """

    @staticmethod
    def create(backend: Optional[PaymentBackend] = None) -> PaymentProviderInterface:
        backend_type = backend or settings.INFRASTRUCTURE.get("PAYMENT_PROVIDER", "simulated")

        logger.info(f"Creating payment provider: {backend_type}")

        if backend_type == "stripe":
            return StripeProvider()
        if backend_type == "simulated":
            return SimulatedPaymentProvider()
        raise ValueError(f"Invalid payment provider: {backend_type}. Must be 'simulated' or 'stripe'")
