from .factory import PaymentFactory
from .interface import (
    PaymentAuthorization,
    PaymentException,
    PaymentProviderInterface,
    PaymentStatus,
    RefundResult,
    TransferResult,
)
from .simulated_provider import SimulatedPaymentProvider
from .stripe_provider import StripeProvider


__all__ = [
    "PaymentAuthorization",
    "PaymentException",
    "PaymentFactory",
    "PaymentProviderInterface",
    "PaymentStatus",
    "RefundResult",
    "SimulatedPaymentProvider",
    "StripeProvider",
    "TransferResult",
]
