"""
Payment Provider Interface
===========================

Abstract base class defining the contract for talking to a payment gateway:
authorizing buyer payments, refunding them and transferring seller payouts.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class PaymentStatus(str, Enum):
    """Gateway-level payment status."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"
    REFUNDED = "refunded"


@dataclass
class PaymentAuthorization:
    """
    Result of asking the gateway to take a payment.

    Attributes:
        reference: Gateway reference for the payment (session or intent id)
        status: Current gateway status
        redirect_url: Where the buyer must go to finish paying, if anywhere
        metadata: Raw extra data returned by the gateway
    """

    reference: str
    status: PaymentStatus
    redirect_url: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class RefundResult:
    refund_id: str
    amount: Optional[Decimal]
    status: PaymentStatus


@dataclass
class TransferResult:
    transfer_id: str
    amount: Decimal
    currency: str
    destination: str
    status: PaymentStatus


class PaymentProviderInterface(ABC):
    """
    Abstract interface for payment provider operations.

    Concrete implementations:
        - SimulatedPaymentProvider: deterministic in-process gateway
        - StripeProvider: Stripe payment processing
    """

    @abstractmethod
    def authorize_payment(
        self,
        transaction_id: str,
        amount: Decimal,
        currency: str,
        payment_method: str,
        return_url: str,
        cancel_url: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PaymentAuthorization:
        """
        Start a redirect-based payment (card, PayPal, bank transfer).

        Raises:
            PaymentException: If the gateway rejects the request
        """
        pass

    @abstractmethod
    def authorize_blik(
        self,
        transaction_id: str,
        amount: Decimal,
        currency: str,
        blik_code: str,
    ) -> PaymentAuthorization:
        """
        Authorize a BLIK payment with the buyer's six-digit code. No redirect.

        Raises:
            PaymentException: If the gateway rejects the code
        """
        pass

    @abstractmethod
    def create_refund(
        self,
        payment_reference: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """
        Refund a captured payment.

        Args:
            payment_reference: Gateway reference of the captured payment
            amount: Partial refund amount (None for full refund)
            reason: Refund reason

        Raises:
            PaymentException: If refund creation fails
        """
        pass

    @abstractmethod
    def create_transfer(
        self,
        amount: Decimal,
        currency: str,
        destination_account: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TransferResult:
        """
        Transfer funds to a seller's payout account.

        Raises:
            PaymentException: If transfer fails
        """
        pass

    @abstractmethod
    def map_status(self, provider_status: str) -> PaymentStatus:
        """Translate a gateway status string into PaymentStatus."""
        pass


class PaymentException(Exception):
    """Base exception for payment provider operations."""

    pass
