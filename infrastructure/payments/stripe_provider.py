"""
Stripe Payment Provider
========================

Concrete implementation of PaymentProviderInterface using Stripe.
Network calls go through private ``_x_api`` methods wrapped with tenacity
retries for rate limits and transient connection errors.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

import stripe
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .interface import (
    PaymentAuthorization,
    PaymentException,
    PaymentProviderInterface,
    PaymentStatus,
    RefundResult,
    TransferResult,
)

logger = logging.getLogger(__name__)

TRANSIENT_STRIPE_ERRORS = (
    stripe.RateLimitError,
    stripe.APIConnectionError,
    stripe.APIError,
)

stripe_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type(TRANSIENT_STRIPE_ERRORS),
    reraise=True,
)

STRIPE_METHOD_TYPES = {
    "credit_card": "card",
    "paypal": "paypal",
    "bank_transfer": "sepa_debit",
}


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1")))


class StripeProvider(PaymentProviderInterface):
    """
    Stripe payment provider implementation.

    Configuration (in settings.py):
        STRIPE_SECRET_KEY: Stripe secret API key
    """

    def __init__(self):
        stripe.api_key = getattr(settings, "STRIPE_SECRET_KEY", "")
        if not stripe.api_key:
            logger.warning("STRIPE_SECRET_KEY not configured")

    @stripe_retry
    def _create_checkout_session_api(self, **kwargs):
        return stripe.checkout.Session.create(**kwargs)

    @stripe_retry
    def _create_payment_intent_api(self, **kwargs):
        return stripe.PaymentIntent.create(**kwargs)

    @stripe_retry
    def _create_refund_api(self, **kwargs):
        return stripe.Refund.create(**kwargs)

    @stripe_retry
    def _create_transfer_api(self, **kwargs):
        return stripe.Transfer.create(**kwargs)

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
        """Create a Stripe Checkout session the buyer is redirected to."""
        try:
            session = self._create_checkout_session_api(
                payment_method_types=[STRIPE_METHOD_TYPES.get(payment_method, "card")],
                line_items=[
                    {
                        "price_data": {
                            "currency": currency.lower(),
                            "unit_amount": to_minor_units(amount),
                            "product_data": {"name": "Mercato order"},
                        },
                        "quantity": 1,
                    }
                ],
                mode="payment",
                client_reference_id=str(transaction_id),
                success_url=f"{return_url}?transactionId={transaction_id}",
                cancel_url=cancel_url or return_url,
                metadata={"transaction_id": str(transaction_id), **(metadata or {})},
            )
            logger.info(f"Created Stripe checkout session: {session.id}")
            return PaymentAuthorization(
                reference=session.id,
                status=self.map_status(session.payment_status),
                redirect_url=session.url,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe session creation failed: {str(e)}")
            raise PaymentException(f"Failed to create checkout session: {str(e)}") from e

    def authorize_blik(
        self, transaction_id: str, amount: Decimal, currency: str, blik_code: str
    ) -> PaymentAuthorization:
        """Confirm a BLIK PaymentIntent with the buyer's code."""
        try:
            intent = self._create_payment_intent_api(
                amount=to_minor_units(amount),
                currency=currency.lower(),
                payment_method_types=["blik"],
                payment_method_data={"type": "blik"},
                payment_method_options={"blik": {"code": blik_code}},
                confirm=True,
                metadata={"transaction_id": str(transaction_id)},
            )
            logger.info(f"Created Stripe BLIK payment intent: {intent.id}")
            return PaymentAuthorization(reference=intent.id, status=self.map_status(intent.status))
        except stripe.StripeError as e:
            logger.error(f"Stripe BLIK authorization failed: {str(e)}")
            raise PaymentException(f"BLIK authorization failed: {str(e)}") from e

    def create_refund(
        self,
        payment_reference: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        try:
            refund_params = {"payment_intent": payment_reference}
            if amount:
                refund_params["amount"] = to_minor_units(amount)
            if reason:
                refund_params["metadata"] = {"reason": reason[:500]}

            refund = self._create_refund_api(**refund_params)
            logger.info(f"Created refund: {refund.id} for payment {payment_reference}")
            return RefundResult(refund_id=refund.id, amount=amount, status=self.map_status(refund.status))
        except stripe.StripeError as e:
            logger.error(f"Refund creation failed: {str(e)}")
            raise PaymentException(f"Refund failed: {str(e)}") from e

    def create_transfer(
        self,
        amount: Decimal,
        currency: str,
        destination_account: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TransferResult:
        try:
            transfer_params = {
                "amount": to_minor_units(amount),
                "currency": currency.lower(),
                "destination": destination_account,
            }
            if metadata:
                transfer_params["metadata"] = metadata

            transfer = self._create_transfer_api(**transfer_params)
            logger.info(f"Created Stripe transfer: {transfer.id} to {destination_account}")
            return TransferResult(
                transfer_id=transfer.id,
                amount=amount,
                currency=currency.upper(),
                destination=destination_account,
                status=PaymentStatus.SUCCEEDED,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe transfer failed: {str(e)}")
            raise PaymentException(f"Transfer failed: {str(e)}") from e

    def map_status(self, provider_status: str) -> PaymentStatus:
        status_mapping = {
            "unpaid": PaymentStatus.PENDING,
            "requires_payment_method": PaymentStatus.PENDING,
            "requires_confirmation": PaymentStatus.PROCESSING,
            "requires_action": PaymentStatus.PROCESSING,
            "processing": PaymentStatus.PROCESSING,
            "pending": PaymentStatus.PROCESSING,
            "paid": PaymentStatus.SUCCEEDED,
            "no_payment_required": PaymentStatus.SUCCEEDED,
            "succeeded": PaymentStatus.SUCCEEDED,
            "failed": PaymentStatus.FAILED,
            "canceled": PaymentStatus.CANCELED,
        }
        return status_mapping.get((provider_status or "").lower(), PaymentStatus.PENDING)
