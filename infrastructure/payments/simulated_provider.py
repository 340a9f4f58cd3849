"""
Simulated Payment Provider
===========================

Deterministic gateway used in development and tests. Every operation
succeeds unless the input is unusable, and references are prefixed ``SIM-``.
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, Optional

from .interface import (
    PaymentAuthorization,
    PaymentException,
    PaymentProviderInterface,
    PaymentStatus,
    RefundResult,
    TransferResult,
)

logger = logging.getLogger(__name__)


def simulated_reference(prefix: str = "SIM") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


class SimulatedPaymentProvider(PaymentProviderInterface):
    """In-process payment gateway with predictable outcomes."""

    def __init__(self):
        self.refunds = []
        self.transfers = []

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
        if amount <= 0:
            raise PaymentException("Amount must be greater than zero.")

        redirect_url = f"{return_url}?transactionId={transaction_id}"
        logger.info(f"[SIMULATED] Payment {transaction_id} awaiting buyer confirmation via {payment_method}")
        return PaymentAuthorization(
            reference=simulated_reference(),
            status=PaymentStatus.PENDING,
            redirect_url=redirect_url,
            metadata=metadata or {},
        )

    def authorize_blik(
        self, transaction_id: str, amount: Decimal, currency: str, blik_code: str
    ) -> PaymentAuthorization:
        if not blik_code or len(blik_code) != 6 or not blik_code.isdigit():
            raise PaymentException("BLIK code must be 6 digits.")

        logger.info(f"[SIMULATED] BLIK payment {transaction_id} authorized")
        return PaymentAuthorization(reference=simulated_reference(), status=PaymentStatus.SUCCEEDED)

    def create_refund(
        self,
        payment_reference: str,
        amount: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        result = RefundResult(refund_id=simulated_reference("SIM-RF"), amount=amount, status=PaymentStatus.SUCCEEDED)
        self.refunds.append(result)
        logger.info(f"[SIMULATED] Refund {result.refund_id} for payment {payment_reference}: {amount}")
        return result

    def create_transfer(
        self,
        amount: Decimal,
        currency: str,
        destination_account: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> TransferResult:
        if not destination_account:
            raise PaymentException("Destination account is required.")
        if amount <= 0:
            raise PaymentException("Transfer amount must be greater than zero.")

        result = TransferResult(
            transfer_id=simulated_reference("SIM-TR"),
            amount=amount,
            currency=currency.upper(),
            destination=destination_account,
            status=PaymentStatus.SUCCEEDED,
        )
        self.transfers.append(result)
        logger.info(f"[SIMULATED] Transfer {result.transfer_id}: {amount} {currency} to {destination_account}")
        return result

    def map_status(self, provider_status: str) -> PaymentStatus:
        try:
            return PaymentStatus((provider_status or "").strip().lower())
        except ValueError:
            return PaymentStatus.PENDING
