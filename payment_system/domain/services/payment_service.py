"""
PaymentService - Orchestration Layer for Payments

Starts buyer payments through the configured PaymentProviderInterface,
applies provider callbacks and publishes the payment events that drive
order status (``payment.succeeded`` / ``payment.failed``).
"""

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from infrastructure.observability import tracer
from infrastructure.payments.interface import PaymentException, PaymentProviderInterface
from payment_system.domain.events import PaymentFailedEvent, PaymentSucceededEvent, transaction_payload
from payment_system.domain.models import PaymentTransaction
from payment_system.domain.services.payment_status import StatusMapping, map_provider_status
from payment_system.infra.observability.metrics import (
    payment_callback_duration,
    payment_volume_total,
    payments_initiated_total,
)
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err


logger = logging.getLogger(__name__)

PAYMENT_METHODS = [
    {
        "id": PaymentTransaction.METHOD_CREDIT_CARD,
        "setting": "ENABLE_CREDIT_CARD",
        "name": "Credit Card",
        "description": "Pay securely with your credit or debit card",
        "icon_class": "bi-credit-card",
        "is_default": True,
        "sort_order": 1,
    },
    {
        "id": PaymentTransaction.METHOD_PAYPAL,
        "setting": "ENABLE_PAYPAL",
        "name": "PayPal",
        "description": "Pay with your PayPal account",
        "icon_class": "bi-paypal",
        "is_default": False,
        "sort_order": 2,
    },
    {
        "id": PaymentTransaction.METHOD_BANK_TRANSFER,
        "setting": "ENABLE_BANK_TRANSFER",
        "name": "Bank Transfer",
        "description": "Pay by direct bank transfer",
        "icon_class": "bi-bank",
        "is_default": False,
        "sort_order": 3,
    },
    {
        "id": PaymentTransaction.METHOD_BLIK,
        "setting": "ENABLE_BLIK",
        "name": "BLIK",
        "description": "Pay with a six-digit BLIK code from your banking app",
        "icon_class": "bi-phone",
        "is_default": False,
        "sort_order": 4,
    },
]


def is_valid_blik_code(code: Optional[str]) -> bool:
    return bool(code) and len(code) == 6 and code.isdigit()


def simulated_external_reference() -> str:
    return f"SIM-{uuid.uuid4().hex[:16].upper()}"


class PaymentService(BaseService):
    """
    Service for orchestrating payment operations.

    Responsibilities:
    - List the enabled payment methods
    - Initiate payments (redirect flow or BLIK)
    - Apply provider callbacks and publish payment events
    - Map provider status codes

    Dependencies:
    - PaymentProviderInterface: simulated gateway or Stripe
    - EventBus: For publishing events
    """

    def __init__(self, provider: PaymentProviderInterface, event_bus=None):
        super().__init__()
        self.provider = provider
        self.event_bus = event_bus

    # Payment methods

    def get_payment_methods(self) -> ServiceResult[List[Dict[str, Any]]]:
        config = settings.PAYMENT_SETTINGS
        methods = [
            {key: value for key, value in method.items() if key != "setting"}
            for method in PAYMENT_METHODS
            if config.get(method["setting"], False)
        ]
        if not methods:
            methods = [{key: value for key, value in PAYMENT_METHODS[0].items() if key != "setting"}]
        return service_ok(sorted(methods, key=lambda method: method["sort_order"]))

    def _method_enabled(self, payment_method: str) -> bool:
        methods = self.get_payment_methods().value
        return any(method["id"] == payment_method for method in methods)

    # Initiation

    @staticmethod
    def _initiation_value(payment_transaction: PaymentTransaction, authorized: bool = False) -> Dict[str, Any]:
        awaiting_blik = (
            payment_transaction.payment_method == PaymentTransaction.METHOD_BLIK
            and payment_transaction.status == PaymentTransaction.STATUS_PENDING
            and not authorized
        )
        return {
            "transaction": payment_transaction,
            "redirect_url": payment_transaction.redirect_url or None,
            "requires_blik_code": awaiting_blik,
            "authorized": authorized,
        }

    @BaseService.log_performance
    def initiate_payment(
        self,
        buyer,
        amount: Decimal,
        payment_method: str,
        return_url: str,
        cancel_url: str = "",
        idempotency_key: Optional[str] = None,
        blik_code: Optional[str] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Start paying ``amount`` with ``payment_method``.

        BLIK without a code leaves the transaction pending and asks for the
        code; BLIK with a code is authorized immediately (``authorized``)
        and the caller confirms it through ``handle_payment_callback``.
        Every other method returns the provider redirect URL.
        """
        errors = []
        if buyer is None:
            errors.append("Buyer ID is required.")
        if amount is None or amount <= 0:
            errors.append("Amount must be greater than zero.")
        if not payment_method:
            errors.append("Payment method is required.")
        if not return_url:
            errors.append("Return URL is required.")
        if errors:
            return validation_err(errors)

        if not self._method_enabled(payment_method):
            return service_err(
                ErrorCodes.PAYMENT_METHOD_UNAVAILABLE, f"Payment method '{payment_method}' is not available."
            )

        is_blik = payment_method == PaymentTransaction.METHOD_BLIK
        if is_blik and blik_code and not is_valid_blik_code(blik_code):
            return service_err(ErrorCodes.VALIDATION_ERROR, "BLIK code must be 6 digits.")

        if idempotency_key:
            existing = PaymentTransaction.objects.filter(buyer=buyer, idempotency_key=idempotency_key).first()
            if existing:
                self.logger.info(f"Idempotent replay of payment {existing.id} for key {idempotency_key}")
                return service_ok(self._initiation_value(existing))

        currency = settings.PAYMENT_SETTINGS["CURRENCY"]
        payment_transaction = PaymentTransaction.objects.create(
            buyer=buyer,
            amount=amount,
            currency=currency,
            payment_method=payment_method,
            return_url=return_url,
            cancel_url=cancel_url or "",
            idempotency_key=idempotency_key or None,
        )

        try:
            if is_blik and blik_code:
                authorization = self.provider.authorize_blik(str(payment_transaction.id), amount, currency, blik_code)
                payment_transaction.status = PaymentTransaction.STATUS_PROCESSING
            elif is_blik:
                authorization = None
            else:
                authorization = self.provider.authorize_payment(
                    str(payment_transaction.id),
                    amount,
                    currency,
                    payment_method,
                    return_url,
                    cancel_url=cancel_url or None,
                    metadata={"buyer_id": str(buyer.id)},
                )
        except PaymentException as e:
            self.logger.error(f"Payment provider error initiating payment {payment_transaction.id}: {e}")
            payment_transaction.status = PaymentTransaction.STATUS_FAILED
            payment_transaction.error_message = str(e)
            payment_transaction.save(update_fields=["status", "error_message", "updated_at"])
            return service_err(ErrorCodes.PROVIDER_ERROR, "The payment could not be started. Please try again.")

        if authorization is not None:
            payment_transaction.external_reference = authorization.reference
            if not is_blik:
                payment_transaction.redirect_url = (
                    authorization.redirect_url or f"{return_url}?transactionId={payment_transaction.id}"
                )
            payment_transaction.save()

        payments_initiated_total.labels(method=payment_method).inc()
        self.logger.info(
            f"Payment initiated: transaction={payment_transaction.id}, amount={amount}, method={payment_method}"
        )
        return service_ok(self._initiation_value(payment_transaction, authorized=bool(is_blik and blik_code)))

    @BaseService.log_performance
    def submit_blik_code(self, transaction_id, buyer, code: str) -> ServiceResult[PaymentTransaction]:
        """Authorize a pending BLIK payment with the buyer's code and confirm it."""
        payment_transaction = PaymentTransaction.objects.filter(id=transaction_id).first()
        if not payment_transaction:
            return service_err(ErrorCodes.NOT_FOUND, "Transaction not found.")
        if payment_transaction.buyer_id != buyer.id:
            return service_err(ErrorCodes.NOT_AUTHORIZED, "You are not authorized to access this transaction.")
        if payment_transaction.payment_method != PaymentTransaction.METHOD_BLIK:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Transaction is not a BLIK payment.")
        if payment_transaction.status != PaymentTransaction.STATUS_PENDING:
            return service_err(ErrorCodes.INVALID_STATE, "Transaction is not awaiting a BLIK code.")
        if not is_valid_blik_code(code):
            return service_err(ErrorCodes.VALIDATION_ERROR, "BLIK code must be 6 digits.")

        try:
            authorization = self.provider.authorize_blik(
                str(payment_transaction.id), payment_transaction.amount, payment_transaction.currency, code
            )
        except PaymentException as e:
            self.logger.warning(f"BLIK authorization rejected for {payment_transaction.id}: {e}")
            return service_err(ErrorCodes.PROVIDER_ERROR, "The BLIK code was rejected. Please try again.")

        return self.handle_payment_callback(
            payment_transaction.id, buyer, is_success=True, external_ref=authorization.reference
        )

    # Callback

    @BaseService.log_performance
    def handle_payment_callback(
        self, transaction_id, buyer, is_success: bool, external_ref: Optional[str] = None
    ) -> ServiceResult[PaymentTransaction]:
        """
        Apply the provider outcome to the transaction.

        Repeated callbacks on a final transaction return it unchanged and
        publish nothing.
        """
        with tracer.start_as_current_span("payment_callback") as span, payment_callback_duration.time():
            span.set_attribute("payment.transaction_id", str(transaction_id))
            span.set_attribute("payment.success", bool(is_success))

            with transaction.atomic():
                payment_transaction = (
                    PaymentTransaction.objects.select_for_update().filter(id=transaction_id).first()
                )
                if not payment_transaction:
                    self.logger.warning(f"Transaction not found: {transaction_id}")
                    return service_err(ErrorCodes.NOT_FOUND, "Transaction not found.")
                if buyer is not None and payment_transaction.buyer_id != buyer.id:
                    self.logger.warning(
                        f"Unauthorized callback attempt on {transaction_id} by buyer {buyer.id}"
                    )
                    return service_err(
                        ErrorCodes.NOT_AUTHORIZED, "You are not authorized to access this transaction."
                    )
                if payment_transaction.is_final:
                    self.logger.info(f"Callback for final transaction {transaction_id} ignored")
                    return service_ok(payment_transaction)

                if is_success:
                    payment_transaction.status = PaymentTransaction.STATUS_PAID
                    payment_transaction.completed_at = timezone.now()
                    payment_transaction.external_reference = (
                        external_ref or payment_transaction.external_reference or simulated_external_reference()
                    )
                    payment_transaction.error_message = ""
                else:
                    payment_transaction.status = PaymentTransaction.STATUS_FAILED
                    payment_transaction.error_message = "Payment was not completed."
                payment_transaction.save()

            payment_volume_total.labels(
                currency=payment_transaction.currency, status=payment_transaction.status
            ).inc(float(payment_transaction.amount))
            span.set_attribute("payment.status", payment_transaction.status)

            if is_success:
                PaymentSucceededEvent(payload=transaction_payload(payment_transaction)).publish(self.event_bus)
            else:
                PaymentFailedEvent(
                    payload=transaction_payload(payment_transaction, error_message=payment_transaction.error_message)
                ).publish(self.event_bus)

            self.logger.info(f"Payment callback processed: {payment_transaction.id} -> {payment_transaction.status}")
            return service_ok(payment_transaction)

    # Queries

    def get_transaction(self, transaction_id, buyer) -> ServiceResult[PaymentTransaction]:
        payment_transaction = PaymentTransaction.objects.filter(id=transaction_id).first()
        if not payment_transaction:
            return service_err(ErrorCodes.NOT_FOUND, "Transaction not found.")
        if payment_transaction.buyer_id != buyer.id:
            return service_err(ErrorCodes.NOT_AUTHORIZED, "You are not authorized to access this transaction.")
        return service_ok(payment_transaction)

    def map_provider_status(self, provider_code: Optional[str]) -> StatusMapping:
        return map_provider_status(provider_code)
