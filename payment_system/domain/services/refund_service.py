"""
RefundService - gives buyers their money back.

A refund unwinds the escrow for the affected sellers, hands back the
proportional commission and asks the payment provider to return the money.
Provider or bookkeeping failures leave a ``failed`` refund behind for
follow-up instead of a half-applied one.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from infrastructure.observability import tracer
from infrastructure.payments.interface import PaymentException, PaymentProviderInterface
from payment_system.domain.events import PaymentRefundedEvent, PaymentRefundFailedEvent, refund_payload
from payment_system.domain.exceptions import EscrowStateError, PaymentProviderError
from payment_system.domain.models import EscrowEntry, PaymentTransaction, Refund
from payment_system.domain.services.commission_service import quantize
from payment_system.infra.observability.metrics import refund_volume_total, refunds_total
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err


def _validate_common(order_id, payment_transaction_id, reason, initiated_by_user_id, initiated_by_role) -> List[str]:
    errors = []
    if not order_id:
        errors.append("Order ID is required.")
    if not payment_transaction_id:
        errors.append("Payment transaction ID is required.")
    if not (reason or "").strip():
        errors.append("Refund reason is required.")
    if not initiated_by_user_id:
        errors.append("Initiating user ID is required.")
    if not (initiated_by_role or "").strip():
        errors.append("Initiating user role is required.")
    return errors


class RefundService(BaseService):
    def __init__(self, escrow_service, commission_service, provider: PaymentProviderInterface, event_bus=None):
        super().__init__()
        self.escrow_service = escrow_service
        self.commission_service = commission_service
        self.provider = provider
        self.event_bus = event_bus

    @staticmethod
    def _refundable_entries(order_id, seller_id=None) -> List[EscrowEntry]:
        queryset = EscrowEntry.objects.filter(order_id=order_id, status__in=EscrowEntry.REFUNDABLE_STATUSES)
        if seller_id:
            queryset = queryset.filter(seller_id=seller_id)
        return list(queryset.order_by("created_at"))

    def _log_provider_error(self, refund: Refund, message: str) -> None:
        if settings.REFUND_SETTINGS.get("LOG_PROVIDER_ERRORS", True):
            self.logger.error(f"Provider error during refund processing: refund={refund.id}, error={message}")

    def _fail(self, refund: Refund, error: Exception) -> ServiceResult:
        refund.status = Refund.STATUS_FAILED
        refund.provider_error = str(error)
        refund.save(update_fields=["status", "provider_error", "updated_at"])
        self._log_provider_error(refund, str(error))
        refunds_total.labels(refund_type=refund.refund_type, status=Refund.STATUS_FAILED).inc()
        PaymentRefundFailedEvent(payload=refund_payload(refund, error=str(error))).publish(self.event_bus)
        return service_err(ErrorCodes.PROVIDER_ERROR, "The refund could not be processed. Please try again later.")

    def _apply_to_transaction(self, payment_transaction_id, amount: Decimal) -> None:
        payment_transaction = PaymentTransaction.objects.select_for_update().get(id=payment_transaction_id)
        payment_transaction.refunded_amount += amount
        if payment_transaction.refunded_amount >= payment_transaction.amount:
            payment_transaction.status = PaymentTransaction.STATUS_REFUNDED
        payment_transaction.save(update_fields=["refunded_amount", "status", "updated_at"])

    def _complete(self, refund: Refund, escrow_total: Decimal, commission_total: Decimal) -> ServiceResult[Refund]:
        try:
            result = self.provider.create_refund(
                refund.payment_transaction.external_reference or str(refund.payment_transaction_id),
                amount=refund.amount,
                reason=refund.reason,
            )
        except PaymentException as e:
            raise PaymentProviderError(str(e)) from e
        self._apply_to_transaction(refund.payment_transaction_id, refund.amount)

        refund.status = Refund.STATUS_COMPLETED
        refund.escrow_refunded_amount = escrow_total
        refund.commission_refunded_amount = commission_total
        refund.external_reference = result.refund_id
        refund.completed_at = timezone.now()
        refund.save()

        refunds_total.labels(refund_type=refund.refund_type, status=Refund.STATUS_COMPLETED).inc()
        refund_volume_total.labels(currency=refund.currency).inc(float(refund.amount))
        PaymentRefundedEvent(payload=refund_payload(refund)).publish(self.event_bus)
        self.logger.info(f"Refund {refund.id} completed: {refund.amount} {refund.currency} for order {refund.order_id}")
        return service_ok(refund)

    def _refund_entry(self, entry: EscrowEntry, amount: Decimal, audit_note: str) -> Decimal:
        """Refund ``amount`` of one entry and return the commission handed back."""
        escrow = self.escrow_service.partial_refund_escrow(entry.id, amount, audit_note=audit_note)
        if not escrow.ok:
            raise EscrowStateError(escrow.error_detail)
        commission = self.commission_service.recalculate_commission_on_refund(entry.order_id, entry.seller_id, amount)
        if not commission.ok:
            self.logger.warning(f"Commission not adjusted for order {entry.order_id}: {commission.error_detail}")
            return Decimal("0.00")
        record = commission.value
        return quantize(record.commission_amount * amount / record.order_amount)

    @BaseService.log_performance
    def process_full_refund(
        self,
        order_id,
        payment_transaction_id,
        reason: str,
        initiated_by_user_id,
        initiated_by_role: str,
        audit_note: Optional[str] = None,
        seller_id=None,
    ) -> ServiceResult[Refund]:
        """
        Refund everything still held in escrow for the order, or only the
        ``seller_id`` store's share when given.
        """
        errors = _validate_common(order_id, payment_transaction_id, reason, initiated_by_user_id, initiated_by_role)
        if errors:
            return validation_err(errors)

        with tracer.start_as_current_span("process_full_refund") as span:
            span.set_attribute("order.id", str(order_id))
            entries = self._refundable_entries(order_id, seller_id)
            refundable = sum((entry.remaining_amount for entry in entries), Decimal("0.00"))
            if refundable <= 0:
                return service_err(ErrorCodes.INVALID_STATE, "No refundable escrow balance for this order.")

            payment_transaction = PaymentTransaction.objects.filter(id=payment_transaction_id).first()
            if not payment_transaction:
                return service_err(ErrorCodes.NOT_FOUND, "Payment transaction not found.")

            refund = Refund.objects.create(
                order_id=order_id,
                payment_transaction=payment_transaction,
                seller_id=seller_id,
                refund_type=Refund.TYPE_FULL,
                status=Refund.STATUS_PROCESSING,
                amount=refundable,
                currency=payment_transaction.currency,
                reason=reason,
                initiated_by_user_id=str(initiated_by_user_id),
                initiated_by_role=initiated_by_role,
                audit_note=audit_note or "",
            )
            note = audit_note or f"Full refund: {reason}"
            try:
                with transaction.atomic():
                    commission_total = Decimal("0.00")
                    for entry in entries:
                        commission_total += self._refund_entry(entry, entry.remaining_amount, note)
                    return self._complete(refund, refundable, commission_total)
            except Exception as e:
                span.record_exception(e)
                return self._fail(refund, e)

    @BaseService.log_performance
    def process_partial_refund(
        self,
        order_id,
        payment_transaction_id,
        amount: Decimal,
        reason: str,
        initiated_by_user_id,
        initiated_by_role: str,
        audit_note: Optional[str] = None,
        seller_id=None,
    ) -> ServiceResult[Refund]:
        errors = _validate_common(order_id, payment_transaction_id, reason, initiated_by_user_id, initiated_by_role)
        if amount is None or amount <= 0:
            errors.append("Refund amount must be greater than zero.")
        if errors:
            return validation_err(errors)

        entries = self._refundable_entries(order_id, seller_id)
        if not entries:
            return service_err(ErrorCodes.INVALID_STATE, "No refundable escrow balance for this order.")
        entry = next((candidate for candidate in entries if candidate.remaining_amount >= amount), None)
        if entry is None:
            available = max(candidate.remaining_amount for candidate in entries)
            return service_err(
                ErrorCodes.INSUFFICIENT_BALANCE,
                f"Refund amount ({amount:.2f}) exceeds available balance ({available:.2f}).",
            )

        payment_transaction = PaymentTransaction.objects.filter(id=payment_transaction_id).first()
        if not payment_transaction:
            return service_err(ErrorCodes.NOT_FOUND, "Payment transaction not found.")

        refund = Refund.objects.create(
            order_id=order_id,
            payment_transaction=payment_transaction,
            seller_id=seller_id or entry.seller_id,
            refund_type=Refund.TYPE_PARTIAL,
            status=Refund.STATUS_PROCESSING,
            amount=amount,
            currency=payment_transaction.currency,
            reason=reason,
            initiated_by_user_id=str(initiated_by_user_id),
            initiated_by_role=initiated_by_role,
            audit_note=audit_note or "",
        )
        try:
            with transaction.atomic():
                commission = self._refund_entry(entry, amount, audit_note or f"Partial refund: {reason}")
                return self._complete(refund, amount, commission)
        except Exception as e:
            return self._fail(refund, e)

    # Queries

    def get_refund(self, refund_id) -> ServiceResult[Refund]:
        refund = Refund.objects.filter(id=refund_id).first()
        if not refund:
            return service_err(ErrorCodes.NOT_FOUND, "Refund not found.")
        return service_ok(refund)

    def get_refunds_by_order(self, order_id) -> ServiceResult[Dict[str, Any]]:
        refunds = list(Refund.objects.filter(order_id=order_id))
        total = sum(
            (refund.amount for refund in refunds if refund.status == Refund.STATUS_COMPLETED), Decimal("0.00")
        )
        return service_ok({"refunds": refunds, "total_refunded": total})

    def check_seller_refund_eligibility(self, order_id, seller_id) -> ServiceResult[Dict[str, Any]]:
        """
        Whether the seller may still refund the buyer on this order, and how much.
        """
        config = settings.REFUND_SETTINGS
        entry = EscrowEntry.objects.filter(order_id=order_id, seller_id=seller_id).order_by("created_at").first()
        if not entry:
            return service_err(ErrorCodes.NOT_FOUND, "No escrow entry found for the seller on this order.")

        def ineligible(reason: str) -> ServiceResult:
            return service_ok(
                {
                    "eligible": False,
                    "reason": reason,
                    "remaining_balance": entry.remaining_amount,
                    "max_refundable": Decimal("0.00"),
                }
            )

        if entry.status == EscrowEntry.STATUS_RELEASED:
            return ineligible("Escrow has already been released to the seller.")
        if entry.status == EscrowEntry.STATUS_REFUNDED:
            return ineligible("Order has already been fully refunded.")
        window = config["SELLER_REFUND_WINDOW_DAYS"]
        if timezone.now() - entry.created_at > timedelta(days=window):
            return ineligible(f"Seller refund window of {window} days has expired.")
        if not config.get("ALLOW_SELLER_PARTIAL_REFUNDS", True):
            return ineligible("Partial refunds by sellers are not allowed.")

        already_refunded = Refund.objects.filter(
            order_id=order_id, seller_id=seller_id, status=Refund.STATUS_COMPLETED
        ).aggregate(total=Sum("amount"))["total"] or Decimal("0.00")
        by_percentage = entry.amount * Decimal(str(config["MAX_SELLER_REFUND_PERCENTAGE"])) / Decimal("100")
        max_refundable = min(entry.remaining_amount, by_percentage - already_refunded)
        if max_refundable <= 0:
            return ineligible("Maximum refund limit has been reached.")

        return service_ok(
            {
                "eligible": True,
                "reason": "",
                "remaining_balance": entry.remaining_amount,
                "max_refundable": max_refundable.quantize(Decimal("0.01")),
            }
        )

    @BaseService.log_performance
    def process_seller_refund(
        self, order_id, seller_id, amount: Decimal, reason: str, initiated_by_user_id
    ) -> ServiceResult[Refund]:
        """Partial refund a seller grants from their own escrow share, within the eligibility limits."""
        eligibility = self.check_seller_refund_eligibility(order_id, seller_id)
        if not eligibility.ok:
            return eligibility
        if not eligibility.value["eligible"]:
            return service_err(ErrorCodes.INVALID_STATE, eligibility.value["reason"])
        max_refundable = eligibility.value["max_refundable"]
        if amount is not None and amount > max_refundable:
            return service_err(
                ErrorCodes.INSUFFICIENT_BALANCE,
                f"Refund amount ({amount:.2f}) exceeds the maximum refundable amount ({max_refundable:.2f}).",
            )

        entry = EscrowEntry.objects.filter(order_id=order_id, seller_id=seller_id).order_by("created_at").first()
        return self.process_partial_refund(
            order_id=order_id,
            payment_transaction_id=entry.payment_transaction_id,
            amount=amount,
            reason=reason,
            initiated_by_user_id=initiated_by_user_id,
            initiated_by_role="seller",
            seller_id=seller_id,
        )
