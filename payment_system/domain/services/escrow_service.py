"""
EscrowService - holds each seller's share of a paid order.

Entries are created when a payment succeeds, released to the seller after
fulfilment (and the eligibility period) and refunded when the buyer gets
their money back. Escrow writes run inside the caller's transaction;
unexpected errors propagate so the whole operation rolls back.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from payment_system.domain.models import EscrowEntry
from payment_system.infra.observability.metrics import escrow_held_value, escrow_released_total
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err


def eligibility_days() -> int:
    return settings.ESCROW_SETTINGS["PAYOUT_ELIGIBILITY_DAYS"]


def plural_entries(count: int) -> str:
    return f"{count} entry(ies)"


class EscrowService(BaseService):
    def _entries(self, order_id, seller_id=None):
        queryset = EscrowEntry.objects.select_for_update().filter(order_id=order_id)
        if seller_id:
            queryset = queryset.filter(seller_id=seller_id)
        return list(queryset.order_by("created_at"))

    @staticmethod
    def _not_found(seller_id) -> ServiceResult:
        if seller_id:
            return service_err(ErrorCodes.NOT_FOUND, "No escrow entries found for the specified order and seller.")
        return service_err(ErrorCodes.NOT_FOUND, "No escrow entries found for the specified order.")

    def refresh_held_gauge(self, currency: str) -> None:
        held = EscrowEntry.objects.filter(currency=currency, status__in=EscrowEntry.REFUNDABLE_STATUSES).aggregate(
            total=Sum("amount"), refunded=Sum("refunded_amount")
        )
        value = (held["total"] or Decimal("0.00")) - (held["refunded"] or Decimal("0.00"))
        escrow_held_value.labels(currency=currency).set(float(value))

    @BaseService.log_performance
    @transaction.atomic
    def create_escrow_entries(
        self,
        payment_transaction_id,
        order_id,
        allocations: List[Dict[str, Any]],
        currency: str,
        audit_note: Optional[str] = None,
    ) -> ServiceResult[List[EscrowEntry]]:
        """
        Create one held entry per ``{"seller_id", "amount"}`` allocation.
        """
        errors = []
        if not payment_transaction_id:
            errors.append("Payment transaction ID is required.")
        if not order_id:
            errors.append("Order ID is required.")
        if not currency:
            errors.append("Currency is required.")
        if not allocations:
            errors.append("At least one seller allocation is required.")
        for allocation in allocations or []:
            if not allocation.get("seller_id"):
                errors.append("Seller ID is required for each allocation.")
            amount = allocation.get("amount")
            if amount is None or Decimal(amount) <= 0:
                errors.append("Allocation amount must be greater than zero.")
        if errors:
            return validation_err(errors)

        note = audit_note or (
            f"Escrow created on payment confirmation. Eligible for payout after {eligibility_days()} days."
        )
        entries = [
            EscrowEntry.objects.create(
                payment_transaction_id=payment_transaction_id,
                order_id=order_id,
                seller_id=allocation["seller_id"],
                amount=Decimal(allocation["amount"]),
                currency=currency,
                status=EscrowEntry.STATUS_HELD,
                audit_note=note,
            )
            for allocation in allocations
        ]
        self.refresh_held_gauge(currency)
        self.logger.info(f"Created {len(entries)} escrow entries for order {order_id}")
        return service_ok(entries)

    @BaseService.log_performance
    @transaction.atomic
    def release_escrow(self, order_id, seller_id=None, audit_note: Optional[str] = None) -> ServiceResult[List]:
        entries = self._entries(order_id, seller_id)
        if not entries:
            return self._not_found(seller_id)

        released = [entry for entry in entries if entry.status == EscrowEntry.STATUS_RELEASED]
        if released:
            return service_err(
                ErrorCodes.ALREADY_RELEASED,
                f"Escrow has already been released for {plural_entries(len(released))}.",
            )
        refunded = [entry for entry in entries if entry.status == EscrowEntry.STATUS_REFUNDED]
        if refunded:
            return service_err(
                ErrorCodes.ALREADY_REFUNDED,
                f"Escrow has already been refunded for {plural_entries(len(refunded))}.",
            )

        now = timezone.now()
        for entry in entries:
            entry.status = EscrowEntry.STATUS_RELEASED
            entry.released_at = now
            entry.audit_note = audit_note or "Escrow released after order fulfillment."
            entry.save(update_fields=["status", "released_at", "audit_note", "updated_at"])
        escrow_released_total.inc(len(entries))
        self.refresh_held_gauge(entries[0].currency)
        return service_ok(entries)

    @BaseService.log_performance
    @transaction.atomic
    def refund_escrow(self, order_id, seller_id=None, audit_note: Optional[str] = None) -> ServiceResult[List]:
        entries = self._entries(order_id, seller_id)
        if not entries:
            return self._not_found(seller_id)

        released = [entry for entry in entries if entry.status == EscrowEntry.STATUS_RELEASED]
        if released:
            return service_err(
                ErrorCodes.ALREADY_RELEASED,
                f"Escrow has already been released for {plural_entries(len(released))}. "
                "Cannot refund released escrow.",
            )
        refunded = [entry for entry in entries if entry.status == EscrowEntry.STATUS_REFUNDED]
        if refunded:
            return service_err(
                ErrorCodes.ALREADY_REFUNDED,
                f"Escrow has already been refunded for {plural_entries(len(refunded))}.",
            )

        now = timezone.now()
        for entry in entries:
            entry.status = EscrowEntry.STATUS_REFUNDED
            entry.refunded_amount = entry.amount
            entry.refunded_at = now
            entry.audit_note = audit_note or "Escrow refunded due to order cancellation."
            entry.save(update_fields=["status", "refunded_amount", "refunded_at", "audit_note", "updated_at"])
        self.refresh_held_gauge(entries[0].currency)
        return service_ok(entries)

    @BaseService.log_performance
    @transaction.atomic
    def partial_refund_escrow(self, entry_id, amount: Decimal, audit_note: Optional[str] = None) -> ServiceResult:
        """Refund part of one entry; the entry becomes refunded once nothing remains."""
        if amount is None or amount <= 0:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Refund amount must be greater than zero.")

        entry = EscrowEntry.objects.select_for_update().filter(id=entry_id).first()
        if not entry:
            return service_err(ErrorCodes.NOT_FOUND, "Escrow entry not found.")
        if entry.status == EscrowEntry.STATUS_RELEASED:
            return service_err(ErrorCodes.ALREADY_RELEASED, "Cannot refund released escrow.")
        if entry.status == EscrowEntry.STATUS_REFUNDED:
            return service_err(ErrorCodes.ALREADY_REFUNDED, "Escrow has already been fully refunded.")
        if amount > entry.remaining_amount:
            return service_err(
                ErrorCodes.INSUFFICIENT_BALANCE,
                f"Refund amount ({amount:.2f}) exceeds remaining escrow balance ({entry.remaining_amount:.2f}).",
            )

        entry.refunded_amount += amount
        entry.refunded_at = timezone.now()
        entry.status = (
            EscrowEntry.STATUS_REFUNDED if entry.remaining_amount == 0 else EscrowEntry.STATUS_PARTIALLY_REFUNDED
        )
        entry.audit_note = audit_note or f"Partial refund of {amount:.2f}."
        entry.save(update_fields=["status", "refunded_amount", "refunded_at", "audit_note", "updated_at"])
        self.refresh_held_gauge(entry.currency)
        return service_ok(entry)

    def get_escrow_entries_by_order(self, order_id) -> ServiceResult[List[EscrowEntry]]:
        return service_ok(list(EscrowEntry.objects.filter(order_id=order_id).order_by("created_at")))

    def get_escrow_entries_by_seller(self, seller_id, status: Optional[str] = None) -> ServiceResult[List]:
        queryset = EscrowEntry.objects.filter(seller_id=seller_id)
        if status:
            queryset = queryset.filter(status=status)
        return service_ok(list(queryset.order_by("-created_at")))

    @BaseService.log_performance
    def release_eligible_escrow(self) -> ServiceResult[Dict[str, int]]:
        """
        Release held entries whose sub-order was delivered at least
        ``PAYOUT_ELIGIBILITY_DAYS`` ago.
        """
        from marketplace.ordering.domain.models import SellerSubOrder

        cutoff = timezone.now() - timedelta(days=eligibility_days())
        delivered = SellerSubOrder.objects.filter(
            status=SellerSubOrder.STATUS_DELIVERED, delivered_at__lte=cutoff
        ).values_list("order_id", "store_id")

        released, failed = 0, 0
        for order_id, store_id in delivered:
            if not EscrowEntry.objects.filter(
                order_id=order_id, seller_id=store_id, status__in=EscrowEntry.REFUNDABLE_STATUSES
            ).exists():
                continue
            result = self.release_escrow(
                order_id,
                seller_id=store_id,
                audit_note=f"Escrow released automatically {eligibility_days()} days after delivery.",
            )
            if result.ok:
                released += len(result.value)
            else:
                failed += 1
                self.logger.warning(f"Automatic release failed for order {order_id}: {result.error_detail}")
        return service_ok({"released": released, "failed": failed})
