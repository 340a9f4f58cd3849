"""
PayoutService - pays sellers their released escrow.

Released entries are grouped per seller and currency into scheduled payouts
(small balances roll over to the next cycle), then transferred to each
seller's payout account in batches. Failed transfers keep an error reference
and are retried a limited number of times.
"""

import uuid
from collections import OrderedDict
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from infrastructure.observability import tracer
from infrastructure.payments.interface import PaymentException, PaymentProviderInterface
from payment_system.domain.events import PayoutFailedEvent, PayoutProcessedEvent, payout_payload
from payment_system.domain.exceptions import PaymentProviderError, PaymentValidationError
from payment_system.domain.models import EscrowEntry, Payout
from payment_system.infra.observability.metrics import payout_volume_total, payouts_total
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from utils.transaction_utils import retry_on_deadlock


def payout_config() -> Dict[str, Any]:
    return settings.PAYOUT_SETTINGS


class PayoutService(BaseService):
    def __init__(self, provider: PaymentProviderInterface, event_bus=None):
        super().__init__()
        self.provider = provider
        self.event_bus = event_bus

    # Scheduling

    @BaseService.log_performance
    @retry_on_deadlock(max_retries=3)
    def schedule_payouts(self, scheduled_at=None, frequency: str = Payout.FREQUENCY_WEEKLY) -> ServiceResult:
        """
        Create one scheduled payout per seller and currency from released,
        unpaid escrow.

        Returns ``payouts``, ``rolled_over`` (groups under the minimum
        threshold) and ``total_amount``.
        """
        if scheduled_at is None:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Scheduled date is required.")
        if frequency not in dict(Payout.FREQUENCY_CHOICES):
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Unknown schedule frequency '{frequency}'.")

        threshold = Decimal(str(payout_config()["MINIMUM_PAYOUT_THRESHOLD"]))
        with transaction.atomic():
            entries = EscrowEntry.objects.select_for_update().filter(
                status=EscrowEntry.STATUS_RELEASED, payout__isnull=True
            )
            groups: "OrderedDict[tuple, List[EscrowEntry]]" = OrderedDict()
            for entry in entries.order_by("seller_id", "created_at"):
                groups.setdefault((entry.seller_id, entry.currency), []).append(entry)

            payouts, rolled_over = [], 0
            total = Decimal("0.00")
            for (seller_id, currency), group in groups.items():
                amount = sum((entry.remaining_amount for entry in group), Decimal("0.00"))
                if amount < threshold:
                    rolled_over += 1
                    self.logger.info(
                        f"Payout for seller {seller_id} rolled over: {amount} {currency} below threshold {threshold}"
                    )
                    continue

                payout = Payout.objects.create(
                    seller_id=seller_id,
                    amount=amount,
                    currency=currency,
                    status=Payout.STATUS_SCHEDULED,
                    schedule_frequency=frequency,
                    scheduled_at=scheduled_at,
                    escrow_entry_ids=[str(entry.id) for entry in group],
                    audit_note=f"Scheduled payout for {frequency} cycle.",
                )
                EscrowEntry.objects.filter(id__in=[entry.id for entry in group]).update(
                    payout=payout, is_eligible_for_payout=True, updated_at=timezone.now()
                )
                payouts_total.labels(status=Payout.STATUS_SCHEDULED).inc()
                payouts.append(payout)
                total += amount

        self.logger.info(f"Scheduled {len(payouts)} payouts totalling {total}; {rolled_over} rolled over")
        return service_ok({"payouts": payouts, "rolled_over": rolled_over, "total_amount": total})

    # Processing

    def _destination(self, payout: Payout) -> str:
        from infrastructure.container import container

        result = container.payout_settings_service().get_payout_destination(payout.seller.owner_id)
        if not result.ok:
            raise PaymentValidationError(result.error_detail)
        return result.value

    def _transfer(self, payout: Payout):
        destination = self._destination(payout)
        try:
            return self.provider.create_transfer(
                payout.amount,
                payout.currency,
                destination,
                metadata={"payout_id": str(payout.id), "batch_id": payout.batch_id},
            )
        except PaymentException as e:
            raise PaymentProviderError(str(e)) from e

    def _process_one(self, payout: Payout) -> bool:
        with tracer.start_as_current_span("process_payout") as span:
            span.set_attribute("payout.id", str(payout.id))
            payout.status = Payout.STATUS_PROCESSING
            payout.processing_started_at = timezone.now()
            payout.save(update_fields=["status", "processing_started_at", "updated_at"])

            try:
                transfer = self._transfer(payout)
            except Exception as e:
                span.record_exception(e)
                payout.status = Payout.STATUS_FAILED
                payout.error_reference = uuid.uuid4().hex
                payout.error_message = str(e)
                payout.save(update_fields=["status", "error_reference", "error_message", "updated_at"])
                self.logger.error(f"Payout {payout.id} failed [{payout.error_reference}]: {e}")
                payouts_total.labels(status=Payout.STATUS_FAILED).inc()
                payout_volume_total.labels(currency=payout.currency, status=Payout.STATUS_FAILED).inc(
                    float(payout.amount)
                )
                PayoutFailedEvent(payload=payout_payload(payout, error_reference=payout.error_reference)).publish(
                    self.event_bus
                )
                return False

            payout.status = Payout.STATUS_PAID
            payout.external_transfer_reference = transfer.transfer_id
            payout.processing_completed_at = timezone.now()
            payout.save(
                update_fields=["status", "external_transfer_reference", "processing_completed_at", "updated_at"]
            )
            payouts_total.labels(status=Payout.STATUS_PAID).inc()
            payout_volume_total.labels(currency=payout.currency, status=Payout.STATUS_PAID).inc(float(payout.amount))
            PayoutProcessedEvent(payload=payout_payload(payout)).publish(self.event_bus)
            return True

    @BaseService.log_performance
    def process_scheduled_payouts(self, process_before=None, batch_id: Optional[str] = None) -> ServiceResult:
        """Transfer every scheduled payout that is due."""
        config = payout_config()
        cutoff = process_before or timezone.now()
        batch_id = batch_id or f"BATCH-{timezone.now():%Y%m%d%H%M%S}-{uuid.uuid4().hex[:6].upper()}"

        queryset = Payout.objects.select_related("seller").filter(
            status=Payout.STATUS_SCHEDULED, scheduled_at__lte=cutoff
        ).order_by("scheduled_at")
        if config.get("ENABLE_BATCH_PROCESSING", True):
            queryset = queryset[: config["MAX_PAYOUTS_PER_BATCH"]]

        succeeded, failed = 0, 0
        for payout in queryset:
            payout.batch_id = batch_id
            payout.save(update_fields=["batch_id", "updated_at"])
            if self._process_one(payout):
                succeeded += 1
            else:
                failed += 1

        self.logger.info(f"Batch {batch_id}: {succeeded} payouts paid, {failed} failed")
        return service_ok({"batch_id": batch_id, "success_count": succeeded, "failed_count": failed})

    @BaseService.log_performance
    def retry_failed_payout(self, payout_id) -> ServiceResult[Payout]:
        max_attempts = payout_config()["MAX_RETRY_ATTEMPTS"]
        with transaction.atomic():
            payout = Payout.objects.select_for_update().filter(id=payout_id).first()
            if not payout:
                return service_err(ErrorCodes.NOT_FOUND, "Payout not found.")
            if payout.status != Payout.STATUS_FAILED:
                return service_err(ErrorCodes.INVALID_STATE, "Only failed payouts can be retried.")
            if payout.retry_count >= max_attempts:
                return service_err(
                    ErrorCodes.RETRY_LIMIT_REACHED, f"Maximum retry attempts ({max_attempts}) reached."
                )

            payout.retry_count += 1
            payout.last_retry_at = timezone.now()
            payout.error_reference = ""
            payout.error_message = ""
            payout.status = Payout.STATUS_SCHEDULED
            payout.save()

        self._process_one(payout)
        payout.refresh_from_db()
        return service_ok(payout)

    @BaseService.log_performance
    def retry_all_failed_payouts(self) -> ServiceResult[Dict[str, int]]:
        max_attempts = payout_config()["MAX_RETRY_ATTEMPTS"]
        retried, paid = 0, 0
        for payout_id in Payout.objects.filter(
            status=Payout.STATUS_FAILED, retry_count__lt=max_attempts
        ).values_list("id", flat=True):
            result = self.retry_failed_payout(payout_id)
            if result.ok:
                retried += 1
                paid += result.value.status == Payout.STATUS_PAID
        return service_ok({"retried": retried, "paid": paid})

    # Queries

    def get_payout(self, payout_id) -> ServiceResult[Payout]:
        payout = Payout.objects.select_related("seller").filter(id=payout_id).first()
        if not payout:
            return service_err(ErrorCodes.NOT_FOUND, "Payout not found.")
        return service_ok(payout)

    def get_payouts_by_seller(self, seller_id, status: Optional[str] = None) -> ServiceResult[List[Payout]]:
        queryset = Payout.objects.filter(seller_id=seller_id)
        if status:
            queryset = queryset.filter(status=status)
        return service_ok(list(queryset.order_by("-scheduled_at")))

    def get_filtered_payouts(self, seller_id=None, status=None, date_from=None, date_to=None) -> ServiceResult:
        if date_from and date_to and date_from > date_to:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Start date must be before or equal to end date.")

        queryset = Payout.objects.select_related("seller")
        if seller_id:
            queryset = queryset.filter(seller_id=seller_id)
        if status:
            queryset = queryset.filter(status=status)
        if date_from:
            queryset = queryset.filter(scheduled_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(scheduled_at__date__lte=date_to)
        return service_ok(list(queryset.order_by("-scheduled_at")))
