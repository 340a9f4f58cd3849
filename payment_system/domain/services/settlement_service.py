"""
SettlementService - monthly seller statements.

A settlement totals the commission records calculated in a calendar month
(UTC) and carries refunds applied during that month to earlier orders as
adjustments. Drafts can be regenerated (bumping the version) until they are
finalized or exported.
"""

import csv
import io
from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from payment_system.domain.exceptions import SettlementError
from payment_system.domain.models import CommissionRecord, Settlement, SettlementLineItem
from payment_system.infra.observability.metrics import settlements_generated_total
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok


ZERO = Decimal("0.00")


def period_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    start = datetime(year, month, 1, tzinfo=dt_timezone.utc)
    end = datetime(year + 1, 1, 1, tzinfo=dt_timezone.utc) if month == 12 else datetime(
        year, month + 1, 1, tzinfo=dt_timezone.utc
    )
    return start, end


def order_reference(order_id) -> str:
    return f"ORD-{str(order_id).replace('-', '')[:8].upper()}"


def validate_period(year, month) -> Optional[ServiceResult]:
    if not isinstance(year, int) or not 2000 <= year <= 2100:
        return service_err(ErrorCodes.VALIDATION_ERROR, "Year must be between 2000 and 2100.")
    if not isinstance(month, int) or not 1 <= month <= 12:
        return service_err(ErrorCodes.VALIDATION_ERROR, "Month must be between 1 and 12.")
    return None


class SettlementService(BaseService):
    def _build(self, settlement: Settlement) -> None:
        """Recompute totals and line items of ``settlement`` from commission records."""
        start, end = settlement.period_start, settlement.period_end
        records = list(
            CommissionRecord.objects.filter(
                seller_id=settlement.seller_id, calculated_at__gte=start, calculated_at__lt=end
            )
        )
        adjustments = list(
            CommissionRecord.objects.filter(
                seller_id=settlement.seller_id,
                calculated_at__lt=start,
                last_refund_recalculated_at__gte=start,
                last_refund_recalculated_at__lt=end,
            )
        )

        gross = sum((record.order_amount for record in records), ZERO)
        refunds = sum((record.refunded_amount for record in records), ZERO)
        commission = sum((record.net_commission_amount for record in records), ZERO)
        adjustment_total = sum(
            (record.refunded_commission_amount - record.refunded_amount for record in adjustments), ZERO
        )

        settlement.gross_sales = gross
        settlement.total_refunds = refunds
        settlement.net_sales = gross - refunds
        settlement.total_commission = commission
        settlement.previous_month_adjustments = adjustment_total
        settlement.net_payable = settlement.net_sales - commission + adjustment_total
        settlement.order_count = len({record.order_id for record in records})
        settlement.currency = settings.PAYMENT_SETTINGS["CURRENCY"]
        settlement.save()

        settlement.line_items.all().delete()
        line_items = [
            SettlementLineItem(
                settlement=settlement,
                order_id=record.order_id,
                order_number=order_reference(record.order_id),
                order_date=record.calculated_at,
                gross_amount=record.order_amount,
                refund_amount=record.refunded_amount,
                net_amount=record.order_amount - record.refunded_amount,
                commission_amount=record.net_commission_amount,
            )
            for record in records
        ]
        line_items += [
            SettlementLineItem(
                settlement=settlement,
                order_id=record.order_id,
                order_number=order_reference(record.order_id),
                order_date=record.calculated_at,
                gross_amount=ZERO,
                refund_amount=record.refunded_amount,
                net_amount=-record.refunded_amount,
                commission_amount=-record.refunded_commission_amount,
                is_adjustment=True,
                original_year=record.calculated_at.year,
                original_month=record.calculated_at.month,
                notes=f"Refund adjustment from {record.calculated_at:%b %Y}",
            )
            for record in adjustments
        ]
        SettlementLineItem.objects.bulk_create(line_items)

        line_total = sum((item.net_amount - item.commission_amount for item in line_items), ZERO)
        if line_total != settlement.net_payable:
            raise SettlementError(
                f"Line items of settlement {settlement.id} add up to {line_total}, expected {settlement.net_payable}"
            )

    @BaseService.log_performance
    @transaction.atomic
    def generate_settlement(self, seller_id, year: int, month: int) -> ServiceResult[Settlement]:
        invalid = validate_period(year, month)
        if invalid:
            return invalid
        if Settlement.objects.filter(seller_id=seller_id, year=year, month=month).exists():
            return service_err(
                ErrorCodes.ALREADY_EXISTS,
                "A settlement already exists for this seller and period. Use regenerate instead.",
            )

        start, end = period_bounds(year, month)
        now = timezone.now()
        settlement = Settlement.objects.create(
            seller_id=seller_id,
            year=year,
            month=month,
            period_start=start,
            period_end=end,
            generated_at=now,
            audit_note=f"Generated on {now:%Y-%m-%d %H:%M:%S} UTC",
        )
        self._build(settlement)
        settlements_generated_total.inc()
        self.logger.info(
            f"Settlement generated for {seller_id} {year}-{month:02d}: net payable {settlement.net_payable}"
        )
        return service_ok(settlement)

    @BaseService.log_performance
    @transaction.atomic
    def regenerate_settlement(self, settlement_id, reason: Optional[str] = None) -> ServiceResult[Dict[str, Any]]:
        settlement = Settlement.objects.select_for_update().filter(id=settlement_id).first()
        if not settlement:
            return service_err(ErrorCodes.NOT_FOUND, "Settlement not found.")
        if settlement.status != Settlement.STATUS_DRAFT:
            return service_err(ErrorCodes.INVALID_STATE, "Only draft settlements can be regenerated.")

        previous_version = settlement.version
        now = timezone.now()
        note = f"Regenerated on {now:%Y-%m-%d %H:%M:%S} UTC"
        if reason:
            note += f": {reason}"
        settlement.version += 1
        settlement.regenerated_at = now
        settlement.audit_note = f"{settlement.audit_note}\n{note}" if settlement.audit_note else note
        self._build(settlement)
        return service_ok({"settlement": settlement, "previous_version": previous_version})

    @transaction.atomic
    def finalize_settlement(self, settlement_id) -> ServiceResult[Settlement]:
        settlement = Settlement.objects.select_for_update().filter(id=settlement_id).first()
        if not settlement:
            return service_err(ErrorCodes.NOT_FOUND, "Settlement not found.")
        if settlement.status == Settlement.STATUS_FINALIZED:
            return service_err(ErrorCodes.INVALID_STATE, "Settlement is already finalized.")
        if settlement.status == Settlement.STATUS_EXPORTED:
            return service_err(ErrorCodes.INVALID_STATE, "Cannot finalize an exported settlement.")
        settlement.status = Settlement.STATUS_FINALIZED
        settlement.finalized_at = timezone.now()
        settlement.save(update_fields=["status", "finalized_at"])
        return service_ok(settlement)

    @BaseService.log_performance
    @transaction.atomic
    def export_settlement(self, settlement_id) -> ServiceResult[Dict[str, Any]]:
        """Render the settlement as CSV and mark it exported."""
        settlement = Settlement.objects.select_for_update().select_related("seller").filter(id=settlement_id).first()
        if not settlement:
            return service_err(ErrorCodes.NOT_FOUND, "Settlement not found.")

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(["Settlement Report"])
        writer.writerow(["Seller", settlement.seller.name])
        writer.writerow(["Period", f"{settlement.year}-{settlement.month:02d}"])
        writer.writerow(["Version", settlement.version])
        writer.writerow(["Status", settlement.get_status_display()])
        writer.writerow([])
        writer.writerow(["Summary"])
        writer.writerow(["Gross Sales", f"{settlement.gross_sales:.2f}"])
        writer.writerow(["Total Refunds", f"{settlement.total_refunds:.2f}"])
        writer.writerow(["Net Sales", f"{settlement.net_sales:.2f}"])
        writer.writerow(["Total Commission", f"{settlement.total_commission:.2f}"])
        writer.writerow(["Previous Month Adjustments", f"{settlement.previous_month_adjustments:.2f}"])
        writer.writerow(["Net Payable", f"{settlement.net_payable:.2f}"])
        writer.writerow(["Order Count", settlement.order_count])
        writer.writerow(["Currency", settlement.currency])
        writer.writerow([])
        writer.writerow(["Line Items"])
        writer.writerow(
            [
                "Order Number",
                "Order Date",
                "Gross Amount",
                "Refund Amount",
                "Net Amount",
                "Commission Amount",
                "Is Adjustment",
                "Original Period",
                "Notes",
            ]
        )
        for item in settlement.line_items.all():
            original = f"{item.original_year}-{item.original_month:02d}" if item.is_adjustment else ""
            writer.writerow(
                [
                    item.order_number,
                    f"{item.order_date:%Y-%m-%d}",
                    f"{item.gross_amount:.2f}",
                    f"{item.refund_amount:.2f}",
                    f"{item.net_amount:.2f}",
                    f"{item.commission_amount:.2f}",
                    "Yes" if item.is_adjustment else "No",
                    original,
                    item.notes,
                ]
            )

        settlement.status = Settlement.STATUS_EXPORTED
        settlement.exported_at = timezone.now()
        settlement.save(update_fields=["status", "exported_at"])

        filename = (
            f"settlement_{settlement.seller_id}_{settlement.year}_{settlement.month:02d}_v{settlement.version}.csv"
        )
        return service_ok({"filename": filename, "content": buffer.getvalue().encode("utf-8")})

    # Queries

    def get_settlement(self, settlement_id) -> ServiceResult[Settlement]:
        settlement = Settlement.objects.select_related("seller").filter(id=settlement_id).first()
        if not settlement:
            return service_err(ErrorCodes.NOT_FOUND, "Settlement not found.")
        return service_ok(settlement)

    def get_filtered_settlements(self, seller_id=None, year=None, month=None, status=None) -> ServiceResult[List]:
        queryset = Settlement.objects.select_related("seller")
        if seller_id:
            queryset = queryset.filter(seller_id=seller_id)
        if year:
            queryset = queryset.filter(year=year)
        if month:
            queryset = queryset.filter(month=month)
        if status:
            queryset = queryset.filter(status=status)
        return service_ok(list(queryset.order_by("-year", "-month", "seller_id")))

    @BaseService.log_performance
    def generate_monthly_settlements(self, year: int, month: int) -> ServiceResult[Dict[str, int]]:
        """Generate the period's settlement for every seller with commission records in it."""
        invalid = validate_period(year, month)
        if invalid:
            return invalid

        start, end = period_bounds(year, month)
        seller_ids = (
            CommissionRecord.objects.filter(calculated_at__gte=start, calculated_at__lt=end)
            .order_by("seller_id")
            .values_list("seller_id", flat=True)
            .distinct()
        )
        generated, skipped, failed = 0, 0, 0
        for seller_id in seller_ids:
            if Settlement.objects.filter(seller_id=seller_id, year=year, month=month).exists():
                skipped += 1
                continue
            try:
                result = self.generate_settlement(seller_id, year, month)
            except SettlementError as e:
                self.logger.error(f"Settlement for seller {seller_id} {year}-{month:02d} failed: {e}")
                failed += 1
                continue
            if result.ok:
                generated += 1
            else:
                failed += 1
        return service_ok({"generated": generated, "skipped": skipped, "failed": failed})
