from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

import pytest

from payment_system.domain.exceptions import SettlementError
from payment_system.domain.models import Settlement
from payment_system.domain.services.settlement_service import SettlementService, order_reference, period_bounds
from payment_system.tests.factories import CommissionRecordFactory, SettlementFactory
from sellers.tests.factories import StoreFactory
from utils.service_base import ErrorCodes


def march(day):
    return datetime(2026, 3, day, 12, 0, tzinfo=dt_timezone.utc)


@pytest.mark.unit
def test_period_bounds_wrap_the_year():
    assert period_bounds(2026, 12) == (
        datetime(2026, 12, 1, tzinfo=dt_timezone.utc),
        datetime(2027, 1, 1, tzinfo=dt_timezone.utc),
    )


@pytest.mark.unit
def test_order_reference():
    assert order_reference("3f2a9c1e-0000-4000-8000-000000000000") == "ORD-3F2A9C1E"


@pytest.mark.unit
@pytest.mark.django_db
class TestGenerateSettlement:
    def setup_method(self):
        self.service = SettlementService()
        self.store = StoreFactory()
        CommissionRecordFactory(seller=self.store, calculated_at=march(3))
        CommissionRecordFactory(
            seller=self.store,
            calculated_at=march(20),
            refunded_amount=Decimal("20.00"),
            refunded_commission_amount=Decimal("2.00"),
            net_commission_amount=Decimal("8.00"),
        )
        # February order refunded in March
        CommissionRecordFactory(
            seller=self.store,
            calculated_at=datetime(2026, 2, 14, tzinfo=dt_timezone.utc),
            refunded_amount=Decimal("30.00"),
            refunded_commission_amount=Decimal("3.00"),
            net_commission_amount=Decimal("7.00"),
            last_refund_recalculated_at=march(5),
        )

    def test_totals(self):
        result = self.service.generate_settlement(self.store.id, 2026, 3)

        settlement = result.value
        assert settlement.status == Settlement.STATUS_DRAFT
        assert settlement.gross_sales == Decimal("200.00")
        assert settlement.total_refunds == Decimal("20.00")
        assert settlement.net_sales == Decimal("180.00")
        assert settlement.total_commission == Decimal("18.00")
        assert settlement.previous_month_adjustments == Decimal("-27.00")
        assert settlement.net_payable == Decimal("135.00")
        assert settlement.order_count == 2

    def test_line_items(self):
        settlement = self.service.generate_settlement(self.store.id, 2026, 3).value

        items = list(settlement.line_items.all())
        assert len(items) == 3
        adjustment = items[-1]
        assert adjustment.is_adjustment
        assert adjustment.net_amount == Decimal("-30.00")
        assert (adjustment.original_year, adjustment.original_month) == (2026, 2)
        assert adjustment.notes == "Refund adjustment from Feb 2026"

    def test_only_once_per_period(self):
        self.service.generate_settlement(self.store.id, 2026, 3)

        result = self.service.generate_settlement(self.store.id, 2026, 3)

        assert result.error == ErrorCodes.ALREADY_EXISTS

    def test_invalid_period(self):
        assert self.service.generate_settlement(self.store.id, 2026, 13).error_detail == (
            "Month must be between 1 and 12."
        )
        assert self.service.generate_settlement(self.store.id, 1999, 1).error_detail == (
            "Year must be between 2000 and 2100."
        )

    def test_monthly_run_skips_existing(self):
        other = StoreFactory()
        CommissionRecordFactory(seller=other, calculated_at=march(9))
        CommissionRecordFactory(seller=other, calculated_at=march(10))
        self.service.generate_settlement(self.store.id, 2026, 3)

        result = self.service.generate_monthly_settlements(2026, 3)

        assert result.value == {"generated": 1, "skipped": 1, "failed": 0}

    def test_monthly_run_counts_unreconciled_settlement_as_failed(self):
        with patch.object(SettlementService, "_build", side_effect=SettlementError("totals mismatch")):
            result = self.service.generate_monthly_settlements(2026, 3)

        assert result.value == {"generated": 0, "skipped": 0, "failed": 1}
        assert not Settlement.objects.exists()


@pytest.mark.unit
@pytest.mark.django_db
class TestSettlementLifecycle:
    def setup_method(self):
        self.service = SettlementService()
        self.settlement = SettlementFactory()

    def test_regenerate_bumps_version(self):
        CommissionRecordFactory(seller=self.settlement.seller, calculated_at=march(4))

        result = self.service.regenerate_settlement(self.settlement.id, reason="Late commission record")

        assert result.value["previous_version"] == 1
        settlement = result.value["settlement"]
        assert settlement.version == 2
        assert settlement.gross_sales == Decimal("100.00")
        assert settlement.audit_note.endswith(": Late commission record")

    def test_finalized_settlement_cannot_be_regenerated(self):
        self.service.finalize_settlement(self.settlement.id)

        result = self.service.regenerate_settlement(self.settlement.id)

        assert result.error == ErrorCodes.INVALID_STATE
        assert self.service.finalize_settlement(self.settlement.id).error_detail == "Settlement is already finalized."

    def test_export(self):
        CommissionRecordFactory(seller=self.settlement.seller, calculated_at=march(4))
        self.service.regenerate_settlement(self.settlement.id)

        result = self.service.export_settlement(self.settlement.id)

        assert result.value["filename"] == f"settlement_{self.settlement.seller_id}_2026_03_v2.csv"
        content = result.value["content"].decode("utf-8")
        assert content.startswith("Settlement Report")
        assert "Net Payable,90.00" in content
        self.settlement.refresh_from_db()
        assert self.settlement.status == Settlement.STATUS_EXPORTED
        assert self.service.finalize_settlement(self.settlement.id).error_detail == (
            "Cannot finalize an exported settlement."
        )

    def test_unknown_settlement(self):
        assert self.service.export_settlement("00000000-0000-0000-0000-000000000000").error == ErrorCodes.NOT_FOUND
