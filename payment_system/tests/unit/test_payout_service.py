from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from infrastructure.events import get_event_bus
from infrastructure.payments.simulated_provider import SimulatedPaymentProvider
from payment_system.domain.models import EscrowEntry, Payout
from payment_system.domain.services.escrow_service import EscrowService
from payment_system.domain.services.payout_service import PayoutService
from payment_system.tests.factories import EscrowEntryFactory, PayoutFactory
from sellers.tests.factories import PayoutSettingsFactory, StoreFactory
from utils.service_base import ErrorCodes


def published_types():
    return [message["event_type"] for message in get_event_bus().published]


@pytest.mark.unit
@pytest.mark.django_db
class TestSchedulePayouts:
    def setup_method(self):
        self.service = PayoutService(provider=SimulatedPaymentProvider(), event_bus=get_event_bus())
        self.busy_store = StoreFactory()
        self.quiet_store = StoreFactory()

    def test_groups_released_escrow_per_seller(self):
        first = EscrowEntryFactory(seller=self.busy_store, amount=Decimal("30.00"), status=EscrowEntry.STATUS_RELEASED)
        second = EscrowEntryFactory(
            seller=self.busy_store, amount=Decimal("40.00"), status=EscrowEntry.STATUS_RELEASED
        )
        held = EscrowEntryFactory(seller=self.busy_store, amount=Decimal("500.00"))

        result = self.service.schedule_payouts(scheduled_at=timezone.now())

        assert result.ok
        assert result.value["total_amount"] == Decimal("70.00")
        [payout] = result.value["payouts"]
        assert payout.seller_id == self.busy_store.id
        assert payout.amount == Decimal("70.00")
        assert payout.status == Payout.STATUS_SCHEDULED
        assert sorted(payout.escrow_entry_ids) == sorted([str(first.id), str(second.id)])
        assert EscrowEntry.objects.filter(payout=payout).count() == 2
        held.refresh_from_db()
        assert held.payout is None

    def test_pays_only_what_remains_after_partial_refund(self):
        entry = EscrowEntryFactory(seller=self.busy_store, amount=Decimal("100.00"))
        escrow = EscrowService()
        escrow.partial_refund_escrow(entry.id, Decimal("30.00"))
        escrow.release_escrow(entry.order_id)

        result = self.service.schedule_payouts(scheduled_at=timezone.now())

        [payout] = result.value["payouts"]
        assert payout.amount == Decimal("70.00")
        assert result.value["total_amount"] == Decimal("70.00")

    def test_small_balance_rolls_over(self):
        entry = EscrowEntryFactory(
            seller=self.quiet_store, amount=Decimal("20.00"), status=EscrowEntry.STATUS_RELEASED
        )

        result = self.service.schedule_payouts(scheduled_at=timezone.now())

        assert result.value["payouts"] == []
        assert result.value["rolled_over"] == 1
        entry.refresh_from_db()
        assert entry.payout is None

    def test_scheduled_entries_are_not_paid_twice(self):
        EscrowEntryFactory(seller=self.busy_store, amount=Decimal("80.00"), status=EscrowEntry.STATUS_RELEASED)
        self.service.schedule_payouts(scheduled_at=timezone.now())

        result = self.service.schedule_payouts(scheduled_at=timezone.now())

        assert result.value["payouts"] == []
        assert Payout.objects.count() == 1

    def test_requires_date_and_known_frequency(self):
        assert self.service.schedule_payouts().error_detail == "Scheduled date is required."
        assert self.service.schedule_payouts(timezone.now(), frequency="daily").error_detail == (
            "Unknown schedule frequency 'daily'."
        )


@pytest.mark.unit
@pytest.mark.django_db
class TestProcessPayouts:
    def setup_method(self):
        self.provider = SimulatedPaymentProvider()
        self.service = PayoutService(provider=self.provider, event_bus=get_event_bus())
        self.payout = PayoutFactory()

    def test_transfers_to_configured_account(self):
        PayoutSettingsFactory(seller=self.payout.seller.owner, bank_account_number="9876543210")

        result = self.service.process_scheduled_payouts(batch_id="BATCH-TEST")

        assert result.value == {"batch_id": "BATCH-TEST", "success_count": 1, "failed_count": 0}
        self.payout.refresh_from_db()
        assert self.payout.status == Payout.STATUS_PAID
        assert self.payout.batch_id == "BATCH-TEST"
        assert self.payout.external_transfer_reference.startswith("SIM-TR")
        assert self.provider.transfers[0].amount == Decimal("120.00")
        assert "payout.processed" in published_types()

    def test_missing_payout_settings_fails_with_reference(self):
        result = self.service.process_scheduled_payouts()

        assert result.value["failed_count"] == 1
        assert result.value["batch_id"].startswith("BATCH-")
        self.payout.refresh_from_db()
        assert self.payout.status == Payout.STATUS_FAILED
        assert self.payout.error_message == "Seller has no complete payout settings."
        assert len(self.payout.error_reference) == 32
        assert "payout.failed" in published_types()

    def test_future_payouts_wait(self):
        Payout.objects.filter(id=self.payout.id).update(scheduled_at=timezone.now() + timedelta(days=2))

        result = self.service.process_scheduled_payouts()

        assert result.value["success_count"] == 0
        assert result.value["failed_count"] == 0


@pytest.mark.unit
@pytest.mark.django_db
class TestRetryPayouts:
    def setup_method(self):
        self.service = PayoutService(provider=SimulatedPaymentProvider(), event_bus=get_event_bus())
        self.payout = PayoutFactory(status=Payout.STATUS_FAILED, error_reference="abc", error_message="Bank offline")

    def test_retry_pays_once_settings_exist(self):
        PayoutSettingsFactory(seller=self.payout.seller.owner)

        result = self.service.retry_failed_payout(self.payout.id)

        assert result.value.status == Payout.STATUS_PAID
        assert result.value.retry_count == 1
        assert result.value.error_reference == ""

    def test_retry_limit(self):
        Payout.objects.filter(id=self.payout.id).update(retry_count=3)

        result = self.service.retry_failed_payout(self.payout.id)

        assert result.error == ErrorCodes.RETRY_LIMIT_REACHED
        assert result.error_detail == "Maximum retry attempts (3) reached."

    def test_only_failed_payouts_are_retried(self):
        paid = PayoutFactory(status=Payout.STATUS_PAID)

        assert self.service.retry_failed_payout(paid.id).error == ErrorCodes.INVALID_STATE

    def test_retry_all(self):
        PayoutSettingsFactory(seller=self.payout.seller.owner)
        PayoutFactory(status=Payout.STATUS_FAILED)

        result = self.service.retry_all_failed_payouts()

        assert result.value == {"retried": 2, "paid": 1}

    def test_filtered_payouts_reject_inverted_dates(self):
        today = timezone.now().date()

        result = self.service.get_filtered_payouts(date_from=today, date_to=today - timedelta(days=1))

        assert result.error_detail == "Start date must be before or equal to end date."
