import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.conf import settings
from django.test import override_settings
from django.utils import timezone

from infrastructure.events import get_event_bus
from infrastructure.payments.interface import PaymentException
from infrastructure.payments.simulated_provider import SimulatedPaymentProvider
from payment_system.domain.models import EscrowEntry, PaymentTransaction, Refund
from payment_system.domain.services.commission_service import CommissionService
from payment_system.domain.services.escrow_service import EscrowService
from payment_system.domain.services.refund_service import RefundService
from payment_system.tests.factories import CommissionRecordFactory, EscrowEntryFactory, RefundFactory
from utils.service_base import ErrorCodes


def build_service(provider=None):
    return RefundService(
        escrow_service=EscrowService(),
        commission_service=CommissionService(),
        provider=provider or SimulatedPaymentProvider(),
        event_bus=get_event_bus(),
    )


class RefundScenario:
    """A 100.00 paid order from one store with 10% commission held in escrow."""

    def setup_method(self):
        self.provider = SimulatedPaymentProvider()
        self.service = build_service(self.provider)
        self.entry = EscrowEntryFactory(amount=Decimal("100.00"))
        self.payment_transaction = self.entry.payment_transaction
        self.record = CommissionRecordFactory(
            payment_transaction=self.payment_transaction, order_id=self.entry.order_id, seller=self.entry.seller
        )
        self.common = {
            "order_id": self.entry.order_id,
            "payment_transaction_id": self.payment_transaction.id,
            "reason": "Item arrived broken",
            "initiated_by_user_id": uuid.uuid4(),
            "initiated_by_role": "admin",
        }


@pytest.mark.unit
@pytest.mark.django_db
class TestFullRefund(RefundScenario):
    def test_refunds_escrow_commission_and_transaction(self):
        result = self.service.process_full_refund(**self.common)

        assert result.ok
        refund = result.value
        assert refund.status == Refund.STATUS_COMPLETED
        assert refund.amount == Decimal("100.00")
        assert refund.commission_refunded_amount == Decimal("10.00")
        assert refund.external_reference.startswith("SIM-RF")
        assert len(self.provider.refunds) == 1

        self.entry.refresh_from_db()
        self.payment_transaction.refresh_from_db()
        assert self.entry.status == EscrowEntry.STATUS_REFUNDED
        assert self.payment_transaction.status == PaymentTransaction.STATUS_REFUNDED
        assert self.payment_transaction.refunded_amount == Decimal("100.00")

    def test_publishes_refunded_event(self):
        self.service.process_full_refund(**self.common)

        event_types = [message["event_type"] for message in get_event_bus().published]
        assert "payment.refunded" in event_types

    def test_nothing_left_to_refund(self):
        self.service.process_full_refund(**self.common)

        result = self.service.process_full_refund(**self.common)

        assert result.error == ErrorCodes.INVALID_STATE
        assert result.error_detail == "No refundable escrow balance for this order."

    def test_validation_messages(self):
        result = self.service.process_full_refund(
            order_id=None,
            payment_transaction_id=None,
            reason=" ",
            initiated_by_user_id=None,
            initiated_by_role="",
        )

        assert result.errors == [
            "Order ID is required.",
            "Payment transaction ID is required.",
            "Refund reason is required.",
            "Initiating user ID is required.",
            "Initiating user role is required.",
        ]

    def test_provider_failure_keeps_escrow_and_records_failed_refund(self):
        provider = MagicMock()
        provider.create_refund.side_effect = PaymentException("gateway timeout")
        service = build_service(provider)

        result = service.process_full_refund(**self.common)

        assert result.error == ErrorCodes.PROVIDER_ERROR
        refund = Refund.objects.get()
        assert refund.status == Refund.STATUS_FAILED
        assert refund.provider_error == "gateway timeout"
        self.entry.refresh_from_db()
        assert self.entry.status == EscrowEntry.STATUS_HELD
        assert "payment.refund_failed" in [message["event_type"] for message in get_event_bus().published]


@pytest.mark.unit
@pytest.mark.django_db
class TestPartialRefund(RefundScenario):
    def test_partial_refund(self):
        result = self.service.process_partial_refund(amount=Decimal("30.00"), **self.common)

        assert result.value.refund_type == Refund.TYPE_PARTIAL
        assert result.value.commission_refunded_amount == Decimal("3.00")
        self.entry.refresh_from_db()
        self.payment_transaction.refresh_from_db()
        assert self.entry.status == EscrowEntry.STATUS_PARTIALLY_REFUNDED
        assert self.payment_transaction.status == PaymentTransaction.STATUS_PAID
        assert self.payment_transaction.refunded_amount == Decimal("30.00")

    def test_amount_over_balance(self):
        result = self.service.process_partial_refund(amount=Decimal("150.00"), **self.common)

        assert result.error == ErrorCodes.INSUFFICIENT_BALANCE
        assert result.error_detail == "Refund amount (150.00) exceeds available balance (100.00)."

    def test_refunds_by_order_total_only_counts_completed(self):
        self.service.process_partial_refund(amount=Decimal("30.00"), **self.common)
        RefundFactory(
            order_id=self.entry.order_id, payment_transaction=self.payment_transaction, status=Refund.STATUS_FAILED
        )

        result = self.service.get_refunds_by_order(self.entry.order_id)

        assert len(result.value["refunds"]) == 2
        assert result.value["total_refunded"] == Decimal("30.00")


@pytest.mark.unit
@pytest.mark.django_db
class TestSellerRefunds(RefundScenario):
    def test_eligible_within_window(self):
        result = self.service.check_seller_refund_eligibility(self.entry.order_id, self.entry.seller_id)

        assert result.value["eligible"] is True
        assert result.value["max_refundable"] == Decimal("100.00")

    def test_released_escrow_is_not_refundable(self):
        EscrowEntry.objects.filter(id=self.entry.id).update(status=EscrowEntry.STATUS_RELEASED)

        result = self.service.check_seller_refund_eligibility(self.entry.order_id, self.entry.seller_id)

        assert result.value["eligible"] is False
        assert result.value["reason"] == "Escrow has already been released to the seller."

    def test_window_expired(self):
        EscrowEntry.objects.filter(id=self.entry.id).update(created_at=timezone.now() - timedelta(days=15))

        result = self.service.check_seller_refund_eligibility(self.entry.order_id, self.entry.seller_id)

        assert result.value["reason"] == "Seller refund window of 14 days has expired."

    @override_settings(REFUND_SETTINGS={**settings.REFUND_SETTINGS, "MAX_SELLER_REFUND_PERCENTAGE": Decimal("50")})
    def test_percentage_cap(self):
        result = self.service.process_seller_refund(
            self.entry.order_id, self.entry.seller_id, Decimal("60.00"), "Late delivery", uuid.uuid4()
        )

        assert result.error == ErrorCodes.INSUFFICIENT_BALANCE
        assert result.error_detail == "Refund amount (60.00) exceeds the maximum refundable amount (50.00)."

    def test_seller_refund(self):
        result = self.service.process_seller_refund(
            self.entry.order_id, self.entry.seller_id, Decimal("15.00"), "Late delivery", uuid.uuid4()
        )

        assert result.ok
        assert result.value.initiated_by_role == "seller"
        assert result.value.seller_id == self.entry.seller_id
