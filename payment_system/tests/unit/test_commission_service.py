import uuid
from decimal import Decimal

import pytest

from authentication.tests.factories import AdminFactory
from payment_system.domain.models import CommissionRecord
from payment_system.domain.services.commission_service import CommissionService
from payment_system.tests.factories import CommissionRecordFactory, CommissionRuleFactory, PaymentTransactionFactory
from sellers.tests.factories import StoreFactory
from utils.service_base import ErrorCodes


@pytest.mark.unit
@pytest.mark.django_db
class TestApplicableRule:
    def setup_method(self):
        self.service = CommissionService()
        self.store = StoreFactory()

    def test_most_specific_rule_wins(self):
        CommissionRuleFactory(name="Global", commission_rate=Decimal("12"))
        CommissionRuleFactory(name="Ceramics", category="ceramics", commission_rate=Decimal("9"))
        CommissionRuleFactory(name="Store", seller=self.store, commission_rate=Decimal("7"))
        CommissionRuleFactory(
            name="Store ceramics", seller=self.store, category="ceramics", commission_rate=Decimal("5")
        )

        assert self.service.get_applicable_rule(self.store.id, "Ceramics").name == "Store ceramics"
        assert self.service.get_applicable_rule(self.store.id).name == "Store"
        assert self.service.get_applicable_rule(StoreFactory().id, "ceramics").name == "Ceramics"
        assert self.service.get_applicable_rule(StoreFactory().id).name == "Global"

    def test_inactive_rules_are_ignored(self):
        CommissionRuleFactory(seller=self.store, is_active=False)

        assert self.service.get_applicable_rule(self.store.id) is None


@pytest.mark.unit
@pytest.mark.django_db
class TestCalculateCommission:
    def setup_method(self):
        self.service = CommissionService()
        self.store = StoreFactory()
        self.payment_transaction = PaymentTransactionFactory()

    def calculate(self, amount):
        return self.service.calculate_commission(
            self.payment_transaction.id, uuid.uuid4(), self.store.id, Decimal(amount)
        )

    def test_default_rate(self):
        result = self.calculate("80.00")

        assert result.value.commission_amount == Decimal("8.00")
        assert result.value.applied_rule_description == "Default rate: 10.00%"
        assert result.value.applied_rule_id is None

    def test_rule_with_fixed_fee_and_rounding(self):
        CommissionRuleFactory(seller=self.store, commission_rate=Decimal("7.5"), fixed_fee=Decimal("0.30"))

        result = self.calculate("33.33")

        # 33.33 * 7.5% = 2.49975, plus 0.30
        assert result.value.commission_amount == Decimal("2.80")
        assert result.value.net_commission_amount == Decimal("2.80")

    def test_minimum_and_maximum(self):
        CommissionRuleFactory(
            seller=self.store,
            commission_rate=Decimal("10"),
            min_commission=Decimal("2.00"),
            max_commission=Decimal("15.00"),
        )

        assert self.calculate("5.00").value.commission_amount == Decimal("2.00")
        assert self.calculate("500.00").value.commission_amount == Decimal("15.00")

    def test_amount_must_be_positive(self):
        result = self.calculate("0")

        assert result.errors == ["Order amount must be greater than zero."]
        assert CommissionRecord.objects.count() == 0


@pytest.mark.unit
@pytest.mark.django_db
class TestRecalculateOnRefund:
    def setup_method(self):
        self.service = CommissionService()
        self.record = CommissionRecordFactory()

    def test_commission_is_given_back_proportionally(self):
        result = self.service.recalculate_commission_on_refund(
            self.record.order_id, self.record.seller_id, Decimal("25.00")
        )

        assert result.value.refunded_amount == Decimal("25.00")
        assert result.value.refunded_commission_amount == Decimal("2.50")
        assert result.value.net_commission_amount == Decimal("7.50")
        assert result.value.last_refund_recalculated_at is not None

    def test_cannot_refund_more_than_the_order(self):
        result = self.service.recalculate_commission_on_refund(
            self.record.order_id, self.record.seller_id, Decimal("100.01")
        )

        assert result.error == ErrorCodes.INSUFFICIENT_BALANCE

    def test_missing_record(self):
        result = self.service.recalculate_commission_on_refund(uuid.uuid4(), self.record.seller_id, Decimal("1.00"))

        assert result.error == ErrorCodes.NOT_FOUND


@pytest.mark.unit
@pytest.mark.django_db
class TestRuleManagement:
    def setup_method(self):
        self.service = CommissionService()
        self.admin = AdminFactory()

    def test_create_rule(self):
        result = self.service.create_rule(
            {"name": "Launch promo", "commission_rate": Decimal("5.0")}, created_by=self.admin
        )

        assert result.ok
        assert result.value.version == 1
        assert result.value.effective_date is not None
        assert result.value.created_by == self.admin

    def test_rate_out_of_range(self):
        result = self.service.create_rule({"name": "Greedy", "commission_rate": Decimal("150")})

        assert result.errors == ["Commission rate must be between 0 and 100."]

    def test_overlapping_active_rule(self):
        store = StoreFactory()
        CommissionRuleFactory(seller=store)

        result = self.service.create_rule({"name": "Duplicate", "commission_rate": Decimal("6"), "seller_id": store.id})

        assert result.error == ErrorCodes.CONFLICT
        assert result.error_detail == "An active rule already exists for this scope."

    def test_update_bumps_version(self):
        rule = CommissionRuleFactory()

        result = self.service.update_rule(rule.id, {"commission_rate": Decimal("9.5")}, modified_by=self.admin)

        assert result.value.version == 2
        assert result.value.commission_rate == Decimal("9.5")

    def test_deactivate(self):
        rule = CommissionRuleFactory()

        assert self.service.deactivate_rule(rule.id).value.is_active is False
        assert self.service.deactivate_rule(rule.id).error == ErrorCodes.INVALID_STATE
