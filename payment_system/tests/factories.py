import uuid
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

import factory
from django.utils import timezone

from authentication.tests.factories import UserFactory
from payment_system.domain.models import (
    CommissionInvoice,
    CommissionRecord,
    CommissionRule,
    EscrowEntry,
    PaymentTransaction,
    Payout,
    Refund,
    Settlement,
)
from sellers.tests.factories import StoreFactory


class PaymentTransactionFactory(factory.django.DjangoModelFactory):
    """A paid credit card transaction."""

    class Meta:
        model = PaymentTransaction

    buyer = factory.SubFactory(UserFactory)
    payment_method = PaymentTransaction.METHOD_CREDIT_CARD
    status = PaymentTransaction.STATUS_PAID
    amount = Decimal("100.00")
    currency = "USD"
    return_url = "https://shop.example.com/checkout/return"
    external_reference = factory.Sequence(lambda n: f"SIM-REF{n:08d}")


class EscrowEntryFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = EscrowEntry

    payment_transaction = factory.SubFactory(PaymentTransactionFactory)
    order_id = factory.LazyFunction(uuid.uuid4)
    seller = factory.SubFactory(StoreFactory)
    amount = Decimal("100.00")
    currency = "USD"
    status = EscrowEntry.STATUS_HELD


class CommissionRuleFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = CommissionRule

    name = factory.Sequence(lambda n: f"Rule {n}")
    commission_rate = Decimal("8.0000")
    effective_date = factory.LazyFunction(lambda: timezone.now() - timedelta(days=1))


class CommissionRecordFactory(factory.django.DjangoModelFactory):
    """Ten percent commission on a 100.00 order share."""

    class Meta:
        model = CommissionRecord

    payment_transaction = factory.SubFactory(PaymentTransactionFactory)
    order_id = factory.LazyFunction(uuid.uuid4)
    seller = factory.SubFactory(StoreFactory)
    order_amount = Decimal("100.00")
    commission_rate = Decimal("10.0000")
    commission_amount = Decimal("10.00")
    net_commission_amount = Decimal("10.00")
    applied_rule_description = "Default rate: 10.00%"
    calculated_at = factory.LazyFunction(timezone.now)


class RefundFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Refund

    payment_transaction = factory.SubFactory(PaymentTransactionFactory)
    order_id = factory.LazyFunction(uuid.uuid4)
    refund_type = Refund.TYPE_PARTIAL
    status = Refund.STATUS_COMPLETED
    amount = Decimal("10.00")
    reason = "Damaged in transit"
    initiated_by_user_id = factory.LazyFunction(lambda: str(uuid.uuid4()))
    initiated_by_role = "admin"


class PayoutFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Payout

    seller = factory.SubFactory(StoreFactory)
    status = Payout.STATUS_SCHEDULED
    amount = Decimal("120.00")
    currency = "USD"
    scheduled_at = factory.LazyFunction(lambda: timezone.now() - timedelta(hours=1))


class SettlementFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Settlement

    seller = factory.SubFactory(StoreFactory)
    year = 2026
    month = 3
    period_start = factory.LazyFunction(lambda: datetime(2026, 3, 1, tzinfo=dt_timezone.utc))
    period_end = factory.LazyFunction(lambda: datetime(2026, 4, 1, tzinfo=dt_timezone.utc))
    generated_at = factory.LazyFunction(timezone.now)


class CommissionInvoiceFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = CommissionInvoice

    invoice_number = factory.Sequence(lambda n: f"INV-2026-{n + 1:05d}")
    seller = factory.SubFactory(StoreFactory)
    year = 2026
    month = 3
    status = CommissionInvoice.STATUS_ISSUED
    net_amount = Decimal("100.00")
    tax_rate = Decimal("23.00")
    tax_amount = Decimal("23.00")
    gross_amount = Decimal("123.00")
    issue_date = factory.LazyFunction(lambda: timezone.now().date())
    due_date = factory.LazyFunction(lambda: timezone.now().date() + timedelta(days=14))
