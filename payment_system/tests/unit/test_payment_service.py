from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.test import override_settings

from authentication.tests.factories import UserFactory
from infrastructure.events import get_event_bus
from infrastructure.payments.interface import PaymentException
from payment_system.domain.models import PaymentTransaction
from payment_system.domain.services.payment_service import PaymentService, is_valid_blik_code
from payment_system.tests.factories import PaymentTransactionFactory
from utils.service_base import ErrorCodes

ONLY_CARDS = {
    "CURRENCY": "USD",
    "ENABLE_CREDIT_CARD": True,
    "ENABLE_PAYPAL": False,
    "ENABLE_BANK_TRANSFER": False,
    "ENABLE_BLIK": False,
}


def published_types():
    return [message["event_type"] for message in get_event_bus().published]


@pytest.mark.unit
@pytest.mark.django_db
class TestPaymentMethods:
    def setup_method(self):
        self.service = PaymentService(provider=MagicMock())

    def test_enabled_methods_are_sorted(self):
        methods = self.service.get_payment_methods().value

        assert [method["id"] for method in methods] == ["credit_card", "paypal", "bank_transfer", "blik"]
        assert "setting" not in methods[0]

    @override_settings(PAYMENT_SETTINGS={**ONLY_CARDS, "ENABLE_CREDIT_CARD": False})
    def test_falls_back_to_credit_card_when_nothing_is_enabled(self):
        methods = self.service.get_payment_methods().value

        assert [method["id"] for method in methods] == ["credit_card"]
        assert methods[0]["is_default"] is True

    def test_blik_code_format(self):
        assert is_valid_blik_code("123456")
        assert not is_valid_blik_code("12345")
        assert not is_valid_blik_code("12a456")
        assert not is_valid_blik_code(None)


@pytest.mark.unit
@pytest.mark.django_db
class TestInitiatePayment:
    def setup_method(self):
        from infrastructure.payments.simulated_provider import SimulatedPaymentProvider

        self.buyer = UserFactory()
        self.service = PaymentService(provider=SimulatedPaymentProvider(), event_bus=get_event_bus())

    def initiate(self, **overrides):
        kwargs = {
            "buyer": self.buyer,
            "amount": Decimal("59.90"),
            "payment_method": "credit_card",
            "return_url": "https://shop.example.com/return",
        }
        kwargs.update(overrides)
        return self.service.initiate_payment(**kwargs)

    def test_redirect_flow_creates_pending_transaction(self):
        result = self.initiate()

        assert result.ok
        payment_transaction = result.value["transaction"]
        assert payment_transaction.status == PaymentTransaction.STATUS_PENDING
        assert payment_transaction.external_reference.startswith("SIM-")
        assert result.value["redirect_url"] == (
            f"https://shop.example.com/return?transactionId={payment_transaction.id}"
        )
        assert result.value["requires_blik_code"] is False

    def test_collects_every_validation_error(self):
        result = self.initiate(amount=Decimal("0"), payment_method="", return_url="")

        assert not result.ok
        assert result.error == ErrorCodes.VALIDATION_ERROR
        assert result.errors == [
            "Amount must be greater than zero.",
            "Payment method is required.",
            "Return URL is required.",
        ]

    @override_settings(PAYMENT_SETTINGS=ONLY_CARDS)
    def test_disabled_method_is_refused(self):
        result = self.initiate(payment_method="paypal")

        assert result.error == ErrorCodes.PAYMENT_METHOD_UNAVAILABLE
        assert result.error_detail == "Payment method 'paypal' is not available."

    def test_blik_without_code_waits_for_it(self):
        result = self.initiate(payment_method="blik")

        assert result.value["requires_blik_code"] is True
        assert result.value["transaction"].status == PaymentTransaction.STATUS_PENDING
        assert result.value["redirect_url"] is None

    def test_blik_with_code_is_authorized(self):
        result = self.initiate(payment_method="blik", blik_code="777123")

        assert result.value["authorized"] is True
        assert result.value["transaction"].status == PaymentTransaction.STATUS_PROCESSING

    def test_malformed_blik_code(self):
        result = self.initiate(payment_method="blik", blik_code="12")

        assert result.error_detail == "BLIK code must be 6 digits."
        assert PaymentTransaction.objects.count() == 0

    def test_idempotency_key_returns_original_transaction(self):
        first = self.initiate(idempotency_key="checkout-1")
        second = self.initiate(idempotency_key="checkout-1", amount=Decimal("10.00"))

        assert second.value["transaction"].id == first.value["transaction"].id
        assert PaymentTransaction.objects.count() == 1

    def test_provider_failure_marks_transaction_failed(self):
        provider = MagicMock()
        provider.authorize_payment.side_effect = PaymentException("gateway down")
        service = PaymentService(provider=provider, event_bus=get_event_bus())

        result = service.initiate_payment(self.buyer, Decimal("20.00"), "paypal", "https://shop.example.com/return")

        assert result.error == ErrorCodes.PROVIDER_ERROR
        payment_transaction = PaymentTransaction.objects.get()
        assert payment_transaction.status == PaymentTransaction.STATUS_FAILED
        assert payment_transaction.error_message == "gateway down"


@pytest.mark.unit
@pytest.mark.django_db
class TestPaymentCallback:
    def setup_method(self):
        from infrastructure.payments.simulated_provider import SimulatedPaymentProvider

        self.service = PaymentService(provider=SimulatedPaymentProvider(), event_bus=get_event_bus())
        self.payment_transaction = PaymentTransactionFactory(
            status=PaymentTransaction.STATUS_PENDING, external_reference=""
        )
        self.buyer = self.payment_transaction.buyer

    def test_success_marks_paid_and_publishes(self):
        result = self.service.handle_payment_callback(
            self.payment_transaction.id, self.buyer, is_success=True, external_ref="PSP-42"
        )

        assert result.ok
        self.payment_transaction.refresh_from_db()
        assert self.payment_transaction.status == PaymentTransaction.STATUS_PAID
        assert self.payment_transaction.external_reference == "PSP-42"
        assert self.payment_transaction.completed_at is not None
        assert "payment.succeeded" in published_types()

    def test_success_without_reference_gets_simulated_one(self):
        self.service.handle_payment_callback(self.payment_transaction.id, self.buyer, is_success=True)

        self.payment_transaction.refresh_from_db()
        assert self.payment_transaction.external_reference.startswith("SIM-")

    def test_failure_marks_failed(self):
        self.service.handle_payment_callback(self.payment_transaction.id, self.buyer, is_success=False)

        self.payment_transaction.refresh_from_db()
        assert self.payment_transaction.status == PaymentTransaction.STATUS_FAILED
        assert "payment.failed" in published_types()

    def test_final_transaction_is_left_alone(self):
        self.service.handle_payment_callback(self.payment_transaction.id, self.buyer, is_success=True)
        get_event_bus().clear_published()

        result = self.service.handle_payment_callback(self.payment_transaction.id, self.buyer, is_success=False)

        assert result.ok
        assert result.value.status == PaymentTransaction.STATUS_PAID
        assert published_types() == []

    def test_other_buyer_is_refused(self):
        result = self.service.handle_payment_callback(self.payment_transaction.id, UserFactory(), is_success=True)

        assert result.error == ErrorCodes.NOT_AUTHORIZED

    def test_unknown_transaction(self):
        result = self.service.handle_payment_callback(
            "00000000-0000-0000-0000-000000000000", self.buyer, is_success=True
        )

        assert result.error == ErrorCodes.NOT_FOUND


@pytest.mark.unit
@pytest.mark.django_db
class TestSubmitBlikCode:
    def setup_method(self):
        from infrastructure.payments.simulated_provider import SimulatedPaymentProvider

        self.service = PaymentService(provider=SimulatedPaymentProvider(), event_bus=get_event_bus())
        self.payment_transaction = PaymentTransactionFactory(
            payment_method=PaymentTransaction.METHOD_BLIK, status=PaymentTransaction.STATUS_PENDING
        )

    def test_valid_code_confirms_payment(self):
        result = self.service.submit_blik_code(self.payment_transaction.id, self.payment_transaction.buyer, "123456")

        assert result.ok
        assert result.value.status == PaymentTransaction.STATUS_PAID

    def test_card_payment_is_not_blik(self):
        card = PaymentTransactionFactory(status=PaymentTransaction.STATUS_PENDING)

        result = self.service.submit_blik_code(card.id, card.buyer, "123456")

        assert result.error_detail == "Transaction is not a BLIK payment."

    def test_code_is_only_accepted_once(self):
        self.service.submit_blik_code(self.payment_transaction.id, self.payment_transaction.buyer, "123456")

        result = self.service.submit_blik_code(self.payment_transaction.id, self.payment_transaction.buyer, "123456")

        assert result.error == ErrorCodes.INVALID_STATE
