from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest

from infrastructure.email import MockEmailService
from payment_system.domain.models import CommissionInvoice
from payment_system.domain.services.invoice_service import InvoiceService
from payment_system.tests.factories import CommissionInvoiceFactory, CommissionRecordFactory
from sellers.tests.factories import StoreFactory
from utils.service_base import ErrorCodes


@pytest.mark.unit
@pytest.mark.django_db
class TestGenerateInvoice:
    def setup_method(self):
        self.email = MockEmailService()
        self.service = InvoiceService(email_service=self.email)
        self.store = StoreFactory()
        for day, net in ((2, "10.00"), (17, "8.00")):
            CommissionRecordFactory(
                seller=self.store,
                calculated_at=datetime(2026, 3, day, tzinfo=dt_timezone.utc),
                net_commission_amount=Decimal(net),
            )

    def test_totals_and_line_items(self):
        result = self.service.generate_invoice(self.store.id, 2026, 3)

        invoice = result.value
        assert invoice.status == CommissionInvoice.STATUS_ISSUED
        assert invoice.net_amount == Decimal("18.00")
        assert invoice.tax_amount == Decimal("4.14")
        assert invoice.gross_amount == Decimal("22.14")
        assert (invoice.due_date - invoice.issue_date).days == 14
        assert invoice.line_items.count() == 2

    def test_numbering_continues_the_year(self):
        CommissionInvoiceFactory(invoice_number="INV-2026-00007")

        result = self.service.generate_invoice(self.store.id, 2026, 3)

        assert result.value.invoice_number == "INV-2026-00008"

    def test_emails_owner_after_commit(self, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            invoice = self.service.generate_invoice(self.store.id, 2026, 3).value

        [message] = self.email.messages_tagged("commission_invoice")
        assert message.to == [self.store.owner.email]
        filename, content, mimetype = message.attachments[0]
        assert filename == f"{invoice.invoice_number}.pdf"
        assert content.startswith(b"%PDF")
        assert mimetype == "application/pdf"

    def test_one_invoice_per_period(self):
        self.service.generate_invoice(self.store.id, 2026, 3)

        result = self.service.generate_invoice(self.store.id, 2026, 3)

        assert result.error == ErrorCodes.ALREADY_EXISTS
        assert result.error_detail == "An invoice already exists for 2026-03."

    def test_nothing_to_bill(self):
        result = self.service.generate_invoice(self.store.id, 2026, 4)

        assert result.error == ErrorCodes.NOT_FOUND
        assert result.error_detail == "No commission records found for 2026-04."


@pytest.mark.unit
@pytest.mark.django_db
class TestCreditNotesAndPayment:
    def setup_method(self):
        self.service = InvoiceService()
        self.invoice = CommissionInvoiceFactory()

    def test_partial_credit_note(self):
        result = self.service.create_credit_note(self.invoice.id, Decimal("61.50"), "Duplicate commission")

        credit_note = result.value
        assert credit_note.invoice_number == "CN-2026-00001"
        assert credit_note.is_credit_note
        assert credit_note.gross_amount == Decimal("-61.50")
        assert credit_note.net_amount == Decimal("-50.00")
        assert credit_note.tax_amount == Decimal("-11.50")
        assert credit_note.original_invoice == self.invoice
        self.invoice.refresh_from_db()
        assert self.invoice.status == CommissionInvoice.STATUS_ISSUED

    def test_crediting_everything_corrects_the_invoice(self):
        self.service.create_credit_note(self.invoice.id, Decimal("61.50"), "First half")
        self.service.create_credit_note(self.invoice.id, Decimal("61.50"), "Second half")

        self.invoice.refresh_from_db()
        assert self.invoice.status == CommissionInvoice.STATUS_CORRECTED

    def test_credit_cannot_exceed_invoice(self):
        result = self.service.create_credit_note(self.invoice.id, Decimal("123.01"), "Too much")

        assert result.error_detail == "Credit amount cannot exceed the original invoice amount."

    def test_credit_note_requires_reason(self):
        result = self.service.create_credit_note(self.invoice.id, Decimal("10.00"), "  ")

        assert result.error_detail == "Correction reason is required."

    def test_mark_paid(self):
        result = self.service.mark_invoice_paid(self.invoice.id)

        assert result.value.status == CommissionInvoice.STATUS_PAID
        assert result.value.paid_at is not None
        assert self.service.mark_invoice_paid(self.invoice.id).error == ErrorCodes.INVALID_STATE

    def test_pdf_for_owning_store(self):
        result = self.service.generate_invoice_pdf(self.invoice.id, seller_id=self.invoice.seller_id)

        assert result.value["filename"] == f"{self.invoice.invoice_number}.pdf"
        assert result.value["content"].startswith(b"%PDF")

    def test_pdf_for_other_store(self):
        result = self.service.generate_invoice_pdf(self.invoice.id, seller_id=StoreFactory().id)

        assert result.error == ErrorCodes.NOT_AUTHORIZED
