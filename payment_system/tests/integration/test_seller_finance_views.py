from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import SellerFactory, UserFactory
from payment_system.domain.models import EscrowEntry, Refund
from payment_system.tests.factories import CommissionInvoiceFactory, EscrowEntryFactory, SettlementFactory
from sellers.tests.factories import StoreFactory


class SellerFinanceIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.store = StoreFactory()
        self.client.force_authenticate(user=self.store.owner)
        self.entry = EscrowEntryFactory(seller=self.store, amount=Decimal("60.00"))

    def test_escrow_filtered_by_status(self):
        EscrowEntryFactory(seller=self.store, status=EscrowEntry.STATUS_RELEASED)
        EscrowEntryFactory()

        response = self.client.get(reverse("payment_system:seller-finance-escrow"), {"status": "held"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]["remaining_amount"], "60.00")

    def test_buyer_is_refused(self):
        self.client.force_authenticate(user=UserFactory())
        response = self.client.get(reverse("payment_system:seller-finance-escrow"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_seller_without_store(self):
        self.client.force_authenticate(user=SellerFactory())
        response = self.client.get(reverse("payment_system:seller-finance-payouts"))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["detail"], "You do not have a store yet.")

    def test_refund_eligibility(self):
        response = self.client.get(
            reverse("payment_system:seller-finance-refund-eligibility"), {"order_id": str(self.entry.order_id)}
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["eligible"])
        self.assertEqual(response.data["max_refundable"], "60.00")

    def test_seller_refund(self):
        response = self.client.post(
            reverse("payment_system:seller-finance-refunds"),
            {"order_id": str(self.entry.order_id), "amount": "15.00", "reason": "Scratched lid"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], Refund.STATUS_COMPLETED)
        self.assertEqual(response.data["initiated_by_role"], "seller")
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.refunded_amount, Decimal("15.00"))

    def test_seller_refund_above_limit(self):
        response = self.client.post(
            reverse("payment_system:seller-finance-refunds"),
            {"order_id": str(self.entry.order_id), "amount": "75.00", "reason": "Scratched lid"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_stores_settlement_is_hidden(self):
        mine = SettlementFactory(seller=self.store)
        theirs = SettlementFactory()

        response = self.client.get(
            reverse("payment_system:seller-finance-settlement-detail", kwargs={"settlement_id": mine.id})
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["line_items"], [])

        response = self.client.get(
            reverse("payment_system:seller-finance-settlement-detail", kwargs={"settlement_id": theirs.id})
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invoice_pdf(self):
        invoice = CommissionInvoiceFactory(seller=self.store)

        response = self.client.get(
            reverse("payment_system:seller-finance-invoice-pdf", kwargs={"invoice_id": invoice.id})
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/pdf")
        self.assertIn(f'filename="{invoice.invoice_number}.pdf"', response["Content-Disposition"])
        self.assertTrue(response.content.startswith(b"%PDF"))

    def test_other_stores_invoice_pdf(self):
        invoice = CommissionInvoiceFactory()

        response = self.client.get(
            reverse("payment_system:seller-finance-invoice-pdf", kwargs={"invoice_id": invoice.id})
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
