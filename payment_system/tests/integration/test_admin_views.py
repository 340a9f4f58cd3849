from datetime import datetime
from datetime import timezone as dt_timezone
from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import AdminFactory, SellerFactory
from payment_system.domain.models import CommissionInvoice, EscrowEntry, Payout, Settlement
from payment_system.tests.factories import (
    CommissionInvoiceFactory,
    CommissionRecordFactory,
    CommissionRuleFactory,
    EscrowEntryFactory,
    PayoutFactory,
    SettlementFactory,
)
from sellers.tests.factories import PayoutSettingsFactory, StoreFactory


class AdminApiTestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = AdminFactory()
        self.client.force_authenticate(user=self.admin)


class AdminRefundViewsIntegrationTest(AdminApiTestCase):
    def setUp(self):
        super().setUp()
        self.entry = EscrowEntryFactory(amount=Decimal("80.00"))

    def refund_payload(self, **overrides):
        payload = {
            "order_id": str(self.entry.order_id),
            "payment_transaction_id": str(self.entry.payment_transaction_id),
            "refund_type": "full",
            "reason": "Order never arrived",
        }
        payload.update(overrides)
        return payload

    def test_seller_is_refused(self):
        self.client.force_authenticate(user=SellerFactory())
        response = self.client.post(reverse("payment_system:admin-refund-list"), self.refund_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_full_refund(self):
        response = self.client.post(reverse("payment_system:admin-refund-list"), self.refund_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["amount"], "80.00")
        self.assertEqual(response.data["initiated_by_role"], "admin")
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, EscrowEntry.STATUS_REFUNDED)

        listing = self.client.get(reverse("payment_system:admin-refund-list"), {"order_id": str(self.entry.order_id)})
        self.assertEqual(listing.status_code, status.HTTP_200_OK)
        self.assertEqual(listing.data["total_refunded"], "80.00")

    def test_partial_refund_needs_amount(self):
        response = self.client.post(
            reverse("payment_system:admin-refund-list"), self.refund_payload(refund_type="partial"), format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_listing_needs_order(self):
        response = self.client.get(reverse("payment_system:admin-refund-list"))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AdminCommissionViewsIntegrationTest(AdminApiTestCase):
    def test_create_rule(self):
        store = StoreFactory()
        response = self.client.post(
            reverse("payment_system:admin-commission-rule-list"),
            {"name": "Ceramics makers", "seller_id": str(store.id), "commission_rate": "6.5000"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["version"], 1)

        duplicate = self.client.post(
            reverse("payment_system:admin-commission-rule-list"),
            {"name": "Again", "seller_id": str(store.id), "commission_rate": "7.0000"},
            format="json",
        )
        self.assertEqual(duplicate.status_code, status.HTTP_409_CONFLICT)

    def test_deactivate_rule(self):
        rule = CommissionRuleFactory()
        response = self.client.post(reverse("payment_system:admin-commission-rule-deactivate", args=[rule.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["is_active"])

    def test_records_need_a_filter(self):
        response = self.client.get(reverse("payment_system:admin-commission-record-list"))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Provide order_id or seller_id.")

    def test_records_by_order(self):
        record = CommissionRecordFactory()
        response = self.client.get(
            reverse("payment_system:admin-commission-record-list"), {"order_id": str(record.order_id)}
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)


class AdminPayoutViewsIntegrationTest(AdminApiTestCase):
    def test_schedule_and_process(self):
        store = StoreFactory()
        PayoutSettingsFactory(seller=store.owner)
        EscrowEntryFactory(seller=store, amount=Decimal("90.00"), status=EscrowEntry.STATUS_RELEASED)

        scheduled = self.client.post(
            reverse("payment_system:admin-payout-schedule"), {"scheduled_at": "2026-03-01T00:00:00Z"}, format="json"
        )
        self.assertEqual(scheduled.status_code, status.HTTP_201_CREATED)
        self.assertEqual(scheduled.data["total_amount"], "90.00")

        processed = self.client.post(
            reverse("payment_system:admin-payout-process"), {"batch_id": "BATCH-MANUAL"}, format="json"
        )
        self.assertEqual(processed.status_code, status.HTTP_200_OK)
        self.assertEqual(processed.data["success_count"], 1)
        self.assertEqual(Payout.objects.get().status, Payout.STATUS_PAID)

    def test_list_filters_by_status(self):
        PayoutFactory(status=Payout.STATUS_FAILED)
        PayoutFactory()
        response = self.client.get(reverse("payment_system:admin-payout-list"), {"status": "failed"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_retry_out_of_attempts(self):
        payout = PayoutFactory(status=Payout.STATUS_FAILED, retry_count=3)
        response = self.client.post(reverse("payment_system:admin-payout-retry", args=[payout.id]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Maximum retry attempts (3) reached.")

    def test_retry_failed(self):
        response = self.client.post(reverse("payment_system:admin-payout-retry-failed"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"retried": 0, "paid": 0})


class AdminSettlementViewsIntegrationTest(AdminApiTestCase):
    def setUp(self):
        super().setUp()
        self.store = StoreFactory()
        CommissionRecordFactory(seller=self.store, calculated_at=datetime(2026, 3, 11, tzinfo=dt_timezone.utc))

    def test_generate_then_export(self):
        response = self.client.post(
            reverse("payment_system:admin-settlement-generate"),
            {"seller_id": str(self.store.id), "year": 2026, "month": 3},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["net_payable"], "90.00")
        self.assertEqual(len(response.data["line_items"]), 1)

        exported = self.client.post(reverse("payment_system:admin-settlement-export", args=[response.data["id"]]))
        self.assertEqual(exported.status_code, status.HTTP_200_OK)
        self.assertEqual(exported["Content-Type"], "text/csv")
        self.assertEqual(Settlement.objects.get().status, Settlement.STATUS_EXPORTED)

    def test_generate_twice(self):
        SettlementFactory(seller=self.store)
        response = self.client.post(
            reverse("payment_system:admin-settlement-generate"),
            {"seller_id": str(self.store.id), "year": 2026, "month": 3},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_regenerate(self):
        settlement = SettlementFactory(seller=self.store)
        response = self.client.post(
            reverse("payment_system:admin-settlement-regenerate", args=[settlement.id]),
            {"reason": "Missing record"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["previous_version"], 1)
        self.assertEqual(response.data["version"], 2)


class AdminInvoiceViewsIntegrationTest(AdminApiTestCase):
    def test_generate_invoice(self):
        store = StoreFactory()
        CommissionRecordFactory(seller=store, calculated_at=datetime(2026, 3, 11, tzinfo=dt_timezone.utc))
        response = self.client.post(
            reverse("payment_system:admin-invoice-generate"),
            {"seller_id": str(store.id), "year": 2026, "month": 3},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["gross_amount"], "12.30")

    def test_credit_note_and_mark_paid(self):
        invoice = CommissionInvoiceFactory()
        credit = self.client.post(
            reverse("payment_system:admin-invoice-credit-note", args=[invoice.id]),
            {"credit_amount": "123.00", "reason": "Billed twice"},
            format="json",
        )
        self.assertEqual(credit.status_code, status.HTTP_201_CREATED)
        self.assertEqual(credit.data["original_invoice_number"], invoice.invoice_number)
        invoice.refresh_from_db()
        self.assertEqual(invoice.status, CommissionInvoice.STATUS_CORRECTED)

        paid = self.client.post(reverse("payment_system:admin-invoice-mark-paid", args=[invoice.id]))
        self.assertEqual(paid.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_needs_seller(self):
        response = self.client.get(reverse("payment_system:admin-invoice-list"))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "seller_id is required.")

    def test_pdf(self):
        invoice = CommissionInvoiceFactory()
        response = self.client.get(reverse("payment_system:admin-invoice-pdf", args=[invoice.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "application/pdf")
