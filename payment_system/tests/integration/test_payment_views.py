from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory
from marketplace.ordering.domain.models import Order
from marketplace.tests.factories import CartFactory, CartItemFactory, ProductFactory
from payment_system.domain.models import CommissionRecord, EscrowEntry, PaymentTransaction
from payment_system.tests.factories import PaymentTransactionFactory


class PaymentViewsIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.buyer = UserFactory()
        self.client.force_authenticate(user=self.buyer)

    def test_methods(self):
        response = self.client.get(reverse("payment_system:payment-methods"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data[0]["id"], "credit_card")
        self.assertTrue(response.data[0]["is_default"])

    def test_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse("payment_system:payment-methods"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_initiate_returns_redirect(self):
        response = self.client.post(
            reverse("payment_system:payment-initiate"),
            {"amount": "49.90", "payment_method": "paypal", "return_url": "https://shop.example.com/return"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        transaction_id = response.data["transaction"]["id"]
        self.assertEqual(response.data["transaction"]["status"], "pending")
        self.assertEqual(
            response.data["redirect_url"], f"https://shop.example.com/return?transactionId={transaction_id}"
        )
        self.assertFalse(response.data["requires_blik_code"])

    def test_initiate_rejects_non_positive_amount(self):
        response = self.client.post(
            reverse("payment_system:payment-initiate"),
            {"amount": "0", "payment_method": "credit_card", "return_url": "https://shop.example.com/return"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["errors"], ["Amount must be greater than zero."])

    def test_blik_code_confirms_payment(self):
        initiated = self.client.post(
            reverse("payment_system:payment-initiate"),
            {"amount": "20.00", "payment_method": "blik", "return_url": "https://shop.example.com/return"},
            format="json",
        )
        self.assertTrue(initiated.data["requires_blik_code"])

        url = reverse("payment_system:payment-blik", args=[initiated.data["transaction"]["id"]])
        response = self.client.post(url, {"code": "123456"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "paid")
        self.assertEqual(response.data["display"]["display_text"], "Paid")

        again = self.client.post(url, {"code": "123456"}, format="json")
        self.assertEqual(again.status_code, status.HTTP_400_BAD_REQUEST)

    def test_callback_failure(self):
        payment_transaction = PaymentTransactionFactory(buyer=self.buyer, status=PaymentTransaction.STATUS_PENDING)
        response = self.client.post(
            reverse("payment_system:payment-callback"),
            {"transaction_id": str(payment_transaction.id), "is_success": False},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "failed")

    def test_other_buyers_transaction_is_forbidden(self):
        payment_transaction = PaymentTransactionFactory()
        response = self.client.get(reverse("payment_system:payment-detail", args=[payment_transaction.id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_retrieve_shows_refund_display(self):
        payment_transaction = PaymentTransactionFactory(buyer=self.buyer, refunded_amount=Decimal("25.00"))
        response = self.client.get(reverse("payment_system:payment-detail", args=[payment_transaction.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["display"]["refund_display"], "Partial refund: $25.00 of $100.00")


class CheckoutPaymentFlowIntegrationTest(TestCase):
    """Checkout through the marketplace, then confirm the payment through the payments API."""

    def setUp(self):
        self.client = APIClient()
        self.buyer = UserFactory()
        self.client.force_authenticate(user=self.buyer)
        self.product = ProductFactory(price=Decimal("20.00"), stock=5)
        CartItemFactory(cart=CartFactory(buyer=self.buyer), product=self.product, quantity=2)

    def test_paid_order_holds_escrow_and_commission(self):
        checkout = self.client.post(
            reverse("marketplace:checkout"),
            {
                "delivery_address": {
                    "full_name": "Robin Buyer",
                    "address_line1": "1 Main Street",
                    "city": "Springfield",
                    "postal_code": "12345",
                    "country": "US",
                },
                "payment_method": "credit_card",
                "return_url": "https://shop.example.com/return",
            },
            format="json",
        )
        self.assertEqual(checkout.status_code, status.HTTP_201_CREATED)
        order = Order.objects.get(id=checkout.data["order"]["id"])
        self.assertEqual(order.status, Order.STATUS_NEW)

        response = self.client.post(
            reverse("payment_system:payment-callback"),
            {"transaction_id": checkout.data["payment"]["transaction_id"], "is_success": True},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PAID)
        entries = EscrowEntry.objects.filter(order_id=order.id)
        self.assertEqual(entries.count(), 1)
        self.assertEqual(entries[0].seller_id, self.product.store_id)
        self.assertEqual(entries[0].amount, order.total_amount)
        self.assertEqual(entries[0].status, EscrowEntry.STATUS_HELD)
        self.assertTrue(CommissionRecord.objects.filter(order_id=order.id, seller=self.product.store).exists())
