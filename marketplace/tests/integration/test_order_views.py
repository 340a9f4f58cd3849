from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import AdminFactory, SellerFactory, UserFactory
from infrastructure.container import container
from marketplace.ordering.domain.models import Order, SellerSubOrder
from marketplace.tests.factories import OrderFactory, SellerSubOrderFactory, SellerSubOrderItemFactory


class BuyerOrderIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.buyer = UserFactory()
        self.client.force_authenticate(user=self.buyer)
        self.order = OrderFactory(buyer=self.buyer)
        self.sub_order = SellerSubOrderFactory(order=self.order, status=SellerSubOrder.STATUS_NEW)

    def test_list_only_own_orders(self):
        OrderFactory()
        response = self.client.get(reverse("marketplace:order-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["order_number"], self.order.order_number)

    def test_status_filter(self):
        OrderFactory(buyer=self.buyer, status=Order.STATUS_FAILED)
        response = self.client.get(reverse("marketplace:order-list"), {"status": "failed"})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["status"], "failed")

    def test_other_buyers_order_is_not_found(self):
        response = self.client.get(reverse("marketplace:order-detail", args=[OrderFactory().id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_detail_includes_sub_orders(self):
        response = self.client.get(reverse("marketplace:order-detail", args=[self.order.id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data["sub_orders"]), 1)
        self.assertEqual(response.data["delivery_address"]["city"], "Springfield")

    def test_cancel_unpaid_order(self):
        response = self.client.post(
            reverse("marketplace:order-cancel", args=[self.order.id]), {"reason": "Changed my mind"}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], Order.STATUS_CANCELLED)
        self.sub_order.refresh_from_db()
        self.assertEqual(self.sub_order.status, SellerSubOrder.STATUS_CANCELLED)

    def test_cancel_after_preparing_is_rejected(self):
        self.sub_order.status = SellerSubOrder.STATUS_PREPARING
        self.sub_order.save()
        response = self.client.post(reverse("marketplace:order-cancel", args=[self.order.id]), {}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class SellerSubOrderIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.sub_order = SellerSubOrderFactory(status=SellerSubOrder.STATUS_PAID)
        SellerSubOrderItemFactory(sub_order=self.sub_order)
        self.seller = self.sub_order.store.owner
        self.client.force_authenticate(user=self.seller)

    def status_url(self):
        return reverse("marketplace:seller-sub-order-update-status", args=[self.sub_order.id])

    def test_list_own_sub_orders(self):
        SellerSubOrderFactory()
        response = self.client.get(reverse("marketplace:seller-sub-order-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 1)

    def test_seller_without_store(self):
        self.client.force_authenticate(user=SellerFactory())
        response = self.client.get(reverse("marketplace:seller-sub-order-list"))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["detail"], "You do not have a store yet.")

    def test_ship_with_tracking_sends_email(self):
        self.client.post(self.status_url(), {"status": "preparing"}, format="json")
        response = self.client.post(
            self.status_url(),
            {"status": "shipped", "tracking_number": "1Z999", "shipping_carrier": "ups"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], SellerSubOrder.STATUS_SHIPPED)
        self.assertEqual(response.data["tracking_number"], "1Z999")
        self.assertEqual(len(container.email().messages_tagged("order_shipped")), 1)

    def test_invalid_transition(self):
        response = self.client.post(self.status_url(), {"status": "delivered"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Cannot transition from Paid to Delivered.")

    def test_export_csv(self):
        response = self.client.get(reverse("marketplace:seller-sub-order-export"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response["Content-Type"], "text/csv")
        self.assertIn("attachment;", response["Content-Disposition"])
        self.assertIn(self.sub_order.sub_order_number, response.content.decode())

    def test_buyer_cannot_access_seller_endpoints(self):
        self.client.force_authenticate(user=UserFactory())
        response = self.client.get(reverse("marketplace:seller-sub-order-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class AdminOrderIntegrationTest(TestCase):
    def test_admin_sees_all_orders(self):
        OrderFactory()
        OrderFactory()
        client = APIClient()
        client.force_authenticate(user=AdminFactory())
        response = client.get(reverse("marketplace:admin-order-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)
