from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import UserFactory
from marketplace.ordering.domain.models import ReturnRequest, SellerSubOrder
from marketplace.tests.factories import (
    OrderFactory,
    ReturnRequestFactory,
    SellerSubOrderFactory,
    SellerSubOrderItemFactory,
)


class BuyerCaseIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.buyer = UserFactory()
        self.client.force_authenticate(user=self.buyer)
        self.sub_order = SellerSubOrderFactory(
            order=OrderFactory(buyer=self.buyer),
            status=SellerSubOrder.STATUS_DELIVERED,
            delivered_at=timezone.now() - timedelta(days=2),
        )
        self.item = SellerSubOrderItemFactory(sub_order=self.sub_order, status="delivered")

    def test_open_return_case(self):
        response = self.client.post(
            reverse("marketplace:case-list"),
            {
                "sub_order_id": str(self.sub_order.id),
                "reason": "Arrived chipped.",
                "selected_items": [{"item_id": str(self.item.id), "quantity": 1}],
            },
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], ReturnRequest.STATUS_REQUESTED)
        self.assertTrue(response.data["case_number"].startswith("CASE-"))

    def test_window_expired(self):
        self.sub_order.delivered_at = timezone.now() - timedelta(days=45)
        self.sub_order.save()
        response = self.client.post(
            reverse("marketplace:case-list"),
            {"sub_order_id": str(self.sub_order.id), "reason": "Too late?"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_can_initiate(self):
        response = self.client.get(reverse("marketplace:case-can-initiate"), {"sub_order_id": str(self.sub_order.id)})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["can_initiate"])

    def test_can_initiate_requires_sub_order(self):
        response = self.client.get(reverse("marketplace:case-can-initiate"))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Sub-order ID is required.")

    def test_post_and_read_messages(self):
        case = ReturnRequestFactory(sub_order=self.sub_order, buyer=self.buyer)
        url = reverse("marketplace:case-messages", args=[case.id])

        created = self.client.post(url, {"content": "Photos attached."}, format="json")
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)

        listed = self.client.get(url)
        self.assertEqual(listed.status_code, status.HTTP_200_OK)
        self.assertEqual(len(listed.data), 1)
        self.assertEqual(listed.data[0]["sender_role"], "buyer")


class SellerCaseIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.case = ReturnRequestFactory(status=ReturnRequest.STATUS_APPROVED)
        self.client.force_authenticate(user=self.case.sub_order.store.owner)

    def test_list_store_cases(self):
        ReturnRequestFactory()
        response = self.client.get(reverse("marketplace:seller-case-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_resolve_without_refund(self):
        response = self.client.post(
            reverse("marketplace:seller-case-resolve", args=[self.case.id]),
            {"resolution_type": "no_refund", "resolution_reason": "Damage caused after delivery."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], ReturnRequest.STATUS_COMPLETED)
        self.assertEqual(response.data["resolution_type"], "no_refund")

    def test_no_refund_needs_reason(self):
        response = self.client.post(
            reverse("marketplace:seller-case-resolve", args=[self.case.id]),
            {"resolution_type": "no_refund"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_other_store_cannot_resolve(self):
        other = ReturnRequestFactory(status=ReturnRequest.STATUS_APPROVED)
        response = self.client.post(
            reverse("marketplace:seller-case-resolve", args=[other.id]),
            {"resolution_type": "replacement"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
