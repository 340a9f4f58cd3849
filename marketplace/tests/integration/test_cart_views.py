from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from authentication.tests.factories import AdminFactory, UserFactory
from marketplace.cart.domain.models import PromoCode
from marketplace.tests.factories import CartFactory, CartItemFactory, ProductFactory, PromoCodeFactory


class CartViewIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.buyer = UserFactory()
        self.client.force_authenticate(user=self.buyer)
        self.product = ProductFactory(price=Decimal("25.00"), stock=3)

    def test_add_item_returns_grouped_cart(self):
        response = self.client.post(
            reverse("marketplace:cart-add-item"), {"product_id": str(self.product.id), "quantity": 2}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["item_count"], 2)
        self.assertEqual(response.data["subtotal"], "50.00")
        self.assertEqual(len(response.data["stores"]), 1)
        self.assertEqual(response.data["stores"][0]["store_name"], self.product.store.name)

    def test_add_more_than_stock_is_rejected(self):
        response = self.client.post(
            reverse("marketplace:cart-add-item"), {"product_id": str(self.product.id), "quantity": 5}, format="json"
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_count(self):
        CartItemFactory(cart=CartFactory(buyer=self.buyer), product=self.product, quantity=2)
        response = self.client.get(reverse("marketplace:cart-count"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {"count": 2})

    def test_apply_promo_code(self):
        CartItemFactory(cart=CartFactory(buyer=self.buyer), product=self.product, quantity=2)
        PromoCodeFactory(code="SPRING10")
        response = self.client.post(reverse("marketplace:cart-apply-promo"), {"code": "spring10"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["code"], "SPRING10")
        self.assertEqual(response.data["discount_amount"], "5.00")

    def test_apply_unknown_promo_code(self):
        CartItemFactory(cart=CartFactory(buyer=self.buyer), product=self.product)
        response = self.client.post(reverse("marketplace:cart-apply-promo"), {"code": "NOPE"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["detail"], "Invalid promo code.")

    def test_validate_reports_stock_issue(self):
        CartItemFactory(cart=CartFactory(buyer=self.buyer), product=self.product, quantity=3)
        self.product.stock = 1
        self.product.save()

        response = self.client.get(reverse("marketplace:cart-validate"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["is_valid"])
        self.assertEqual(response.data["stock_issues"][0]["available_stock"], 1)

    def test_validate_empty_cart(self):
        response = self.client.get(reverse("marketplace:cart-validate"))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cart_requires_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse("marketplace:cart-list"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class PromoCodeAdminIntegrationTest(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.url = reverse("marketplace:admin-promo-code-list")

    def test_admin_creates_promo_code(self):
        self.client.force_authenticate(user=AdminFactory())
        response = self.client.post(
            self.url,
            {"code": "welcome5", "discount_type": "fixed", "discount_value": "5.00", "scope": "platform"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(PromoCode.objects.filter(code="WELCOME5").exists())

    def test_buyer_is_forbidden(self):
        self.client.force_authenticate(user=UserFactory())
        self.assertEqual(self.client.get(self.url).status_code, status.HTTP_403_FORBIDDEN)
