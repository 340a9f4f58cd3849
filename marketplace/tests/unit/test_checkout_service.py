import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from authentication.tests.factories import UserFactory
from infrastructure.email.mock_service import MockEmailService
from infrastructure.events import LocalEventBus
from marketplace.cart.domain.models import Cart, CartItem, PromoCode
from marketplace.cart.domain.services import (
    CartService,
    CheckoutValidationService,
    PromoCodeService,
    ShippingCalculator,
)
from marketplace.catalog.domain.models import Product
from marketplace.catalog.domain.services import CatalogService
from marketplace.ordering.domain.models import Order
from marketplace.ordering.domain.services import CheckoutService, OrderService
from marketplace.tests.factories import CartFactory, CartItemFactory, ProductFactory, PromoCodeFactory
from utils.service_base import ErrorCodes, service_err, service_ok

ADDRESS = {
    "full_name": "Robin Buyer",
    "address_line1": "1 Main Street",
    "city": "Springfield",
    "postal_code": "12345",
    "country": "US",
}


@pytest.mark.unit
@pytest.mark.django_db
class TestCheckout:
    def setup_method(self):
        self.transaction = SimpleNamespace(id=uuid.uuid4(), external_reference="SIM-123", status="pending")
        self.payments = MagicMock()
        self.payments.initiate_payment.return_value = service_ok(
            {
                "transaction": self.transaction,
                "redirect_url": "https://pay.example/session",
                "requires_blik_code": False,
                "authorized": False,
            }
        )

        catalog = CatalogService()
        promo = PromoCodeService()
        shipping = ShippingCalculator()
        cart_service = CartService(promo_code_service=promo, shipping_calculator=shipping)
        self.service = CheckoutService(
            cart_service=cart_service,
            checkout_validation_service=CheckoutValidationService(),
            shipping_calculator=shipping,
            promo_code_service=promo,
            order_service=OrderService(catalog, MockEmailService(), LocalEventBus()),
            catalog_service=catalog,
            payment_service=self.payments,
        )

        self.buyer = UserFactory()
        self.cart = CartFactory(buyer=self.buyer)
        self.product = ProductFactory(price=Decimal("20.00"), stock=5)
        CartItemFactory(cart=self.cart, product=self.product, quantity=2)

    def checkout(self, **kwargs):
        return self.service.create_order_from_cart(
            buyer=self.buyer,
            delivery_address=ADDRESS,
            payment_method="credit_card",
            return_url="https://shop.example/return",
            **kwargs,
        )

    def test_creates_order_takes_stock_and_empties_cart(self):
        result = self.checkout()

        assert result.ok
        order = result.value["order"]
        assert order.status == Order.STATUS_NEW
        assert order.payment_transaction_id == self.transaction.id
        assert order.total_amount == Decimal("45.99")
        assert self.payments.initiate_payment.call_args.kwargs["amount"] == Decimal("45.99")
        self.product.refresh_from_db()
        assert self.product.stock == 3
        assert not CartItem.objects.filter(cart=self.cart).exists()
        self.payments.handle_payment_callback.assert_not_called()

    def test_promo_discount_and_usage(self):
        promo = PromoCodeFactory(code="TEN")
        Cart.objects.filter(id=self.cart.id).update(applied_promo_code=promo)

        result = self.checkout()

        assert result.value["order"].discount_amount == Decimal("4.00")
        assert result.value["order"].promo_code == "TEN"
        assert PromoCode.objects.get(id=promo.id).usage_count == 1

    def test_stock_failure_rolls_everything_back(self):
        CartItemFactory(cart=self.cart, product=ProductFactory(stock=1), quantity=1)
        self.service.catalog_service = MagicMock()
        self.service.catalog_service.decrement_stock.side_effect = [
            service_ok(self.product),
            service_err(ErrorCodes.INSUFFICIENT_STOCK, "Insufficient stock."),
        ]

        result = self.checkout()

        assert result.error == ErrorCodes.INSUFFICIENT_STOCK
        assert not Order.objects.filter(buyer=self.buyer).exists()
        assert CartItem.objects.filter(cart=self.cart).count() == 2

    def test_validation_failure_stops_before_payment(self):
        Product.objects.filter(id=self.product.id).update(price=Decimal("21.00"))

        result = self.checkout()

        assert result.error == ErrorCodes.CHECKOUT_VALIDATION_FAILED
        self.payments.initiate_payment.assert_not_called()

    def test_payment_failure_is_returned(self):
        self.payments.initiate_payment.return_value = service_err(ErrorCodes.PROVIDER_ERROR, "Provider down.")

        result = self.checkout()

        assert result.error == ErrorCodes.PROVIDER_ERROR
        assert CartItem.objects.filter(cart=self.cart).exists()

    def test_authorized_blik_is_confirmed_after_commit(self):
        self.payments.initiate_payment.return_value = service_ok(
            {"transaction": self.transaction, "redirect_url": None, "requires_blik_code": False, "authorized": True}
        )

        result = self.checkout(blik_code="123456")

        assert result.ok
        self.payments.handle_payment_callback.assert_called_once_with(
            self.transaction.id, self.buyer, is_success=True, external_ref="SIM-123"
        )
