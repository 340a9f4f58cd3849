from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from authentication.tests.factories import UserFactory
from marketplace.cart.domain.models import Cart, CartItem
from marketplace.cart.domain.services.cart_service import CartService, first_image_url
from marketplace.cart.domain.services.checkout_validation_service import CheckoutValidationService
from marketplace.cart.domain.services.promo_code_service import PromoCodeService
from marketplace.catalog.domain.models import Product
from marketplace.tests.factories import CartFactory, CartItemFactory, ProductFactory, PromoCodeFactory
from sellers.tests.factories import ShippingRuleFactory, StoreFactory
from utils.service_base import ErrorCodes


@pytest.mark.unit
class TestFirstImageUrl:
    def test_local_paths_are_kept(self):
        assert first_image_url(["/uploads/a.jpg", "/uploads/b.jpg"]) == "/uploads/a.jpg"

    def test_unsafe_urls_fall_back(self):
        assert first_image_url(["https://evil.example/x.jpg"]) == "/images/placeholder.png"
        assert first_image_url(["/uploads/../etc/passwd"]) == "/images/placeholder.png"
        assert first_image_url([]) == "/images/placeholder.png"


@pytest.mark.unit
@pytest.mark.django_db
class TestCartItems:
    def setup_method(self):
        self.service = CartService()
        self.buyer = UserFactory()
        self.product = ProductFactory(price=Decimal("12.00"), stock=5)

    def test_add_snapshots_product(self):
        result = self.service.add_item(self.buyer, self.product.id, 2)

        assert result.ok
        item = result.value
        assert item.product_price == Decimal("12.00")
        assert item.product_title == self.product.title
        assert item.store_id == self.product.store_id

    def test_adding_again_merges_quantity(self):
        self.service.add_item(self.buyer, self.product.id, 2)
        result = self.service.add_item(self.buyer, self.product.id, 1)

        assert result.value.quantity == 3
        assert CartItem.objects.filter(cart__buyer=self.buyer).count() == 1

    def test_insufficient_stock_reports_available(self):
        result = self.service.add_item(self.buyer, self.product.id, 6)

        assert result.error == ErrorCodes.INSUFFICIENT_STOCK
        assert result.error_detail == "Insufficient stock. Only 5 items available."
        assert result.value == {"available_stock": 5}

    def test_inactive_product_is_unavailable(self):
        draft = ProductFactory(status=Product.STATUS_DRAFT)
        result = self.service.add_item(self.buyer, draft.id, 1)
        assert result.error_detail == "Product is not available."

    def test_zero_quantity_update_removes_item(self):
        item = self.service.add_item(self.buyer, self.product.id, 1).value

        result = self.service.update_quantity(self.buyer, item.id, 0)

        assert result.ok
        assert not CartItem.objects.filter(id=item.id).exists()

    def test_other_buyer_cannot_touch_item(self):
        item = self.service.add_item(self.buyer, self.product.id, 1).value
        result = self.service.remove_item(UserFactory(), item.id)
        assert result.error == ErrorCodes.NOT_AUTHORIZED


@pytest.mark.unit
@pytest.mark.django_db
class TestCartTotals:
    def setup_method(self):
        self.service = CartService()
        self.buyer = UserFactory()
        self.cart = CartFactory(buyer=self.buyer)

    def test_groups_by_store_with_shipping(self):
        store_a = StoreFactory()
        store_b = StoreFactory()
        ShippingRuleFactory(store=store_a, flat_rate=Decimal("4.00"), per_item_rate=Decimal("1.00"))
        CartItemFactory(cart=self.cart, product=ProductFactory(store=store_a, price=Decimal("10.00")), quantity=2)
        CartItemFactory(cart=self.cart, product=ProductFactory(store=store_b, price=Decimal("30.00")))

        cart = self.service.get_cart(self.buyer).value

        assert len(cart["stores"]) == 2
        assert cart["subtotal"] == Decimal("50.00")
        shipping = {group["store_id"]: group["shipping"]["shipping_cost"] for group in cart["stores"]}
        assert shipping[str(store_a.id)] == Decimal("6.00")
        assert shipping[str(store_b.id)] == Decimal("5.99")
        assert cart["total"] == Decimal("50.00") + Decimal("11.99")
        assert cart["item_count"] == 3

    def test_free_shipping_over_threshold(self):
        store = StoreFactory()
        ShippingRuleFactory(store=store, free_shipping_threshold=Decimal("40.00"))
        CartItemFactory(cart=self.cart, product=ProductFactory(store=store, price=Decimal("45.00")))

        group = self.service.get_cart(self.buyer).value["stores"][0]

        assert group["shipping"]["is_free_shipping"] is True
        assert group["shipping"]["shipping_cost"] == Decimal("0.00")

    def test_clear_drops_items_and_promo(self):
        CartItemFactory(cart=self.cart)
        self.cart.applied_promo_code = PromoCodeFactory()
        self.cart.save()

        self.service.clear_cart(self.buyer)

        self.cart.refresh_from_db()
        assert self.cart.applied_promo_code is None
        assert self.service.get_item_count(self.buyer) == 0


@pytest.mark.unit
@pytest.mark.django_db
class TestPromoCodes:
    def setup_method(self):
        self.service = PromoCodeService()
        self.buyer = UserFactory()
        self.cart = CartFactory(buyer=self.buyer)
        CartItemFactory(cart=self.cart, product=ProductFactory(price=Decimal("40.00")), quantity=2)

    def test_apply_percentage_code(self):
        promo = PromoCodeFactory(code="SPRING10")

        result = self.service.apply_promo_code(self.buyer, "spring10")

        assert result.ok
        assert result.value["discount_amount"] == Decimal("8.00")
        self.cart.refresh_from_db()
        assert self.cart.applied_promo_code == promo

    def test_only_one_code_per_cart(self):
        PromoCodeFactory(code="ONE")
        PromoCodeFactory(code="TWO")
        self.service.apply_promo_code(self.buyer, "ONE")

        result = self.service.apply_promo_code(self.buyer, "TWO")

        assert result.error == ErrorCodes.CONFLICT

    def test_expired_code(self):
        PromoCodeFactory(code="OLD", end_date=timezone.now() - timedelta(days=1))
        result = self.service.apply_promo_code(self.buyer, "OLD")
        assert result.error_detail == "This promo code has expired."

    def test_minimum_order_amount(self):
        PromoCodeFactory(code="BIG", minimum_order_amount=Decimal("100.00"))
        result = self.service.apply_promo_code(self.buyer, "BIG")
        assert result.error_detail == "Minimum order amount of 100.00 is required to use this promo code."

    def test_seller_code_outside_cart_stores(self):
        PromoCodeFactory(code="STORE", scope="seller", store=StoreFactory())
        result = self.service.apply_promo_code(self.buyer, "STORE")
        assert result.error_detail == "This promo code is not applicable to items in your cart."

    def test_discount_disappears_when_code_lapses(self):
        promo = PromoCodeFactory(code="LAPSE")
        self.service.apply_promo_code(self.buyer, "LAPSE")
        promo.is_active = False
        promo.save()

        cart = Cart.objects.get(id=self.cart.id)
        assert self.service.calculate_discount(cart)["discount_amount"] == Decimal("0.00")

    def test_fixed_discount_capped_at_subtotal(self):
        PromoCodeFactory(code="HUGE", discount_type="fixed", discount_value=Decimal("500.00"))
        result = self.service.apply_promo_code(self.buyer, "HUGE")
        assert result.value["discount_amount"] == Decimal("80.00")

    def test_create_validates(self):
        result = self.service.create_promo_code({"code": "", "discount_value": "150", "discount_type": "percentage"})
        assert "Promo code is required." in result.errors
        assert "Percentage discount cannot exceed 100." in result.errors


@pytest.mark.unit
@pytest.mark.django_db
class TestCheckoutValidation:
    def setup_method(self):
        self.service = CheckoutValidationService()
        self.buyer = UserFactory()
        self.cart = CartFactory(buyer=self.buyer)

    def test_empty_cart(self):
        result = self.service.validate_checkout(self.buyer)
        assert result.error == ErrorCodes.CART_EMPTY

    def test_valid_cart_returns_items_at_current_price(self):
        item = CartItemFactory(cart=self.cart, quantity=2)

        result = self.service.validate_checkout(self.buyer)

        assert result.ok
        validated = result.value["validated_items"][0]
        assert validated["product_id"] == str(item.product_id)
        assert validated["quantity"] == 2

    def test_reports_stock_and_price_problems(self):
        short = CartItemFactory(cart=self.cart, product=ProductFactory(stock=1), quantity=3)
        repriced = CartItemFactory(cart=self.cart, product=ProductFactory(price=Decimal("20.00")))
        Product.objects.filter(id=repriced.product_id).update(price=Decimal("22.00"))

        result = self.service.validate_checkout(self.buyer)

        assert result.error == ErrorCodes.CHECKOUT_VALIDATION_FAILED
        assert result.value["stock_issues"][0]["cart_item_id"] == str(short.id)
        assert result.value["stock_issues"][0]["available_stock"] == 1
        assert result.value["price_changes"][0]["current_price"] == Decimal("22.00")

    def test_refresh_prices(self):
        item = CartItemFactory(cart=self.cart, product=ProductFactory(price=Decimal("20.00")))
        Product.objects.filter(id=item.product_id).update(price=Decimal("18.00"))

        assert self.service.update_cart_prices_to_current(self.buyer).value == 1
        item.refresh_from_db()
        assert item.product_price == Decimal("18.00")
