from decimal import Decimal

import pytest

from authentication.tests.factories import SellerFactory, UserFactory
from marketplace.catalog.domain.models import Product
from marketplace.catalog.domain.services.catalog_service import CatalogService
from marketplace.tests.factories import CategoryFactory, ProductFactory
from sellers.tests.factories import StoreFactory
from utils.service_base import ErrorCodes


@pytest.mark.unit
@pytest.mark.django_db
class TestProductManagement:
    def setup_method(self):
        self.service = CatalogService()
        self.seller = SellerFactory()
        self.store = StoreFactory(owner=self.seller)
        self.category = CategoryFactory()

    def test_create_product_starts_as_draft(self):
        result = self.service.create_product(
            self.seller,
            {"title": "Stoneware mug", "price": "18.50", "stock": 4, "category_id": self.category.id},
        )

        assert result.ok
        assert result.value.status == Product.STATUS_DRAFT
        assert result.value.store == self.store
        assert result.value.price == Decimal("18.50")

    def test_create_requires_seller_role(self):
        buyer = UserFactory()
        result = self.service.create_product(buyer, {"title": "Mug", "price": "10", "stock": 1})
        assert result.error == ErrorCodes.NOT_AUTHORIZED

    def test_create_collects_validation_errors(self):
        result = self.service.create_product(self.seller, {"title": "M", "price": "0", "stock": -1})

        assert result.error == ErrorCodes.VALIDATION_ERROR
        assert "Price must be greater than zero." in result.errors
        assert "Stock cannot be negative." in result.errors
        assert len(result.errors) == 3

    def test_update_rejects_other_store(self):
        product = ProductFactory()
        result = self.service.update_product(self.seller, product.id, {"price": "12.00"})
        assert result.error == ErrorCodes.NOT_AUTHORIZED

    def test_archived_is_terminal(self):
        product = ProductFactory(store=self.store, status=Product.STATUS_ARCHIVED)
        result = self.service.change_status(self.seller, product.id, Product.STATUS_ACTIVE)
        assert result.error_detail == "Archived products cannot be reactivated."


@pytest.mark.unit
@pytest.mark.django_db
class TestCatalogListing:
    def setup_method(self):
        self.service = CatalogService()

    def test_only_active_products_are_listed(self):
        visible = ProductFactory(title="Blue vase")
        ProductFactory(title="Hidden vase", status=Product.STATUS_DRAFT)

        result = self.service.list_products({"search": "vase"})

        assert result.ok
        assert [product.id for product in result.value["results"]] == [visible.id]
        assert result.value["count"] == 1

    def test_price_and_category_filters(self):
        category = CategoryFactory(slug="ceramics")
        cheap = ProductFactory(category=category, price=Decimal("5.00"))
        ProductFactory(category=category, price=Decimal("90.00"))
        ProductFactory(price=Decimal("5.00"))

        result = self.service.list_products({"category": "ceramics", "max_price": "10"})

        assert [product.id for product in result.value["results"]] == [cheap.id]

    def test_page_size_bounds(self):
        result = self.service.list_products(page=0, page_size=101)
        assert "Page number must be at least 1." in result.errors
        assert "Page size must be between 1 and 100." in result.errors


@pytest.mark.unit
@pytest.mark.django_db
class TestStock:
    def setup_method(self):
        self.service = CatalogService()
        self.product = ProductFactory(stock=3)

    def test_decrement_and_restore(self):
        assert self.service.decrement_stock(self.product.id, 2).value.stock == 1
        assert self.service.restore_stock(self.product.id, 2).value.stock == 3

    def test_decrement_refuses_oversell(self):
        result = self.service.decrement_stock(self.product.id, 4)

        assert result.error == ErrorCodes.INSUFFICIENT_STOCK
        self.product.refresh_from_db()
        assert self.product.stock == 3

    def test_quantity_must_be_positive(self):
        assert self.service.decrement_stock(self.product.id, 0).error == ErrorCodes.VALIDATION_ERROR
