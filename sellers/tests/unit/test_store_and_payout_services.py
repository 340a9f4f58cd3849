from decimal import Decimal

import pytest

from authentication.tests.factories import SellerFactory
from sellers.domain.models import Store
from sellers.domain.services.payout_settings_service import PayoutSettingsService
from sellers.domain.services.shipping_service import ShippingService
from sellers.domain.services.store_profile_service import StoreProfileService
from sellers.tests.factories import PayoutSettingsFactory, ShippingMethodFactory, StoreFactory


@pytest.mark.unit
@pytest.mark.django_db
class TestStoreProfileService:
    def setup_method(self):
        self.service = StoreProfileService()
        self.seller = SellerFactory()

    def test_create_generates_unique_slug(self):
        StoreFactory(name="Other", slug="green-goods")

        result = self.service.create_or_update_store_profile(self.seller.id, {"name": "Green Goods"})

        assert result.ok
        assert result.value.slug == "green-goods-2"
        assert result.value.status == Store.STATUS_PENDING_VERIFICATION

    def test_rejects_duplicate_name_and_bad_urls(self):
        StoreFactory(name="Green Goods")

        result = self.service.create_or_update_store_profile(
            self.seller.id,
            {"name": "green goods", "website_url": "ftp://example.com", "contact_email": "not-an-email"},
        )

        assert not result.ok
        assert "A store with this name already exists." in result.errors
        assert "Website URL must be a valid http or https URL." in result.errors
        assert "Contact e-mail must be a valid e-mail address." in result.errors

    def test_update_keeps_own_name(self):
        store = StoreFactory(owner=self.seller, name="Mine")
        result = self.service.create_or_update_store_profile(self.seller.id, {"name": "Mine", "description": "New"})
        assert result.ok
        assert result.value.id == store.id
        assert result.value.description == "New"

    def test_public_lookup_hides_pending_stores(self):
        StoreFactory(slug="hidden", status=Store.STATUS_PENDING_VERIFICATION)
        StoreFactory(slug="limited", status=Store.STATUS_LIMITED_ACTIVE)

        assert not self.service.get_public_store_by_slug("hidden").ok
        assert self.service.get_public_store_by_slug("limited").ok


@pytest.mark.unit
@pytest.mark.django_db
class TestPayoutSettingsService:
    def setup_method(self):
        self.service = PayoutSettingsService()
        self.seller = SellerFactory()

    def test_bank_transfer_requires_details(self):
        result = self.service.save_payout_settings(self.seller.id, {"payout_method": "bank_transfer"})
        assert not result.ok
        assert len(result.errors) == 3

    def test_payment_account_needs_email_or_id(self):
        result = self.service.save_payout_settings(self.seller.id, {"payout_method": "payment_account"})
        assert result.error_detail == "A payment account e-mail or account ID is required."

        result = self.service.save_payout_settings(
            self.seller.id, {"payout_method": "payment_account", "payment_account_email": "pay@example.com"}
        )
        assert result.ok
        assert self.service.has_complete_payout_settings(self.seller.id)

    def test_incomplete_settings_detected(self):
        PayoutSettingsFactory(seller=self.seller, bank_account_number="")
        assert not self.service.has_complete_payout_settings(self.seller.id)


@pytest.mark.unit
@pytest.mark.django_db
class TestShippingService:
    def setup_method(self):
        self.service = ShippingService()
        self.store = StoreFactory()

    def test_create_method_validation(self):
        result = self.service.create_shipping_method(self.store, "X", Decimal("-1"))
        assert "Shipping cost cannot be negative." in result.errors
        assert "Shipping method name must be between 2 and 100 characters." in result.errors

    def test_deactivate_hides_from_active_list(self):
        method = ShippingMethodFactory(store=self.store)
        assert self.service.deactivate_shipping_method(self.store, method.id).ok
        assert self.service.list_shipping_methods(self.store).value == []

    def test_other_store_cannot_edit(self):
        method = ShippingMethodFactory()
        result = self.service.update_shipping_method(self.store, method.id, cost=Decimal("1.00"))
        assert not result.ok

    def test_save_rule(self):
        result = self.service.save_shipping_rule(self.store, "3.50", "0.50", "50")
        assert result.ok
        assert result.value.free_shipping_threshold == Decimal("50")

        result = self.service.save_shipping_rule(self.store, "3.50", "0", "0")
        assert result.error_detail == "Free shipping threshold must be greater than zero."
