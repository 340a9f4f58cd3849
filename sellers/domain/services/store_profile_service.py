"""
StoreProfileService - store identity and public storefront lookup.
"""

from typing import Dict, Optional

from django.db import transaction
from django.utils.text import slugify

from sellers.domain.models import Store
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

from .validation import check_email, check_length, check_max_length, check_url


class StoreProfileService(BaseService):
    def __init__(self):
        super().__init__()

    @BaseService.log_performance
    def get_store_by_seller(self, seller_id) -> ServiceResult[Store]:
        store = Store.objects.filter(owner_id=seller_id).first()
        if not store:
            return service_err(ErrorCodes.NOT_FOUND, "Store not found.")
        return service_ok(store)

    @BaseService.log_performance
    def get_store_by_id(self, store_id) -> ServiceResult[Store]:
        store = Store.objects.filter(id=store_id).first()
        if not store:
            return service_err(ErrorCodes.NOT_FOUND, "Store not found.")
        return service_ok(store)

    @BaseService.log_performance
    def get_public_store_by_slug(self, slug: str) -> ServiceResult[Store]:
        """Only active and limited-active stores are visible to the public."""
        store = Store.objects.filter(slug=slug, status__in=Store.PUBLIC_STATUSES).first()
        if not store:
            return service_err(ErrorCodes.NOT_FOUND, "Store not found.")
        return service_ok(store)

    def _validate(self, data: Dict, store: Optional[Store]) -> list:
        errors = []
        name = (data.get("name") or "").strip()

        error = check_length(name, "Store name", 2, 200)
        if error:
            errors.append(error)
        else:
            clash = Store.objects.filter(name__iexact=name)
            if store:
                clash = clash.exclude(id=store.id)
            if clash.exists():
                errors.append("A store with this name already exists.")

        for message in (
            check_max_length(data.get("description"), "Store description", 2000),
            check_url(data.get("logo_url"), "Logo URL"),
            check_url(data.get("website_url"), "Website URL"),
            check_email(data.get("contact_email"), "Contact e-mail"),
            check_max_length(data.get("contact_phone"), "Contact phone", 20),
        ):
            if message:
                errors.append(message)
        return errors

    def _unique_slug(self, name: str, store_id=None) -> str:
        base = slugify(name)[:200] or "store"
        slug = base
        suffix = 2
        while Store.objects.filter(slug=slug).exclude(id=store_id).exists():
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    @BaseService.log_performance
    @transaction.atomic
    def create_or_update_store_profile(self, seller_id, data: Dict) -> ServiceResult[Store]:
        """
        Create the seller's store or update its profile.

        New stores start in pending_verification; KYC approval activates them.
        The slug follows the name and is made unique with a numeric suffix.
        """
        store = Store.objects.select_for_update().filter(owner_id=seller_id).first()
        errors = self._validate(data, store)
        if errors:
            return validation_err(errors)

        name = data["name"].strip()
        fields = {
            "description": (data.get("description") or "").strip(),
            "logo_url": data.get("logo_url") or "",
            "website_url": data.get("website_url") or "",
            "contact_email": data.get("contact_email") or "",
            "contact_phone": data.get("contact_phone") or "",
        }

        if store is None:
            store = Store.objects.create(
                owner_id=seller_id, name=name, slug=self._unique_slug(name), **fields
            )
            self.logger.info(f"Created store {store.id} for seller {seller_id}")
            return service_ok(store)

        if store.name != name:
            store.name = name
            store.slug = self._unique_slug(name, store.id)
        for key, value in fields.items():
            setattr(store, key, value)
        store.save()
        return service_ok(store)

    @BaseService.log_performance
    def set_store_status(self, seller_id, status: str) -> ServiceResult[Store]:
        if status not in dict(Store.STATUS_CHOICES):
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Invalid store status '{status}'.")
        updated = Store.objects.filter(owner_id=seller_id).update(status=status)
        if not updated:
            return service_err(ErrorCodes.NOT_FOUND, "Store not found.")
        return self.get_store_by_seller(seller_id)

    def activate_store(self, seller_id) -> ServiceResult[Store]:
        return self.set_store_status(seller_id, Store.STATUS_ACTIVE)
