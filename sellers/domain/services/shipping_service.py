"""
ShippingService - per-store shipping methods and the shipping rule the
cart prices deliveries with.
"""

from decimal import Decimal
from typing import List, Optional

from django.db import transaction

from sellers.domain.models import ShippingMethod, ShippingRule, Store
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

from .validation import check_length, check_max_length, to_decimal


class ShippingService(BaseService):
    def __init__(self):
        super().__init__()

    def _method_errors(self, name, cost, description) -> list:
        errors = []
        message = check_length(name, "Shipping method name", 2, 100)
        if message:
            errors.append(message)
        amount = to_decimal(cost)
        if amount is None:
            errors.append("Shipping cost is required.")
        elif amount < 0:
            errors.append("Shipping cost cannot be negative.")
        message = check_max_length(description, "Description", 500)
        if message:
            errors.append(message)
        return errors

    @BaseService.log_performance
    def list_shipping_methods(self, store: Store, active_only: bool = True) -> ServiceResult[List[ShippingMethod]]:
        queryset = ShippingMethod.objects.filter(store=store)
        if active_only:
            queryset = queryset.filter(is_active=True)
        return service_ok(list(queryset))

    def get_shipping_method(self, store: Store, method_id) -> ServiceResult[ShippingMethod]:
        method = ShippingMethod.objects.filter(store=store, id=method_id).first()
        if not method:
            return service_err(ErrorCodes.NOT_FOUND, "Shipping method not found.")
        return service_ok(method)

    @BaseService.log_performance
    def create_shipping_method(
        self,
        store: Store,
        name: str,
        cost,
        description: str = "",
        estimated_delivery_days: Optional[int] = None,
    ) -> ServiceResult[ShippingMethod]:
        errors = self._method_errors(name, cost, description)
        if errors:
            return validation_err(errors)

        method = ShippingMethod.objects.create(
            store=store,
            name=name.strip(),
            cost=to_decimal(cost),
            description=(description or "").strip(),
            estimated_delivery_days=estimated_delivery_days,
        )
        return service_ok(method)

    @BaseService.log_performance
    @transaction.atomic
    def update_shipping_method(self, store: Store, method_id, **changes) -> ServiceResult[ShippingMethod]:
        method = ShippingMethod.objects.select_for_update().filter(store=store, id=method_id).first()
        if not method:
            return service_err(ErrorCodes.NOT_FOUND, "Shipping method not found.")

        name = changes.get("name", method.name)
        cost = changes.get("cost", method.cost)
        description = changes.get("description", method.description)
        errors = self._method_errors(name, cost, description)
        if errors:
            return validation_err(errors)

        method.name = name.strip()
        method.cost = to_decimal(cost)
        method.description = (description or "").strip()
        if "estimated_delivery_days" in changes:
            method.estimated_delivery_days = changes["estimated_delivery_days"]
        if "is_active" in changes:
            method.is_active = bool(changes["is_active"])
        method.save()
        return service_ok(method)

    @BaseService.log_performance
    def deactivate_shipping_method(self, store: Store, method_id) -> ServiceResult[ShippingMethod]:
        updated = ShippingMethod.objects.filter(store=store, id=method_id).update(is_active=False)
        if not updated:
            return service_err(ErrorCodes.NOT_FOUND, "Shipping method not found.")
        return self.get_shipping_method(store, method_id)

    # Shipping rule

    def get_shipping_rule(self, store: Store) -> Optional[ShippingRule]:
        return ShippingRule.objects.filter(store=store).first()

    @BaseService.log_performance
    def save_shipping_rule(
        self, store: Store, flat_rate, per_item_rate=Decimal("0"), free_shipping_threshold=None
    ) -> ServiceResult[ShippingRule]:
        errors = []
        flat = to_decimal(flat_rate)
        per_item = to_decimal(per_item_rate) if per_item_rate not in (None, "") else Decimal("0")
        threshold = to_decimal(free_shipping_threshold)

        if flat is None or flat < 0:
            errors.append("Flat rate cannot be negative.")
        if per_item is None or per_item < 0:
            errors.append("Per-item rate cannot be negative.")
        if free_shipping_threshold not in (None, "") and (threshold is None or threshold <= 0):
            errors.append("Free shipping threshold must be greater than zero.")
        if errors:
            return validation_err(errors)

        rule, _ = ShippingRule.objects.update_or_create(
            store=store,
            defaults={"flat_rate": flat, "per_item_rate": per_item, "free_shipping_threshold": threshold},
        )
        return service_ok(rule)
