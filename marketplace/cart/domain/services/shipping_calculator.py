"""
ShippingCalculator - per-store shipping for a cart or an order.

A store without a shipping rule is charged the platform flat rate.
"""

from decimal import Decimal
from typing import Dict, Iterable

from django.conf import settings

from sellers.domain.models import ShippingRule
from utils.service_base import BaseService


class ShippingCalculator(BaseService):
    def __init__(self):
        super().__init__()

    @property
    def default_flat_rate(self) -> Decimal:
        return Decimal(str(settings.CART_SETTINGS.get("DEFAULT_SHIPPING_FLAT_RATE", "5.99")))

    def calculate_shipping(self, items_by_store: Iterable[Dict]) -> Dict[str, Dict]:
        """
        Args:
            items_by_store: dicts with ``store_id``, ``store_name``,
                ``subtotal`` and ``item_count`` (sum of quantities)

        Returns:
            ``{store_id: {"store_id", "store_name", "shipping_cost",
            "is_free_shipping", "amount_to_free_shipping"}}``
        """
        groups = list(items_by_store)
        if not groups:
            return {}

        rules = {
            str(rule.store_id): rule
            for rule in ShippingRule.objects.filter(store_id__in=[group["store_id"] for group in groups])
        }

        result = {}
        for group in groups:
            store_id = str(group["store_id"])
            result[store_id] = self._store_shipping(group, rules.get(store_id))

        self.logger.info(
            f"Calculated shipping for {len(result)} stores, total shipping: "
            f"{sum(entry['shipping_cost'] for entry in result.values())}"
        )
        return result

    def _store_shipping(self, group: Dict, rule) -> Dict:
        subtotal = Decimal(group["subtotal"])
        entry = {
            "store_id": str(group["store_id"]),
            "store_name": group.get("store_name", ""),
            "shipping_cost": self.default_flat_rate,
            "is_free_shipping": False,
            "amount_to_free_shipping": None,
        }
        if rule is None:
            return entry

        threshold = rule.free_shipping_threshold
        if threshold is not None and subtotal >= threshold:
            entry["shipping_cost"] = Decimal("0.00")
            entry["is_free_shipping"] = True
            return entry

        entry["shipping_cost"] = rule.flat_rate + rule.per_item_rate * int(group["item_count"])
        if threshold is not None:
            entry["amount_to_free_shipping"] = threshold - subtotal
        return entry

    def total(self, shipping: Dict[str, Dict]) -> Decimal:
        return sum((entry["shipping_cost"] for entry in shipping.values()), Decimal("0.00"))
