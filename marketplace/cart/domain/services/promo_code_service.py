"""
PromoCodeService - applying, pricing and counting promo codes.

A cart holds at most one code. The discount is recomputed on every read,
so a code that expires after being applied silently stops discounting.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from marketplace.cart.domain.models import Cart, PromoCode
from marketplace.infra.observability.metrics import promo_codes_applied_total
from sellers.domain.services.validation import to_decimal
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

NO_DISCOUNT = {"discount_amount": Decimal("0.00"), "promo_code_id": None, "code": None, "description": ""}


class PromoCodeService(BaseService):
    def __init__(self):
        super().__init__()

    @staticmethod
    def applicable_subtotal(promo: PromoCode, items: Iterable) -> Decimal:
        """Platform codes cover every item; seller codes only their store's items."""
        items = list(items)
        if promo.scope == PromoCode.SCOPE_PLATFORM:
            return sum((item.product_price * item.quantity for item in items), Decimal("0.00"))
        if not promo.store_id:
            return Decimal("0.00")
        return sum(
            (item.product_price * item.quantity for item in items if str(item.store_id) == str(promo.store_id)),
            Decimal("0.00"),
        )

    def _rejection(self, promo: PromoCode, items: List) -> Optional[ServiceResult]:
        now = timezone.now()
        if not promo.is_active:
            return service_err(ErrorCodes.INVALID_PROMO_CODE, "Invalid promo code.")
        if now < promo.start_date:
            return service_err(ErrorCodes.INVALID_PROMO_CODE, "This promo code is not yet active.")
        if promo.end_date and now > promo.end_date:
            return service_err(ErrorCodes.INVALID_PROMO_CODE, "This promo code has expired.")
        if promo.usage_limit is not None and promo.usage_count >= promo.usage_limit:
            return service_err(ErrorCodes.INVALID_PROMO_CODE, "This promo code has reached its usage limit.")

        subtotal = self.applicable_subtotal(promo, items)
        if subtotal == 0:
            return service_err(
                ErrorCodes.INVALID_PROMO_CODE, "This promo code is not applicable to items in your cart."
            )
        if not promo.meets_minimum_order_amount(subtotal):
            return service_err(
                ErrorCodes.INVALID_PROMO_CODE,
                f"Minimum order amount of {promo.minimum_order_amount:.2f} is required to use this promo code.",
            )
        return None

    @BaseService.log_performance
    @transaction.atomic
    def apply_promo_code(self, buyer, code: str) -> ServiceResult[Dict]:
        if not (code or "").strip():
            return service_err(ErrorCodes.VALIDATION_ERROR, "Promo code is required.")

        cart = Cart.objects.select_for_update().filter(buyer=buyer).first()
        if cart and cart.applied_promo_code_id:
            return service_err(
                ErrorCodes.CONFLICT, "A promo code is already applied to this cart. Remove it first."
            )

        items = list(cart.items.all()) if cart else []
        if not items:
            return service_err(ErrorCodes.CART_EMPTY, "Cannot apply promo code to an empty cart.")

        promo = PromoCode.objects.filter(code__iexact=code.strip()).first()
        if not promo:
            return service_err(ErrorCodes.INVALID_PROMO_CODE, "Invalid promo code.")

        rejection = self._rejection(promo, items)
        if rejection:
            return rejection

        cart.applied_promo_code = promo
        cart.save(update_fields=["applied_promo_code", "updated_at"])
        promo_codes_applied_total.inc()

        discount = promo.calculate_discount(self.applicable_subtotal(promo, items))
        self.logger.info(f"Applied promo code {promo.code} to cart {cart.id}, discount {discount}")
        return service_ok(
            {
                "promo_code_id": promo.id,
                "code": promo.code,
                "description": promo.description,
                "discount_amount": discount,
            }
        )

    @BaseService.log_performance
    def remove_promo_code(self, buyer) -> ServiceResult[None]:
        Cart.objects.filter(buyer=buyer).update(applied_promo_code=None, updated_at=timezone.now())
        return service_ok(None)

    def calculate_discount(self, cart: Cart, items: Optional[List] = None) -> Dict:
        """Discount for the cart's applied code, or no discount when the code is no longer valid."""
        if not cart.applied_promo_code_id:
            return dict(NO_DISCOUNT)

        promo = cart.applied_promo_code
        if not promo.is_valid():
            return dict(NO_DISCOUNT)

        items = items if items is not None else list(cart.items.all())
        amount = promo.calculate_discount(self.applicable_subtotal(promo, items))
        return {
            "discount_amount": amount,
            "promo_code_id": promo.id,
            "code": promo.code,
            "description": promo.description,
        }

    @BaseService.log_performance
    def increment_usage(self, promo_code_id) -> None:
        PromoCode.objects.filter(id=promo_code_id).update(usage_count=F("usage_count") + 1)

    # Administration

    @BaseService.log_performance
    def create_promo_code(self, data: Dict) -> ServiceResult[PromoCode]:
        errors = []
        code = (data.get("code") or "").strip()
        if not code:
            errors.append("Promo code is required.")
        elif PromoCode.objects.filter(code__iexact=code).exists():
            errors.append("A promo code with this code already exists.")

        discount_type = data.get("discount_type", PromoCode.DISCOUNT_PERCENTAGE)
        value = to_decimal(data.get("discount_value"))
        if discount_type not in dict(PromoCode.DISCOUNT_TYPE_CHOICES):
            errors.append("Discount type must be 'percentage' or 'fixed'.")
        if value is None or value <= 0:
            errors.append("Discount value must be greater than zero.")
        elif discount_type == PromoCode.DISCOUNT_PERCENTAGE and value > 100:
            errors.append("Percentage discount cannot exceed 100.")

        scope = data.get("scope", PromoCode.SCOPE_PLATFORM)
        if scope not in dict(PromoCode.SCOPE_CHOICES):
            errors.append("Scope must be 'platform' or 'seller'.")
        elif scope == PromoCode.SCOPE_SELLER and not data.get("store_id"):
            errors.append("Seller promo codes require a store.")

        start_date = data.get("start_date") or timezone.now()
        end_date = data.get("end_date")
        if end_date and end_date <= start_date:
            errors.append("End date must be after start date.")
        if errors:
            return validation_err(errors)

        promo = PromoCode.objects.create(
            code=code,
            description=(data.get("description") or "").strip(),
            discount_type=discount_type,
            discount_value=value,
            minimum_order_amount=to_decimal(data.get("minimum_order_amount")),
            max_discount_amount=to_decimal(data.get("max_discount_amount")),
            scope=scope,
            store_id=data.get("store_id") if scope == PromoCode.SCOPE_SELLER else None,
            start_date=start_date,
            end_date=end_date,
            usage_limit=data.get("usage_limit"),
        )
        return service_ok(promo)

    def list_promo_codes(self, active_only: bool = False) -> ServiceResult[List[PromoCode]]:
        queryset = PromoCode.objects.all()
        if active_only:
            queryset = queryset.filter(is_active=True)
        return service_ok(list(queryset))

    @BaseService.log_performance
    def deactivate_promo_code(self, promo_code_id) -> ServiceResult[None]:
        if not PromoCode.objects.filter(id=promo_code_id).update(is_active=False):
            return service_err(ErrorCodes.NOT_FOUND, "Promo code not found.")
        return service_ok(None)
