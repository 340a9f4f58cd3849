"""
CommissionService - platform commission on each seller's share of an order.

Rules are matched by specificity (seller + category, seller, category,
global) with priority breaking ties. Records are adjusted in proportion when
part of an order is refunded.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from payment_system.domain.models import CommissionRecord, CommissionRule
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err


TWO_PLACES = Decimal("0.01")

RULE_FIELDS = (
    "name",
    "seller_id",
    "category",
    "commission_rate",
    "fixed_fee",
    "min_commission",
    "max_commission",
    "priority",
    "is_active",
    "effective_date",
)


def quantize(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def rule_score(rule: CommissionRule) -> int:
    if rule.seller_id and rule.category:
        return 3
    if rule.seller_id:
        return 2
    if rule.category:
        return 1
    return 0


class CommissionService(BaseService):
    # Rules

    def get_applicable_rule(self, seller_id, category: Optional[str] = None) -> Optional[CommissionRule]:
        candidates = CommissionRule.objects.filter(is_active=True, effective_date__lte=timezone.now()).filter(
            Q(seller_id=seller_id) | Q(seller__isnull=True)
        )
        if category:
            candidates = candidates.filter(
                Q(category__iexact=category) | Q(category__isnull=True) | Q(category="")
            )
        else:
            candidates = candidates.filter(Q(category__isnull=True) | Q(category=""))

        rules = list(candidates)
        if not rules:
            return None
        return max(rules, key=lambda rule: (rule_score(rule), rule.priority))

    def _validate_rule(self, data: Dict[str, Any]) -> List[str]:
        errors = []
        if "name" in data and not data["name"]:
            errors.append("Rule name is required.")
        rate = data.get("commission_rate")
        if rate is not None and not (Decimal("0") <= Decimal(rate) <= Decimal("100")):
            errors.append("Commission rate must be between 0 and 100.")
        if data.get("fixed_fee") is not None and Decimal(data["fixed_fee"]) < 0:
            errors.append("Fixed fee cannot be negative.")
        minimum, maximum = data.get("min_commission"), data.get("max_commission")
        if minimum is not None and maximum is not None and Decimal(minimum) > Decimal(maximum):
            errors.append("Minimum commission cannot exceed maximum commission.")
        return errors

    def _has_overlap(self, rule: CommissionRule) -> bool:
        others = CommissionRule.objects.filter(is_active=True, seller_id=rule.seller_id).exclude(pk=rule.pk)
        return any(rule.overlaps_with(other) for other in others)

    @BaseService.log_performance
    @transaction.atomic
    def create_rule(self, data: Dict[str, Any], created_by=None) -> ServiceResult[CommissionRule]:
        errors = []
        if not data.get("name"):
            errors.append("Rule name is required.")
        if data.get("commission_rate") is None:
            errors.append("Commission rate is required.")
        errors.extend(error for error in self._validate_rule(data) if error not in errors)
        if errors:
            return validation_err(errors)

        rule = CommissionRule(
            **{field: data[field] for field in RULE_FIELDS if field in data},
            created_by=created_by,
            modified_by=created_by,
        )
        if rule.effective_date is None:
            rule.effective_date = timezone.now()
        if rule.is_active and self._has_overlap(rule):
            return service_err(ErrorCodes.CONFLICT, "An active rule already exists for this scope.")
        rule.save()
        self.logger.info(f"Commission rule created: {rule.get_description()}")
        return service_ok(rule)

    @BaseService.log_performance
    @transaction.atomic
    def update_rule(self, rule_id, data: Dict[str, Any], modified_by=None) -> ServiceResult[CommissionRule]:
        rule = CommissionRule.objects.select_for_update().filter(id=rule_id).first()
        if not rule:
            return service_err(ErrorCodes.NOT_FOUND, "Commission rule not found.")
        errors = self._validate_rule(data)
        if errors:
            return validation_err(errors)

        for field in RULE_FIELDS:
            if field in data:
                setattr(rule, field, data[field])
        if rule.is_active and self._has_overlap(rule):
            return service_err(ErrorCodes.CONFLICT, "An active rule already exists for this scope.")

        rule.version += 1
        rule.modified_by = modified_by
        rule.save()
        self.logger.info(f"Commission rule {rule.id} updated to version {rule.version}")
        return service_ok(rule)

    @transaction.atomic
    def deactivate_rule(self, rule_id, modified_by=None) -> ServiceResult[CommissionRule]:
        rule = CommissionRule.objects.select_for_update().filter(id=rule_id).first()
        if not rule:
            return service_err(ErrorCodes.NOT_FOUND, "Commission rule not found.")
        if not rule.is_active:
            return service_err(ErrorCodes.INVALID_STATE, "Commission rule is already inactive.")
        rule.is_active = False
        rule.version += 1
        rule.modified_by = modified_by
        rule.save()
        return service_ok(rule)

    def list_rules(self, active_only: bool = False, seller_id=None) -> ServiceResult[List[CommissionRule]]:
        queryset = CommissionRule.objects.select_related("seller")
        if active_only:
            queryset = queryset.filter(is_active=True)
        if seller_id:
            queryset = queryset.filter(seller_id=seller_id)
        return service_ok(list(queryset))

    def get_rule(self, rule_id) -> ServiceResult[CommissionRule]:
        rule = CommissionRule.objects.filter(id=rule_id).first()
        if not rule:
            return service_err(ErrorCodes.NOT_FOUND, "Commission rule not found.")
        return service_ok(rule)

    # Records

    @BaseService.log_performance
    @transaction.atomic
    def calculate_commission(
        self,
        payment_transaction_id,
        order_id,
        seller_id,
        amount: Decimal,
        category: Optional[str] = None,
    ) -> ServiceResult[CommissionRecord]:
        """
        Record the commission on ``amount``.

        ``amount * rate / 100 + fixed_fee``, clamped to the rule's min/max
        when a rule applies, rounded to cents.
        """
        errors = []
        if not payment_transaction_id:
            errors.append("Payment transaction ID is required.")
        if not order_id:
            errors.append("Order ID is required.")
        if not seller_id:
            errors.append("Seller ID is required.")
        if amount is None or Decimal(amount) <= 0:
            errors.append("Order amount must be greater than zero.")
        if errors:
            return validation_err(errors)

        amount = Decimal(amount)
        rule = self.get_applicable_rule(seller_id, category)
        if rule:
            rate = rule.commission_rate
            commission = amount * rate / Decimal("100") + (rule.fixed_fee or Decimal("0.00"))
            if rule.min_commission is not None and commission < rule.min_commission:
                commission = rule.min_commission
            if rule.max_commission is not None and commission > rule.max_commission:
                commission = rule.max_commission
            description = rule.get_description()
        else:
            rate = Decimal(str(settings.COMMISSION_SETTINGS["DEFAULT_COMMISSION_RATE"]))
            commission = amount * rate / Decimal("100")
            description = f"Default rate: {rate:.2f}%"
        commission = quantize(commission)

        record = CommissionRecord.objects.create(
            payment_transaction_id=payment_transaction_id,
            order_id=order_id,
            seller_id=seller_id,
            order_amount=amount,
            commission_rate=rate,
            commission_amount=commission,
            net_commission_amount=commission,
            applied_rule_id=rule.id if rule else None,
            applied_rule_description=description,
            calculated_at=timezone.now(),
        )
        self.logger.info(f"Commission {commission} recorded for order {order_id}, seller {seller_id}")
        return service_ok(record)

    @BaseService.log_performance
    @transaction.atomic
    def recalculate_commission_on_refund(self, order_id, seller_id, refund_amount: Decimal) -> ServiceResult:
        """Give back commission in proportion to ``refund_amount``."""
        if refund_amount is None or refund_amount <= 0:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Refund amount must be greater than zero.")

        record = (
            CommissionRecord.objects.select_for_update()
            .filter(order_id=order_id, seller_id=seller_id)
            .order_by("calculated_at")
            .first()
        )
        if not record:
            return service_err(ErrorCodes.NOT_FOUND, "Commission record not found for this order and seller.")

        remaining = record.order_amount - record.refunded_amount
        if refund_amount > remaining:
            return service_err(
                ErrorCodes.INSUFFICIENT_BALANCE,
                f"Refund amount ({refund_amount:.2f}) exceeds remaining order amount ({remaining:.2f}).",
            )

        refund_commission = quantize(record.commission_amount * refund_amount / record.order_amount)
        record.refunded_amount += refund_amount
        record.refunded_commission_amount += refund_commission
        record.net_commission_amount = record.commission_amount - record.refunded_commission_amount
        record.last_refund_recalculated_at = timezone.now()
        record.save()
        return service_ok(record)

    def get_commission_records_by_order(self, order_id) -> ServiceResult[List[CommissionRecord]]:
        return service_ok(list(CommissionRecord.objects.filter(order_id=order_id)))

    def get_commission_records_by_seller(self, seller_id) -> ServiceResult[List[CommissionRecord]]:
        return service_ok(list(CommissionRecord.objects.filter(seller_id=seller_id).order_by("-calculated_at")))
