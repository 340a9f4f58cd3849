"""
ReturnService - buyer cases (returns and complaints) on delivered sub-orders.

A case covers some or all items of one sub-order. Sellers move it through
review and resolve it, optionally refunding through the payments app.
Buyer, seller and admin exchange messages on the case until it completes.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from marketplace.domain.events import CaseOpenedEvent, CaseResolvedEvent
from marketplace.infra.observability.metrics import cases_opened_total, cases_resolved_total
from marketplace.ordering.domain.models import (
    CaseItem,
    CaseMessage,
    ReturnRequest,
    SellerSubOrder,
    SellerSubOrderItem,
)
from sellers.domain.services.validation import to_decimal
from utils.rbac import is_admin
from utils.service_base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok, validation_err

MAX_REASON_LENGTH = 2000
MAX_MESSAGE_LENGTH = 5000

CASE_STATUS_LABELS = dict(ReturnRequest.STATUS_CHOICES)


def return_window_days() -> int:
    return settings.RETURN_SETTINGS["RETURN_WINDOW_DAYS"]


def window_expired_message() -> str:
    return (
        f"Return window has expired. Cases must be created within {return_window_days()} days of delivery."
    )


class ReturnService(BaseService):
    def __init__(self, refund_service=None, order_service=None, event_bus=None):
        super().__init__()
        self.refund_service = refund_service
        self.order_service = order_service
        self.event_bus = event_bus

    def _case_queryset(self):
        return ReturnRequest.objects.select_related("sub_order", "sub_order__order", "sub_order__store", "buyer")

    def _window_open(self, sub_order: SellerSubOrder) -> bool:
        if not sub_order.delivered_at:
            return False
        return timezone.now() <= sub_order.delivered_at + timedelta(days=return_window_days())

    def _items_with_open_cases(self, item_ids) -> set:
        return set(
            CaseItem.objects.filter(
                sub_order_item_id__in=item_ids, return_request__status__in=ReturnRequest.OPEN_STATUSES
            ).values_list("sub_order_item_id", flat=True)
        )

    @staticmethod
    def _validate_selection(selected_items) -> List[str]:
        errors = []
        seen = set()
        for selection in selected_items:
            item_id = selection.get("item_id")
            if not item_id:
                errors.append("Selected item ID is required.")
                continue
            if (selection.get("quantity") or 0) <= 0:
                errors.append("Selected item quantity must be greater than zero.")
            if str(item_id) in seen:
                errors.append("Duplicate items selected.")
            seen.add(str(item_id))
        return errors

    @BaseService.log_performance
    @transaction.atomic
    def create_return_request(
        self,
        buyer,
        sub_order_id,
        case_type: str,
        reason: str,
        selected_items: Optional[List[Dict[str, Any]]] = None,
    ) -> ServiceResult[ReturnRequest]:
        """
        Open a case. ``selected_items`` is a list of ``{"item_id", "quantity"}``;
        an empty selection covers every item of the sub-order.
        """
        selected_items = selected_items or []
        reason = (reason or "").strip()

        errors = []
        if not reason:
            errors.append("Reason is required.")
        elif len(reason) > MAX_REASON_LENGTH:
            errors.append(f"Reason must not exceed {MAX_REASON_LENGTH} characters.")
        if case_type not in dict(ReturnRequest.CASE_TYPE_CHOICES):
            errors.append("Case type must be 'return' or 'complaint'.")
        errors += self._validate_selection(selected_items)
        if errors:
            return validation_err(errors)

        sub_order = (
            SellerSubOrder.objects.select_for_update()
            .select_related("order")
            .filter(id=sub_order_id, order__buyer_id=buyer.id)
            .first()
        )
        if not sub_order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found.")
        if sub_order.status != SellerSubOrder.STATUS_DELIVERED:
            return service_err(ErrorCodes.INVALID_STATE, "Cases can only be created for delivered orders.")
        if not self._window_open(sub_order):
            return service_err(ErrorCodes.RETURN_WINDOW_EXPIRED, window_expired_message())

        sub_order_items = {
            str(item.id): item for item in sub_order.items.exclude(status=SellerSubOrderItem.STATUS_CANCELLED)
        }
        if selected_items:
            if any(str(selection["item_id"]) not in sub_order_items for selection in selected_items):
                return service_err(
                    ErrorCodes.VALIDATION_ERROR, "One or more selected items do not belong to this sub-order."
                )
            selection = [(sub_order_items[str(s["item_id"])], s["quantity"]) for s in selected_items]
            if any(quantity > item.quantity for item, quantity in selection):
                return service_err(ErrorCodes.VALIDATION_ERROR, "Selected quantity exceeds the ordered quantity.")
        else:
            selection = [(item, item.quantity) for item in sub_order_items.values()]

        if self._items_with_open_cases([item.id for item, _ in selection]):
            return service_err(
                ErrorCodes.CONFLICT,
                "One or more selected items already have an open case. "
                "Please resolve existing cases before creating a new one.",
            )

        now = timezone.now()
        case = ReturnRequest.objects.create(
            case_type=case_type,
            sub_order=sub_order,
            buyer=buyer,
            reason=reason,
            last_activity_at=now,
            last_activity_by=buyer,
            buyer_last_viewed_at=now,
        )
        CaseItem.objects.bulk_create(
            [CaseItem(return_request=case, sub_order_item=item, quantity=quantity) for item, quantity in selection]
        )

        cases_opened_total.labels(case_type=case_type).inc()
        CaseOpenedEvent(
            payload={
                "case_id": str(case.id),
                "case_number": case.case_number,
                "case_type": case_type,
                "sub_order_id": str(sub_order.id),
                "store_id": str(sub_order.store_id),
                "buyer_id": str(buyer.id),
            }
        ).publish(self.event_bus)
        self.logger.info(f"Opened {case_type} case {case.case_number} on sub-order {sub_order.sub_order_number}")
        return service_ok(case)

    # Queries

    @BaseService.log_performance
    def get_return_request(self, case_id, buyer) -> ServiceResult[ReturnRequest]:
        case = self._case_queryset().filter(id=case_id, buyer_id=buyer.id).first()
        if not case:
            return service_err(ErrorCodes.NOT_FOUND, "Return request not found.")
        return service_ok(case)

    def get_return_requests_for_buyer(self, buyer) -> ServiceResult[List[ReturnRequest]]:
        return service_ok(list(self._case_queryset().filter(buyer_id=buyer.id)))

    def get_return_request_for_seller_sub_order(self, sub_order_id, store_id) -> ServiceResult[List[ReturnRequest]]:
        if not SellerSubOrder.objects.filter(id=sub_order_id, store_id=store_id).exists():
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found.")
        return service_ok(list(self._case_queryset().filter(sub_order_id=sub_order_id)))

    def get_cases_for_store(self, store_id, status: Optional[str] = None) -> ServiceResult[List[ReturnRequest]]:
        queryset = self._case_queryset().filter(sub_order__store_id=store_id)
        if status:
            queryset = queryset.filter(status=status)
        return service_ok(list(queryset))

    @BaseService.log_performance
    def get_case_for_seller(self, case_id, store_id) -> ServiceResult[ReturnRequest]:
        case = self._case_queryset().filter(id=case_id, sub_order__store_id=store_id).first()
        if not case:
            return service_err(ErrorCodes.NOT_FOUND, "Return request not found.")
        return service_ok(case)

    @BaseService.log_performance
    def can_initiate_return(self, sub_order_id, buyer) -> ServiceResult[Dict[str, Any]]:
        sub_order = SellerSubOrder.objects.filter(id=sub_order_id, order__buyer_id=buyer.id).first()
        if not sub_order:
            return service_err(ErrorCodes.ORDER_NOT_FOUND, "Sub-order not found.")

        def answer(reason=None):
            return service_ok({"can_initiate": reason is None, "reason": reason})

        if sub_order.status != SellerSubOrder.STATUS_DELIVERED:
            return answer("Cases can only be created for delivered orders.")
        if not self._window_open(sub_order):
            return answer(window_expired_message())

        item_ids = list(
            sub_order.items.exclude(status=SellerSubOrderItem.STATUS_CANCELLED).values_list("id", flat=True)
        )
        if item_ids and len(self._items_with_open_cases(item_ids)) == len(item_ids):
            return answer("All items in this sub-order already have open cases.")
        return answer()

    # Seller handling

    def _touch(self, case: ReturnRequest, user, role: str) -> None:
        now = timezone.now()
        case.last_activity_at = now
        case.last_activity_by = user
        if role in (CaseMessage.ROLE_BUYER, CaseMessage.ROLE_SELLER, CaseMessage.ROLE_ADMIN):
            setattr(case, f"{role}_last_viewed_at", now)

    @BaseService.log_performance
    @transaction.atomic
    def update_return_request_status(
        self, case_id, store_id, new_status: str, seller_notes: str = "", changed_by=None
    ) -> ServiceResult[ReturnRequest]:
        case = (
            ReturnRequest.objects.select_for_update()
            .filter(id=case_id, sub_order__store_id=store_id)
            .first()
        )
        if not case:
            return service_err(ErrorCodes.NOT_FOUND, "Return request not found.")
        if new_status not in CASE_STATUS_LABELS:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Invalid status '{new_status}'.")
        if len(seller_notes or "") > MAX_REASON_LENGTH:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Seller notes must not exceed 2000 characters.")
        if new_status not in ReturnRequest.ALLOWED_TRANSITIONS.get(case.status, ()):
            return service_err(
                ErrorCodes.INVALID_TRANSITION,
                f"Cannot transition case from {CASE_STATUS_LABELS[case.status]} to {CASE_STATUS_LABELS[new_status]}.",
            )

        case.status = new_status
        if seller_notes:
            case.seller_notes = seller_notes.strip()
        if new_status == ReturnRequest.STATUS_COMPLETED:
            case.resolved_at = timezone.now()
        if changed_by is not None:
            self._touch(case, changed_by, CaseMessage.ROLE_SELLER)
        case.save()
        return service_ok(case)

    def _validate_resolution(self, resolution_type, resolution_reason, refund_id, refund_amount) -> List[str]:
        errors = []
        if resolution_type not in dict(ReturnRequest.RESOLUTION_CHOICES):
            errors.append("Invalid resolution type.")
        if len(resolution_reason) > MAX_REASON_LENGTH:
            errors.append("Resolution reason must not exceed 2000 characters.")
        if resolution_type == ReturnRequest.RESOLUTION_NO_REFUND and not resolution_reason:
            errors.append("Resolution reason is required when choosing 'No Refund'.")
        if resolution_type == ReturnRequest.RESOLUTION_PARTIAL_REFUND and not refund_id:
            if refund_amount is None:
                errors.append("Refund amount is required for partial refund.")
            elif refund_amount <= 0:
                errors.append("Refund amount must be greater than zero.")
        return errors

    @BaseService.log_performance
    @transaction.atomic
    def resolve_case(
        self,
        case_id,
        store_id,
        resolution_type: str,
        resolution_reason: str = "",
        refund_id=None,
        refund_amount=None,
        resolved_by=None,
    ) -> ServiceResult[ReturnRequest]:
        """
        Close a case with a resolution.

        For refund resolutions either link an existing refund (``refund_id``)
        or start a new one against the seller's escrow for the order. A full
        refund also moves the sub-order to ``refunded``.
        """
        resolution_reason = (resolution_reason or "").strip()
        refund_amount = to_decimal(refund_amount)

        case = (
            ReturnRequest.objects.select_for_update()
            .select_related("sub_order", "sub_order__order")
            .filter(id=case_id, sub_order__store_id=store_id)
            .first()
        )
        if not case:
            return service_err(ErrorCodes.NOT_FOUND, "Return request not found.")
        if case.status == ReturnRequest.STATUS_COMPLETED:
            return service_err(ErrorCodes.CASE_ALREADY_RESOLVED, "This case has already been resolved.")
        if case.status == ReturnRequest.STATUS_REJECTED:
            return service_err(ErrorCodes.INVALID_STATE, "Rejected cases cannot be resolved.")

        errors = self._validate_resolution(resolution_type, resolution_reason, refund_id, refund_amount)
        if errors:
            return validation_err(errors)

        sub_order = case.sub_order
        order = sub_order.order
        if resolution_type in ReturnRequest.REFUND_RESOLUTIONS:
            refund = self._case_refund(case, order, store_id, resolution_type, refund_id, refund_amount, resolved_by)
            if not refund.ok:
                return refund
            case.linked_refund_id = refund.value.id
            case.refund_amount = refund.value.amount

            if resolution_type == ReturnRequest.RESOLUTION_FULL_REFUND and self.order_service:
                if sub_order.can_transition_to(SellerSubOrder.STATUS_REFUNDED):
                    self.order_service.update_seller_sub_order_status(
                        sub_order.id,
                        store_id,
                        SellerSubOrder.STATUS_REFUNDED,
                        changed_by=resolved_by,
                        notes=f"Case resolution: {case.case_number}",
                    )

        case.status = ReturnRequest.STATUS_COMPLETED
        case.resolution_type = resolution_type
        case.resolution_reason = resolution_reason
        case.resolved_at = timezone.now()
        if resolved_by is not None:
            self._touch(case, resolved_by, CaseMessage.ROLE_SELLER)
        case.save()

        cases_resolved_total.labels(resolution=resolution_type).inc()
        CaseResolvedEvent(
            payload={
                "case_id": str(case.id),
                "case_number": case.case_number,
                "resolution_type": resolution_type,
                "refund_amount": str(case.refund_amount) if case.refund_amount is not None else None,
                "buyer_id": str(case.buyer_id),
            }
        ).publish(self.event_bus)
        self.logger.info(f"Resolved case {case.case_number} with {resolution_type}")
        return service_ok(case)

    def _case_refund(self, case, order, store_id, resolution_type, refund_id, refund_amount, resolved_by):
        if refund_id:
            refund = self.refund_service.get_refund(refund_id) if self.refund_service else None
            if refund is None or not refund.ok or str(refund.value.order_id) != str(order.id):
                return service_err(ErrorCodes.NOT_FOUND, "The specified refund was not found.")
            return refund

        if not order.payment_transaction_id:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Payment transaction ID is required to initiate a refund.")
        if self.refund_service is None:
            return service_err(ErrorCodes.INTERNAL_ERROR, "Refunds are not available.")

        common = {
            "order_id": order.id,
            "payment_transaction_id": order.payment_transaction_id,
            "reason": case.reason[:500],
            "initiated_by_user_id": resolved_by.id if resolved_by is not None else None,
            "initiated_by_role": "seller",
            "audit_note": f"Case resolution: {case.case_number}",
        }
        if resolution_type == ReturnRequest.RESOLUTION_FULL_REFUND:
            return self.refund_service.process_full_refund(seller_id=store_id, **common)
        return self.refund_service.process_partial_refund(seller_id=store_id, amount=Decimal(refund_amount), **common)

    # Messages

    def _can_access(self, case: ReturnRequest, user, role: str) -> bool:
        if role == CaseMessage.ROLE_BUYER:
            return case.buyer_id == user.id
        if role == CaseMessage.ROLE_SELLER:
            return case.sub_order.store.owner_id == user.id
        if role == CaseMessage.ROLE_ADMIN:
            return is_admin(user)
        return False

    @BaseService.log_performance
    @transaction.atomic
    def add_case_message(self, case_id, sender, role: str, content: str) -> ServiceResult[CaseMessage]:
        content = (content or "").strip()
        if not content:
            return service_err(ErrorCodes.VALIDATION_ERROR, "Message content is required.")
        if len(content) > MAX_MESSAGE_LENGTH:
            return service_err(ErrorCodes.VALIDATION_ERROR, f"Message must not exceed {MAX_MESSAGE_LENGTH} characters.")

        case = self._case_queryset().select_for_update().filter(id=case_id).first()
        if not case:
            return service_err(ErrorCodes.NOT_FOUND, "Return request not found.")
        if not self._can_access(case, sender, role):
            return service_err(ErrorCodes.NOT_AUTHORIZED, "You are not allowed to post on this case.")
        if case.status == ReturnRequest.STATUS_COMPLETED:
            return service_err(ErrorCodes.INVALID_STATE, "Cannot add messages to a completed case.")

        message = CaseMessage.objects.create(return_request=case, sender=sender, sender_role=role, content=content)
        self._touch(case, sender, role)
        case.save()
        return service_ok(message)

    @BaseService.log_performance
    def get_case_messages(self, case_id, user, role: str) -> ServiceResult[List[CaseMessage]]:
        case = self._case_queryset().filter(id=case_id).first()
        if not case:
            return service_err(ErrorCodes.NOT_FOUND, "Return request not found.")
        if not self._can_access(case, user, role):
            return service_err(ErrorCodes.NOT_AUTHORIZED, "You are not allowed to view this case.")
        return service_ok(list(case.messages.select_related("sender")))

    @BaseService.log_performance
    def mark_case_activity_viewed(self, case_id, user, role: str) -> ServiceResult[None]:
        case = self._case_queryset().filter(id=case_id).first()
        if not case:
            return service_err(ErrorCodes.NOT_FOUND, "Return request not found.")
        if not self._can_access(case, user, role):
            return service_err(ErrorCodes.NOT_AUTHORIZED, "You are not allowed to view this case.")
        ReturnRequest.objects.filter(id=case.id).update(**{f"{role}_last_viewed_at": timezone.now()})
        return service_ok(None)
