import uuid
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from django.test import override_settings
from django.utils import timezone

from authentication.tests.factories import AdminFactory, UserFactory
from infrastructure.events import LocalEventBus
from marketplace.ordering.domain.models import CaseItem, ReturnRequest, SellerSubOrder
from marketplace.ordering.domain.services.order_service import OrderService
from marketplace.ordering.domain.services.return_service import ReturnService
from marketplace.tests.factories import ReturnRequestFactory, SellerSubOrderFactory, SellerSubOrderItemFactory
from utils.service_base import ErrorCodes, service_ok


def delivered_sub_order(days_ago=1, **kwargs):
    sub_order = SellerSubOrderFactory(
        status=SellerSubOrder.STATUS_DELIVERED, delivered_at=timezone.now() - timedelta(days=days_ago), **kwargs
    )
    return sub_order


@pytest.mark.unit
@pytest.mark.django_db
class TestCreateCase:
    def setup_method(self):
        self.bus = LocalEventBus()
        self.service = ReturnService(event_bus=self.bus)
        self.sub_order = delivered_sub_order()
        self.buyer = self.sub_order.order.buyer
        self.item = SellerSubOrderItemFactory(sub_order=self.sub_order, quantity=2)
        self.other_item = SellerSubOrderItemFactory(sub_order=self.sub_order, quantity=1)

    def test_empty_selection_covers_every_item(self):
        result = self.service.create_return_request(self.buyer, self.sub_order.id, "return", "Arrived broken")

        assert result.ok
        case = result.value
        assert case.status == ReturnRequest.STATUS_REQUESTED
        assert case.case_number == f"CASE-{case.id.hex[:8].upper()}"
        assert CaseItem.objects.filter(return_request=case).count() == 2
        assert self.bus.published[-1]["event_type"] == "case.opened"

    def test_selected_quantity_is_bounded(self):
        result = self.service.create_return_request(
            self.buyer, self.sub_order.id, "return", "Too many", [{"item_id": self.item.id, "quantity": 3}]
        )
        assert result.error_detail == "Selected quantity exceeds the ordered quantity."

    def test_validation(self):
        result = self.service.create_return_request(
            self.buyer,
            self.sub_order.id,
            "exchange",
            "",
            [{"item_id": self.item.id, "quantity": 0}, {"item_id": self.item.id, "quantity": 1}],
        )

        assert result.errors == [
            "Reason is required.",
            "Case type must be 'return' or 'complaint'.",
            "Selected item quantity must be greater than zero.",
            "Duplicate items selected.",
        ]

    def test_must_be_delivered(self):
        shipped = SellerSubOrderFactory(status=SellerSubOrder.STATUS_SHIPPED)
        result = self.service.create_return_request(shipped.order.buyer, shipped.id, "return", "Late")
        assert result.error_detail == "Cases can only be created for delivered orders."

    @override_settings(RETURN_SETTINGS={"RETURN_WINDOW_DAYS": 30})
    def test_return_window(self):
        old = delivered_sub_order(days_ago=31)
        result = self.service.create_return_request(old.order.buyer, old.id, "complaint", "Faded")

        assert result.error == ErrorCodes.RETURN_WINDOW_EXPIRED
        assert result.error_detail == (
            "Return window has expired. Cases must be created within 30 days of delivery."
        )

    def test_other_buyer_cannot_open(self):
        result = self.service.create_return_request(UserFactory(), self.sub_order.id, "return", "Mine?")
        assert result.error == ErrorCodes.ORDER_NOT_FOUND

    def test_one_open_case_per_item(self):
        self.service.create_return_request(
            self.buyer, self.sub_order.id, "return", "Cracked", [{"item_id": self.item.id, "quantity": 1}]
        )

        result = self.service.create_return_request(
            self.buyer, self.sub_order.id, "complaint", "Still cracked", [{"item_id": self.item.id, "quantity": 1}]
        )

        assert result.error == ErrorCodes.CONFLICT
        can = self.service.can_initiate_return(self.sub_order.id, self.buyer).value
        assert can == {"can_initiate": True, "reason": None}

    def test_can_initiate_when_everything_is_open(self):
        self.service.create_return_request(self.buyer, self.sub_order.id, "return", "All of it")

        result = self.service.can_initiate_return(self.sub_order.id, self.buyer)

        assert result.value == {
            "can_initiate": False,
            "reason": "All items in this sub-order already have open cases.",
        }


@pytest.mark.unit
@pytest.mark.django_db
class TestCaseWorkflow:
    def setup_method(self):
        self.refunds = MagicMock()
        self.bus = LocalEventBus()
        self.order_service = OrderService(event_bus=self.bus)
        self.service = ReturnService(refund_service=self.refunds, order_service=self.order_service, event_bus=self.bus)
        self.case = ReturnRequestFactory(sub_order=delivered_sub_order())
        self.store_id = self.case.sub_order.store_id
        self.seller = self.case.sub_order.store.owner

    def test_status_transitions(self):
        result = self.service.update_return_request_status(self.case.id, self.store_id, "under_review")
        assert result.value.status == ReturnRequest.STATUS_UNDER_REVIEW

        result = self.service.update_return_request_status(self.case.id, self.store_id, "completed")
        assert result.error_detail == "Cannot transition case from Under Review to Completed."

    def test_full_refund_resolution_refunds_sub_order(self):
        refund_id = uuid.uuid4()
        self.refunds.process_full_refund.return_value = service_ok(
            SimpleNamespace(id=refund_id, amount=Decimal("55.00"), order_id=self.case.sub_order.order_id)
        )

        result = self.service.resolve_case(
            self.case.id, self.store_id, "full_refund", "Broken in transit", resolved_by=self.seller
        )

        assert result.ok
        assert result.value.status == ReturnRequest.STATUS_COMPLETED
        assert result.value.linked_refund_id == refund_id
        assert result.value.refund_amount == Decimal("55.00")
        kwargs = self.refunds.process_full_refund.call_args.kwargs
        assert kwargs["seller_id"] == self.store_id
        assert kwargs["audit_note"] == f"Case resolution: {self.case.case_number}"
        self.case.sub_order.refresh_from_db()
        assert self.case.sub_order.status == SellerSubOrder.STATUS_REFUNDED

    def test_partial_refund_needs_amount(self):
        result = self.service.resolve_case(self.case.id, self.store_id, "partial_refund")
        assert "Refund amount is required for partial refund." in result.errors

    def test_linked_refund_must_belong_to_order(self):
        self.refunds.get_refund.return_value = service_ok(
            SimpleNamespace(id=uuid.uuid4(), amount=Decimal("5.00"), order_id=uuid.uuid4())
        )

        result = self.service.resolve_case(
            self.case.id, self.store_id, "partial_refund", refund_id=uuid.uuid4(), resolved_by=self.seller
        )

        assert result.error_detail == "The specified refund was not found."

    def test_no_refund_needs_reason_and_cannot_resolve_twice(self):
        result = self.service.resolve_case(self.case.id, self.store_id, "no_refund")
        assert result.errors == ["Resolution reason is required when choosing 'No Refund'."]

        assert self.service.resolve_case(self.case.id, self.store_id, "no_refund", "Wear and tear").ok
        again = self.service.resolve_case(self.case.id, self.store_id, "no_refund", "Again")
        assert again.error == ErrorCodes.CASE_ALREADY_RESOLVED
        self.refunds.process_full_refund.assert_not_called()


@pytest.mark.unit
@pytest.mark.django_db
class TestCaseMessages:
    def setup_method(self):
        self.service = ReturnService(event_bus=LocalEventBus())
        self.case = ReturnRequestFactory(sub_order=delivered_sub_order())
        self.seller = self.case.sub_order.store.owner

    def test_participants_can_post(self):
        assert self.service.add_case_message(self.case.id, self.case.buyer, "buyer", "Photos attached").ok
        assert self.service.add_case_message(self.case.id, self.seller, "seller", "Thanks").ok
        assert self.service.add_case_message(self.case.id, AdminFactory(), "admin", "Looking into it").ok

        messages = self.service.get_case_messages(self.case.id, self.case.buyer, "buyer").value
        assert {message.sender_role for message in messages} == {"buyer", "seller", "admin"}
        self.case.refresh_from_db()
        assert self.case.last_activity_at is not None

    def test_stranger_cannot_post(self):
        result = self.service.add_case_message(self.case.id, UserFactory(), "buyer", "Hello")
        assert result.error == ErrorCodes.NOT_AUTHORIZED

    def test_content_rules(self):
        assert self.service.add_case_message(self.case.id, self.case.buyer, "buyer", "  ").error_detail == (
            "Message content is required."
        )
        too_long = self.service.add_case_message(self.case.id, self.case.buyer, "buyer", "x" * 5001)
        assert too_long.error_detail == "Message must not exceed 5000 characters."

    def test_completed_case_is_closed(self):
        self.case.status = ReturnRequest.STATUS_COMPLETED
        self.case.save()

        result = self.service.add_case_message(self.case.id, self.case.buyer, "buyer", "Anyone?")

        assert result.error_detail == "Cannot add messages to a completed case."

    def test_mark_viewed(self):
        assert self.service.mark_case_activity_viewed(self.case.id, self.seller, "seller").ok
        self.case.refresh_from_db()
        assert self.case.seller_last_viewed_at is not None
