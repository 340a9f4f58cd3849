from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from infrastructure.container import container
from marketplace.infra.events.listeners import (
    handle_order_status_changed,
    handle_payment_failed,
    handle_payment_succeeded,
    seller_allocations,
)
from marketplace.ordering.domain.models import Order
from marketplace.tests.factories import (
    OrderFactory,
    OrderItemFactory,
    SellerSubOrderFactory,
    SellerSubOrderItemFactory,
)
from utils.service_base import service_ok


def event(payload):
    return {"event_type": "test", "occurred_at": "2026-01-01T00:00:00+00:00", "payload": payload}


@pytest.mark.unit
@pytest.mark.django_db
class TestSellerAllocations:
    def test_discount_is_shared_and_adds_up(self):
        order = OrderFactory(total_amount=Decimal("90.00"), discount_amount=Decimal("10.00"))
        SellerSubOrderFactory(order=order, sub_order_number="ORD-A-S1", total_amount=Decimal("33.33"))
        SellerSubOrderFactory(order=order, sub_order_number="ORD-A-S2", total_amount=Decimal("66.67"))

        allocations = seller_allocations(order)

        assert [a["amount"] for a in allocations] == [Decimal("29.99"), Decimal("60.01")]
        assert sum(a["amount"] for a in allocations) == order.total_amount


@pytest.mark.unit
@pytest.mark.django_db
class TestPaymentListeners:
    def setup_method(self):
        self.order = OrderFactory(total_amount=Decimal("55.00"))
        self.sub_order = SellerSubOrderFactory(order=self.order, status="new")
        OrderItemFactory(order=self.order, product=SellerSubOrderItemFactory(sub_order=self.sub_order).product)

    def test_success_pays_order_and_creates_escrow(self):
        escrow = MagicMock()
        escrow.create_escrow_entries.return_value = service_ok([])
        commission = MagicMock()
        commission.calculate_commission.return_value = service_ok(MagicMock())

        with patch.object(container, "escrow_service", return_value=escrow), patch.object(
            container, "commission_service", return_value=commission
        ):
            handle_payment_succeeded(event({"transaction_id": str(self.order.payment_transaction_id)}))

        self.order.refresh_from_db()
        assert self.order.status == Order.STATUS_PAID
        kwargs = escrow.create_escrow_entries.call_args.kwargs
        assert kwargs["allocations"] == [{"seller_id": str(self.sub_order.store_id), "amount": Decimal("55.00")}]
        assert commission.calculate_commission.call_args.kwargs["amount"] == Decimal("55.00")

    def test_failure_marks_order_failed(self):
        handle_payment_failed(event({"transaction_id": str(self.order.payment_transaction_id)}))

        self.order.refresh_from_db()
        assert self.order.status == Order.STATUS_FAILED

    def test_unknown_transaction_is_ignored(self):
        handle_payment_succeeded(event({"transaction_id": "00000000-0000-0000-0000-000000000000"}))

        self.order.refresh_from_db()
        assert self.order.status == Order.STATUS_NEW


@pytest.mark.unit
@pytest.mark.django_db
class TestShippingListener:
    def test_only_shipped_sends_mail(self):
        sub_order = SellerSubOrderFactory(status="shipped")

        handle_order_status_changed(event({"new_status": "preparing", "sub_order_id": str(sub_order.id)}))
        assert container.email().get_sent_count() == 0

        handle_order_status_changed(event({"new_status": "shipped", "sub_order_id": str(sub_order.id)}))
        assert container.email().get_last_message().tags == ["order_shipped"]
