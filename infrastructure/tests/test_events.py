from django.test import TestCase

from infrastructure.events import DomainEvent, LocalEventBus, get_event_bus


class LocalEventBusTest(TestCase):
    def setUp(self):
        self.bus = LocalEventBus()

    def test_publish_reaches_subscribers(self):
        received = []
        self.bus.subscribe("order.paid", received.append)

        self.bus.publish("order.paid", {"order_id": "o-1"})

        self.assertEqual(len(received), 1)
        self.assertEqual(received[0]["event_type"], "order.paid")
        self.assertEqual(received[0]["payload"], {"order_id": "o-1"})
        self.assertEqual(self.bus.published, received)

    def test_duplicate_subscription_is_ignored(self):
        received = []
        self.bus.subscribe("order.paid", received.append)
        self.bus.subscribe("order.paid", received.append)

        self.bus.publish("order.paid", {})

        self.assertEqual(len(received), 1)

    def test_handler_error_does_not_reach_publisher(self):
        received = []

        def broken(message):
            raise RuntimeError("listener down")

        self.bus.subscribe("payout.failed", broken)
        self.bus.subscribe("payout.failed", received.append)

        self.bus.publish("payout.failed", {"payout_id": "p-1"})

        self.assertEqual(len(received), 1)

    def test_clear_published(self):
        self.bus.publish("order.paid", {})
        self.bus.clear_published()
        self.assertEqual(self.bus.published, [])


class DomainEventTest(TestCase):
    def test_round_trip_through_dict(self):
        event = DomainEvent(event_type="kyc.approved", payload={"seller_id": 7})

        restored = DomainEvent.from_dict(event.to_dict())

        self.assertEqual(restored, event)

    def test_publish_on_given_bus(self):
        bus = LocalEventBus()

        DomainEvent(event_type="kyc.approved", payload={"seller_id": 7}).publish(bus)

        self.assertEqual(bus.published[0]["payload"], {"seller_id": 7})

    def test_default_bus_is_local_in_tests(self):
        self.assertIsInstance(get_event_bus(), LocalEventBus)
