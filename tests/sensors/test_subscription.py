"""
Unit tests for SubscriberList and Subscription.

Tests verify:
    1. Attach/detach hooks fire on the empty <-> non-empty transitions only
    2. Subscription.dispose() is idempotent and removes only its registration
    3. A raising callback is reported without skipping the others
"""

import unittest

from terrain_ar.sensors.subscription import SubscriberList


class TestSubscriberListHooks(unittest.TestCase):
    """Reference counting of the attach/detach hooks."""

    def setUp(self) -> None:
        self.events = []
        self.subs = SubscriberList(
            "Test",
            on_first=lambda: self.events.append("first"),
            on_empty=lambda: self.events.append("empty"),
        )

    def test_hooks_fire_once_per_transition(self) -> None:
        a = self.subs.add(lambda v: None)
        b = self.subs.add(lambda v: None)
        self.assertEqual(self.events, ["first"])

        a.dispose()
        self.assertEqual(self.events, ["first"])
        b.dispose()
        self.assertEqual(self.events, ["first", "empty"])

    def test_dispose_is_idempotent(self) -> None:
        sub = self.subs.add(lambda v: None)
        sub.dispose()
        sub.dispose()
        self.assertFalse(sub.active)
        self.assertEqual(self.events, ["first", "empty"])

    def test_same_callback_registered_twice(self) -> None:
        received = []

        def cb(v):
            received.append(v)

        first = self.subs.add(cb)
        self.subs.add(cb)
        self.subs.publish(1)
        self.assertEqual(received, [1, 1])

        first.dispose()
        self.subs.publish(2)
        self.assertEqual(received, [1, 1, 2])
        self.assertEqual(len(self.subs), 1)

    def test_remove_unknown_callback(self) -> None:
        self.assertFalse(self.subs.remove(lambda v: None))
        self.assertEqual(self.events, [])

    def test_clear(self) -> None:
        self.subs.add(lambda v: None)
        self.subs.add(lambda v: None)
        self.subs.clear()
        self.assertEqual(len(self.subs), 0)
        self.assertEqual(self.events, ["first", "empty"])

        # clearing an empty list does not fire the hook again
        self.subs.clear()
        self.assertEqual(self.events, ["first", "empty"])

    def test_context_manager_disposes(self) -> None:
        with self.subs.add(lambda v: None) as sub:
            self.assertTrue(sub.active)
            self.assertEqual(len(self.subs), 1)
        self.assertFalse(sub.active)
        self.assertEqual(len(self.subs), 0)


class TestSubscriberListPublish(unittest.TestCase):
    """Isolated fan-out."""

    def test_failing_callback_does_not_block_others(self) -> None:
        subs = SubscriberList("Test")
        received = []

        def boom(v):
            raise RuntimeError("subscriber failure")

        subs.add(boom)
        subs.add(received.append)

        with self.assertLogs("terrain_ar.sensors.subscription", level="ERROR"):
            report = subs.publish("a")

        self.assertEqual(received, ["a"])
        self.assertEqual(report.delivered, 1)
        self.assertFalse(report.ok)
        self.assertEqual(len(report.failures), 1)
        index, exc = report.failures[0]
        self.assertEqual(index, 0)
        self.assertIsInstance(exc, RuntimeError)

    def test_delivery_order(self) -> None:
        subs = SubscriberList("Test")
        order = []
        subs.add(lambda v: order.append(("first", v)))
        subs.add(lambda v: order.append(("second", v)))

        report = subs.publish(7)

        self.assertTrue(report.ok)
        self.assertEqual(report.delivered, 2)
        self.assertEqual(order, [("first", 7), ("second", 7)])

    def test_unsubscribe_during_fan_out(self) -> None:
        """Removal inside a callback takes effect from the next value."""
        subs = SubscriberList("Test")
        received = []
        holder = {}

        def self_removing(v):
            received.append(("self", v))
            holder["sub"].dispose()

        holder["sub"] = subs.add(self_removing)
        subs.add(lambda v: received.append(("other", v)))

        subs.publish(1)
        subs.publish(2)

        self.assertEqual(received, [("self", 1), ("other", 1), ("other", 2)])


if __name__ == "__main__":
    unittest.main()
