"""Tests for the synchronous Notifier."""

import threading

import pytest

from recur.core.scheduling import Notifier


class TestNotifier:
    """Test Notifier delivery semantics."""

    def test_handlers_called_in_subscription_order(self):
        notifier = Notifier("test")
        order = []
        notifier.subscribe(lambda: order.append("first"))
        notifier.subscribe(lambda: order.append("second"))

        notifier.publish()

        assert order == ["first", "second"]

    def test_payload_passed_through(self):
        notifier = Notifier("faulted")
        received = []
        notifier.subscribe(received.append)

        notifier.publish("payload")

        assert received == ["payload"]

    def test_raising_handler_does_not_stop_delivery(self):
        notifier = Notifier("test")
        calls = []

        def broken():
            raise RuntimeError("handler bug")

        notifier.subscribe(broken)
        notifier.subscribe(lambda: calls.append("ok"))

        notifier.publish()  # Should not raise

        assert calls == ["ok"]

    def test_subscription_ids(self):
        notifier = Notifier("test")
        sub_id = notifier.subscribe(lambda: None)

        assert sub_id.startswith("sub_")
        assert sub_id in notifier
        assert notifier.subscription_count == 1

        assert notifier.unsubscribe(sub_id) is True
        assert sub_id not in notifier
        assert notifier.unsubscribe(sub_id) is False

    def test_non_callable_rejected(self):
        notifier = Notifier("test")
        with pytest.raises(TypeError):
            notifier.subscribe(42)

    def test_clear(self):
        notifier = Notifier("test")
        notifier.subscribe(lambda: None)
        notifier.subscribe(lambda: None)

        notifier.clear()

        assert notifier.subscription_count == 0

    def test_handler_may_unsubscribe_itself(self):
        notifier = Notifier("test")
        calls = []
        holder = {}

        def once():
            calls.append(1)
            notifier.unsubscribe(holder["id"])

        holder["id"] = notifier.subscribe(once)
        notifier.publish()
        notifier.publish()

        assert calls == [1]

    def test_handler_may_query_subscriptions(self):
        notifier = Notifier("test")
        seen = []
        holder = {}

        def inspect():
            seen.append((holder["id"] in notifier, notifier.subscription_count))

        holder["id"] = notifier.subscribe(inspect)
        notifier.publish()

        assert seen == [(True, 1)]

    def test_concurrent_subscribe_and_count(self):
        notifier = Notifier("test")

        def subscribe_many():
            for _ in range(200):
                notifier.subscribe(lambda: None)

        threads = [threading.Thread(target=subscribe_many) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert notifier.subscription_count == 800
