"""Tests for EventBus."""

import asyncio
import logging

import pytest

from panelsync.config import BusConfig
from panelsync.errors import InvalidPriorityError
from panelsync.event_bus import EventBus
from panelsync.models import EventDraft, Priority, SyncEvent


def draft(event_type: str, payload=None, source: str = "test", priority="normal"):
    return EventDraft(type=event_type, payload=payload, source=source, priority=priority)


class TestEventBusSubscribe:
    """Tests for EventBus subscription."""

    def test_subscribe_returns_active_handle(self, event_bus):
        """Test subscribing registers an active subscription."""
        handle = event_bus.subscribe(lambda event: None)

        assert handle.active
        assert event_bus.active_subscription_count() == 1

    def test_subscribe_generates_unique_ids(self, event_bus):
        """Test each subscription gets its own id."""
        h1 = event_bus.subscribe(lambda event: None)
        h2 = event_bus.subscribe(lambda event: None)

        assert h1.id != h2.id
        assert event_bus.active_subscription_count() == 2

    def test_unsubscribe_twice_is_noop(self, event_bus):
        """Test calling the unsubscribe handle twice equals calling it once."""
        keep = event_bus.subscribe(lambda event: None)
        handle = event_bus.subscribe(lambda event: None)

        handle()
        handle()
        handle.unsubscribe()

        assert not handle.active
        assert keep.active
        assert event_bus.active_subscription_count() == 1

    @pytest.mark.asyncio
    async def test_unsubscribed_callback_not_called(self, event_bus):
        """Test that an unsubscribed callback receives nothing further."""
        calls = []
        handle = event_bus.subscribe(calls.append)

        event_bus.broadcast(draft("first"))
        await event_bus.join()
        handle()
        event_bus.broadcast(draft("second"))
        await event_bus.join()

        assert [e.type for e in calls] == ["first"]


class TestEventBusBroadcast:
    """Tests for EventBus broadcasting."""

    @pytest.mark.asyncio
    async def test_broadcast_assigns_sequence_and_timestamp(self, event_bus):
        """Test that broadcast completes the draft into a SyncEvent."""
        e1 = event_bus.broadcast(draft("a", {"value": 1}, source="map"))
        e2 = event_bus.broadcast(draft("b"))

        assert isinstance(e1, SyncEvent)
        assert e1.type == "a"
        assert e1.payload == {"value": 1}
        assert e1.source == "map"
        assert e1.priority is Priority.NORMAL
        assert e1.timestamp is not None
        assert e2.sequence_id > e1.sequence_id
        assert e2.timestamp >= e1.timestamp

    @pytest.mark.asyncio
    async def test_delivery_is_deferred(self, event_bus):
        """Test that broadcast does not deliver on the caller's stack."""
        calls = []
        event_bus.subscribe(calls.append)

        event_bus.broadcast(draft("test-event"))
        assert calls == []
        assert event_bus.pending_count() == 1

        await event_bus.join()
        assert len(calls) == 1
        assert event_bus.pending_count() == 0

    @pytest.mark.asyncio
    async def test_priority_ordering(self, event_bus):
        """Test low, normal, high broadcast back-to-back arrive high first."""
        calls = []
        event_bus.subscribe(calls.append)

        event_bus.broadcast(draft("low", priority="low"))
        event_bus.broadcast(draft("normal", priority="normal"))
        event_bus.broadcast(draft("high", priority=Priority.HIGH))
        await event_bus.join()

        assert [e.type for e in calls] == ["high", "normal", "low"]

    @pytest.mark.asyncio
    async def test_fifo_within_priority(self, event_bus):
        """Test equal-priority events arrive in broadcast order."""
        calls = []
        event_bus.subscribe(calls.append)

        for i in range(20):
            event_bus.broadcast(draft("tick", {"i": i}, source="map"))
        await event_bus.join()

        assert [e.payload["i"] for e in calls] == list(range(20))

    @pytest.mark.asyncio
    async def test_late_high_priority_jumps_queue(self, event_bus):
        """Test a high event broadcast mid-drain precedes pending low events."""
        calls = []

        def handler(event):
            calls.append(event.type)
            if event.type == "first":
                event_bus.broadcast(draft("urgent", priority="high"))

        event_bus.subscribe(handler)
        event_bus.broadcast(draft("first"))
        event_bus.broadcast(draft("later-1", priority="low"))
        event_bus.broadcast(draft("later-2", priority="low"))
        await event_bus.join()

        assert calls == ["first", "urgent", "later-1", "later-2"]

    @pytest.mark.asyncio
    async def test_broadcast_from_callback_does_not_nest(self, event_bus):
        """Test a broadcast inside a callback only enqueues."""
        calls = []

        def handler(event):
            calls.append(("enter", event.type))
            if event.type == "ping":
                event_bus.broadcast(draft("pong"))
            calls.append(("exit", event.type))

        event_bus.subscribe(handler)
        event_bus.broadcast(draft("ping"))
        await event_bus.join()

        assert calls == [
            ("enter", "ping"),
            ("exit", "ping"),
            ("enter", "pong"),
            ("exit", "pong"),
        ]

    @pytest.mark.asyncio
    async def test_burst_does_not_recurse(self, event_bus):
        """Test a large burst drains without growing the stack."""
        count = 0

        def handler(event):
            nonlocal count
            count += 1

        event_bus.subscribe(handler)
        for i in range(5000):
            event_bus.broadcast(draft("burst", i))
        await event_bus.join()

        assert count == 5000

    def test_invalid_priority_rejected(self):
        """Test unknown priority strings are rejected at draft creation."""
        with pytest.raises(InvalidPriorityError):
            draft("x", priority="urgent")

        with pytest.raises(ValueError):
            draft("x", priority="")


class TestEventBusDeliverySemantics:
    """Tests for delivery during registry mutation."""

    @pytest.mark.asyncio
    async def test_unsubscribe_during_delivery(self, event_bus):
        """Test a subscription removed mid-delivery is skipped for that event."""
        calls = []
        handles = {}

        def first(event):
            calls.append("first")
            handles["second"]()

        handles["first"] = event_bus.subscribe(first)
        handles["second"] = event_bus.subscribe(lambda event: calls.append("second"))

        event_bus.broadcast(draft("test"))
        await event_bus.join()

        assert calls == ["first"]
        assert event_bus.active_subscription_count() == 1

    @pytest.mark.asyncio
    async def test_subscribe_during_delivery(self, event_bus):
        """Test a subscription added mid-delivery starts with the next event."""
        late_calls = []

        def first(event):
            if event.type == "one":
                event_bus.subscribe(late_calls.append)

        event_bus.subscribe(first)
        event_bus.broadcast(draft("one"))
        event_bus.broadcast(draft("two"))
        await event_bus.join()

        assert [e.type for e in late_calls] == ["two"]

    @pytest.mark.asyncio
    async def test_async_subscriber_awaited_by_join(self, event_bus):
        """Test coroutine callbacks are scheduled and awaited by join()."""
        calls = []

        async def handler(event):
            calls.append(event.type)

        event_bus.subscribe(handler)
        event_bus.broadcast(draft("async-event"))
        await event_bus.join()

        assert calls == ["async-event"]


class TestEventBusErrors:
    """Tests for subscriber failure isolation."""

    @pytest.mark.asyncio
    async def test_error_in_subscriber_isolated(self, event_bus, caplog):
        """Test that a raising subscriber does not affect the others."""
        calls = []

        def failing_handler(event):
            calls.append("failing")
            raise RuntimeError("Test error")

        def normal_handler(event):
            calls.append("normal")

        failing = event_bus.subscribe(failing_handler)
        event_bus.subscribe(normal_handler)

        with caplog.at_level(logging.ERROR, logger="panelsync.event_bus.dispatcher"):
            event_bus.broadcast(draft("test-event"))
            await event_bus.join()

        assert calls == ["failing", "normal"]
        assert event_bus.subscriber_error_count == 1
        assert failing.id in caplog.text
        assert "Test error" in caplog.text

    @pytest.mark.asyncio
    async def test_error_does_not_corrupt_queue(self, event_bus):
        """Test later events are still delivered after a subscriber raises."""
        calls = []

        def handler(event):
            calls.append(event.type)
            if event.type == "bad":
                raise ValueError("boom")

        event_bus.subscribe(handler)
        event_bus.broadcast(draft("bad"))
        event_bus.broadcast(draft("good"))
        await event_bus.join()

        assert calls == ["bad", "good"]
        assert event_bus.pending_count() == 0

    @pytest.mark.asyncio
    async def test_async_subscriber_error_logged(self, event_bus, caplog):
        """Test failures inside coroutine callbacks are contained too."""

        async def failing(event):
            raise RuntimeError("async failure")

        event_bus.subscribe(failing)

        with caplog.at_level(logging.ERROR):
            event_bus.broadcast(draft("test"))
            await event_bus.join()

        assert event_bus.subscriber_error_count == 1
        assert "async failure" in caplog.text


class TestEventBusHistory:
    """Tests for the bounded history."""

    @pytest.mark.asyncio
    async def test_history_newest_first(self):
        """Test history keeps the last historyLimit events, newest first."""
        bus = EventBus(BusConfig(history_limit=3))

        for name in ["e1", "e2", "e3", "e4"]:
            bus.broadcast(draft(name))
        await bus.join()

        assert [e.type for e in bus.history()] == ["e4", "e3", "e2"]

    @pytest.mark.asyncio
    async def test_history_bound(self):
        """Test historyLimit + k broadcasts leave exactly historyLimit entries."""
        limit, k = 5, 4
        bus = EventBus(BusConfig(history_limit=limit))

        for i in range(limit + k):
            bus.broadcast(draft("tick", i))
        await bus.join()

        history = bus.history()
        assert len(history) == limit
        assert [e.payload for e in history] == list(range(limit + k - 1, k - 1, -1))

    @pytest.mark.asyncio
    async def test_clear_history_keeps_subscriptions(self, event_bus):
        """Test clear_history empties history only."""
        calls = []
        event_bus.subscribe(calls.append)
        event_bus.broadcast(draft("a"))
        await event_bus.join()

        event_bus.clear_history()

        assert event_bus.history() == []
        assert event_bus.active_subscription_count() == 1

        event_bus.broadcast(draft("b"))
        await event_bus.join()
        assert [e.type for e in calls] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_history_recorded_after_delivery(self, event_bus):
        """Test an event enters history only once its fan-out has finished."""
        seen = []
        event_bus.subscribe(
            lambda event: seen.append([e.type for e in event_bus.history()])
        )

        event_bus.broadcast(draft("a"))
        event_bus.broadcast(draft("b"))
        await event_bus.join()

        assert seen == [[], ["a"]]
        assert [e.type for e in event_bus.history()] == ["b", "a"]


class TestEventBusShutdown:
    """Tests for EventBus teardown."""

    @pytest.mark.asyncio
    async def test_shutdown_clears_queue_and_subscriptions(self, event_bus):
        """Test shutdown drops pending events and subscriptions."""
        calls = []
        event_bus.subscribe(calls.append)

        event_bus.broadcast(draft("never"))
        event_bus.shutdown()
        await event_bus.join()

        assert calls == []
        assert event_bus.closed
        assert event_bus.pending_count() == 0
        assert event_bus.active_subscription_count() == 0

    @pytest.mark.asyncio
    async def test_broadcast_after_shutdown_dropped(self, event_bus):
        """Test broadcasts after shutdown return None and do nothing."""
        event_bus.shutdown()
        event_bus.shutdown()

        assert event_bus.broadcast(draft("late")) is None
        assert event_bus.history() == []


class TestEventBusWithoutLoop:
    """Tests for synchronous callers with no running event loop."""

    def test_broadcast_only_queues(self, event_bus):
        """Test broadcast never runs subscribers in the caller."""
        calls = []
        event_bus.subscribe(calls.append)

        event = event_bus.broadcast(draft("a"))

        assert event.sequence_id == 1
        assert calls == []
        assert event_bus.pending_count() == 1
        assert event_bus.history() == []

    def test_flush_delivers_in_priority_order(self, event_bus):
        """Test low, normal, high broadcasts are flushed as high, normal, low."""
        calls = []
        event_bus.subscribe(lambda event: calls.append(event.type))

        event_bus.broadcast(draft("low", priority="low"))
        event_bus.broadcast(draft("normal", priority="normal"))
        event_bus.broadcast(draft("high", priority="high"))

        assert event_bus.flush() == 3
        assert calls == ["high", "normal", "low"]
        assert [e.type for e in event_bus.history()] == ["low", "normal", "high"]

    def test_flush_orders_events_queued_by_callbacks(self, event_bus):
        """Test a broadcast from a callback is sorted with the rest of the queue."""
        calls = []

        def handler(event):
            calls.append(event.type)
            if event.type == "first":
                event_bus.broadcast(draft("urgent", priority="high"))

        event_bus.subscribe(handler)
        event_bus.broadcast(draft("first", priority="high"))
        event_bus.broadcast(draft("second"))

        event_bus.flush()

        assert calls == ["first", "urgent", "second"]
        assert event_bus.pending_count() == 0

    def test_flush_from_callback_is_noop(self, event_bus):
        """Test a nested flush does not deliver re-entrantly."""
        calls = []
        nested = []

        def handler(event):
            calls.append(event.type)
            if event.type == "outer":
                event_bus.broadcast(draft("inner"))
                nested.append(event_bus.flush())

        event_bus.subscribe(handler)
        event_bus.broadcast(draft("outer"))

        assert event_bus.flush() == 2
        assert nested == [0]
        assert calls == ["outer", "inner"]

    def test_async_subscriber_without_loop_reported(self, event_bus):
        """Test a coroutine callback with no loop is closed and counted."""

        async def handler(event):
            pass

        event_bus.subscribe(handler)
        event_bus.broadcast(draft("x"))
        event_bus.flush()

        assert event_bus.subscriber_error_count == 1

    def test_join_drains_events_queued_without_loop(self, event_bus):
        """Test events queued before a loop was running are delivered by join()."""
        calls = []
        event_bus.subscribe(lambda event: calls.append(event.type))

        event_bus.broadcast(draft("late", priority="low"))
        event_bus.broadcast(draft("early", priority="high"))
        asyncio.run(event_bus.join())

        assert calls == ["early", "late"]
        assert event_bus.pending_count() == 0
