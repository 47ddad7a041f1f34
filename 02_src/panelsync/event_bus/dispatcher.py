"""Priority-ordered event queue and delivery loop."""

import asyncio
import inspect
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Awaitable

from ..errors import SubscriberError
from ..logging_config import event_context, get_logger
from ..models import EventDraft, SyncEvent
from .history import HistoryBuffer
from .registry import Subscriber, Subscription, SubscriptionRegistry
from .sequence import SequenceAllocator

logger = get_logger(__name__)


class Dispatcher:
    """
    Owns the pending queue, the subscription registry and the history.

    Each drain step sorts the pending events by (priority rank, sequence id),
    delivers exactly one of them to every active subscriber, and resubmits
    itself to the event loop while events remain. Delivery never nests: a
    broadcast made from inside a callback only enqueues. Without a running
    loop nothing is delivered until flush() or join().
    """

    def __init__(self, history_limit: int, debug_logging: bool = False):
        self._sequence = SequenceAllocator()
        self._registry = SubscriptionRegistry()
        self._history = HistoryBuffer(history_limit)
        self._debug_logging = debug_logging

        self._pending: list[SyncEvent] = []
        self._processing = False
        self._drain_scheduled = False
        self._closed = False

        self._tasks: set[asyncio.Task] = set()
        self._subscriber_errors = 0

    # Queue

    def enqueue(self, draft: EventDraft) -> SyncEvent | None:
        """Sequence and timestamp a draft, queue it, and schedule a drain."""
        if self._closed:
            logger.warning(
                "Dropping %r event from %s: bus is shut down",
                draft.type,
                draft.source,
            )
            return None

        event = SyncEvent(
            type=draft.type,
            payload=draft.payload,
            source=draft.source,
            timestamp=datetime.now(timezone.utc),
            sequence_id=self._sequence.next(),
            priority=draft.priority,
        )
        self._pending.append(event)
        self._trace(
            event,
            "Broadcast %r from %s (#%d, %s)",
            event.type,
            event.source,
            event.sequence_id,
            event.priority.value,
        )

        self._schedule_drain()
        return event

    def _schedule_drain(self) -> None:
        if self._processing or self._drain_scheduled or self._closed:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: events wait for flush() or the next join()
            return

        self._drain_scheduled = True
        loop.call_soon(self._drain_step)

    def _drain_step(self) -> None:
        """One loop callback: deliver a single event, re-arm if more remain."""
        self._drain_scheduled = False
        if self._closed or not self._pending:
            return

        self._deliver_next()

        if self._pending:
            self._schedule_drain()

    def flush(self) -> int:
        """
        Deliver everything pending, synchronously, in priority order.

        For callers without a running event loop, where broadcast() only
        queues. Each step re-sorts the whole pending set, so events queued
        by callbacks during the flush are ordered with the rest. Returns the
        number of events delivered; a flush from inside a callback is a no-op.
        """
        if self._processing:
            return 0
        delivered = 0
        while self._pending and not self._closed:
            self._deliver_next()
            delivered += 1
        return delivered

    def _deliver_next(self) -> None:
        self._processing = True
        try:
            # Re-sort every step: a late high-priority event jumps the queue
            self._pending.sort(key=lambda e: e.delivery_key)
            event = self._pending.pop(0)
            self._fan_out(event)
            self._history.record(event)
        finally:
            self._processing = False

    # Delivery

    def _fan_out(self, event: SyncEvent) -> None:
        delivered = 0
        for subscription in self._registry.snapshot():
            if not subscription.active:
                continue
            delivered += 1
            try:
                result = subscription.callback(event)
            except Exception as exc:
                self._report(SubscriberError(subscription.id, event, exc))
                continue

            if inspect.isawaitable(result):
                self._track(subscription, event, result)

        self._trace(
            event,
            "Delivered %r #%d to %d subscribers",
            event.type,
            event.sequence_id,
            delivered,
        )

    def _track(
        self,
        subscription: Subscription,
        event: SyncEvent,
        awaitable: Awaitable,
    ) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            # Async subscriber called from a synchronous drain
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._report(SubscriberError(subscription.id, event, exc))
            return

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(partial(self._task_done, subscription.id, event))

    def _task_done(
        self,
        subscription_id: str,
        event: SyncEvent,
        task: asyncio.Task,
    ) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._report(SubscriberError(subscription_id, event, exc))

    def _report(self, error: SubscriberError) -> None:
        self._subscriber_errors += 1
        logger.error(
            "%s",
            error,
            exc_info=(type(error.cause), error.cause, error.cause.__traceback__),
            extra=event_context(error.event, subscription_id=error.subscription_id),
        )

    def _trace(self, event: SyncEvent, msg: str, *args) -> None:
        level = logging.INFO if self._debug_logging else logging.DEBUG
        if logger.isEnabledFor(level):
            logger.log(level, msg, *args, extra=event_context(event))

    # Subscriptions

    def add_subscriber(self, callback: Subscriber) -> Subscription:
        return self._registry.add(callback)

    def remove_subscriber(self, subscription_id: str) -> bool:
        return self._registry.remove(subscription_id)

    def is_active(self, subscription_id: str) -> bool:
        subscription = self._registry.get(subscription_id)
        return subscription is not None and subscription.active

    # Introspection

    def history(self) -> list[SyncEvent]:
        return self._history.snapshot()

    def clear_history(self) -> None:
        self._history.clear()

    def active_subscription_count(self) -> int:
        return self._registry.active_count()

    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def history_limit(self) -> int:
        return self._history.limit

    @property
    def subscriber_error_count(self) -> int:
        return self._subscriber_errors

    @property
    def closed(self) -> bool:
        return self._closed

    # Lifecycle

    async def join(self) -> None:
        """Wait until nothing is pending and no subscriber task is running."""
        while (self._pending or self._drain_scheduled or self._tasks) and not self._closed:
            # Events queued while no loop was running
            self._schedule_drain()
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(0)

    def shutdown(self) -> None:
        """Drop pending events and subscriptions; no further drains run."""
        if self._closed:
            return
        self._closed = True
        dropped = len(self._pending)
        self._pending.clear()
        self._registry.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        logger.info("Dispatcher shut down, %d pending events dropped", dropped)
