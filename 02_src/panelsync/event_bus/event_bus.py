"""EventBus implementation for panel-to-panel pub/sub."""

from typing import Protocol

from ..config import BusConfig
from ..models import EventDraft, SyncEvent
from .dispatcher import Dispatcher
from .registry import Subscriber


class SubscriptionHandle:
    """Revoke capability returned by subscribe(); calling it unsubscribes."""

    def __init__(self, dispatcher: Dispatcher, subscription_id: str):
        self._dispatcher = dispatcher
        self._id = subscription_id

    @property
    def id(self) -> str:
        return self._id

    @property
    def active(self) -> bool:
        return self._dispatcher.is_active(self._id)

    def unsubscribe(self) -> None:
        """Deactivate and remove the subscription. Safe to call repeatedly."""
        self._dispatcher.remove_subscriber(self._id)

    def __call__(self) -> None:
        self.unsubscribe()

    def __repr__(self) -> str:
        return f"SubscriptionHandle(id={self._id!r}, active={self.active})"


class IEventBus(Protocol):
    """In-process pub/sub shared by the panels of one dashboard."""

    def broadcast(self, draft: EventDraft) -> SyncEvent | None:
        """Sequence, timestamp and queue an event; delivery is deferred."""
        ...

    def subscribe(self, callback: Subscriber) -> SubscriptionHandle:
        """Register a callback for every delivered event."""
        ...

    def history(self) -> list[SyncEvent]:
        """Recently delivered events, newest first."""
        ...

    def clear_history(self) -> None:
        """Empty the history without touching subscriptions."""
        ...

    def active_subscription_count(self) -> int:
        """Number of active subscriptions."""
        ...


class EventBus:
    """In-memory pub/sub event bus with priority ordering and bounded history."""

    def __init__(self, config: BusConfig | None = None):
        self._config = config or BusConfig()
        self._dispatcher = Dispatcher(
            history_limit=self._config.history_limit,
            debug_logging=self._config.debug_logging,
        )

    @property
    def config(self) -> BusConfig:
        return self._config

    def broadcast(self, draft: EventDraft) -> SyncEvent | None:
        """Sequence, timestamp and queue an event; delivery is deferred."""
        return self._dispatcher.enqueue(draft)

    def subscribe(self, callback: Subscriber) -> SubscriptionHandle:
        """Register a callback for every delivered event."""
        subscription = self._dispatcher.add_subscriber(callback)
        return SubscriptionHandle(self._dispatcher, subscription.id)

    def history(self) -> list[SyncEvent]:
        """Recently delivered events, newest first."""
        return self._dispatcher.history()

    def clear_history(self) -> None:
        """Empty the history without touching subscriptions."""
        self._dispatcher.clear_history()

    def active_subscription_count(self) -> int:
        """Number of active subscriptions."""
        return self._dispatcher.active_subscription_count()

    def pending_count(self) -> int:
        """Events queued but not yet delivered."""
        return self._dispatcher.pending_count()

    @property
    def subscriber_error_count(self) -> int:
        """Subscriber callbacks that have raised so far."""
        return self._dispatcher.subscriber_error_count

    @property
    def closed(self) -> bool:
        return self._dispatcher.closed

    def flush(self) -> int:
        """Deliver pending events now; for code running without an event loop."""
        return self._dispatcher.flush()

    async def join(self) -> None:
        """Wait until every queued event and subscriber task has finished."""
        await self._dispatcher.join()

    def shutdown(self) -> None:
        """Clear the queue and all subscriptions; later broadcasts are dropped."""
        self._dispatcher.shutdown()
