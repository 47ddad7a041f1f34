"""Per-consumer view of the EventBus."""

from collections.abc import Iterable
from typing import Any

from ..errors import MisuseError
from ..event_bus import IEventBus, Subscriber, SubscriptionHandle
from ..logging_config import get_logger
from ..models import EventDraft, Priority, SyncEvent

logger = get_logger(__name__)

ANY_TYPE = "*"

EventHandler = Subscriber


class TypedChannel:
    """
    Wraps an EventBus with a consumer identity.

    Every subscription made through the channel drops events the channel
    broadcast itself, so a panel never reacts to its own selection or update.
    Subscriptions are tracked and revoked together by close().
    """

    def __init__(
        self,
        bus: IEventBus,
        identity: str,
        allowed_types: Iterable[str] | None = None,
    ):
        self._bus = bus
        self._identity = identity
        self._allowed_types = (
            frozenset(allowed_types) if allowed_types is not None else None
        )
        self._handles: list[SubscriptionHandle] = []
        self._closed = False

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscription_count(self) -> int:
        return sum(1 for h in self._handles if h.active)

    def accepts(self, event: SyncEvent, event_type: str = ANY_TYPE) -> bool:
        """Whether a subscription for `event_type` should see `event`."""
        if event.source == self._identity:
            return False
        if event_type != ANY_TYPE and event.type != event_type:
            return False
        if self._allowed_types is not None and event.type not in self._allowed_types:
            return False
        return True

    def subscribe_to_type(
        self,
        event_type: str,
        handler: EventHandler,
    ) -> SubscriptionHandle:
        """Subscribe `handler` to events of `event_type` (or ANY_TYPE) from others."""
        if self._closed:
            raise MisuseError(f"Channel {self._identity!r} is closed")

        def deliver(event: SyncEvent) -> Any:
            if not self.accepts(event, event_type):
                return None
            return handler(event)

        handle = self._bus.subscribe(deliver)
        self._handles = [h for h in self._handles if h.active]
        self._handles.append(handle)
        return handle

    def broadcast_typed(
        self,
        event_type: str,
        payload: Any = None,
        priority: Priority | str = Priority.NORMAL,
    ) -> SyncEvent | None:
        """Broadcast an event with this channel's identity as its source."""
        if self._closed:
            logger.warning(
                "Channel %s is closed, dropping %r broadcast",
                self._identity,
                event_type,
            )
            return None

        draft = EventDraft(
            type=event_type,
            payload=payload,
            source=self._identity,
            priority=priority,
        )
        return self._bus.broadcast(draft)

    def close(self) -> None:
        """Revoke every subscription made through this channel."""
        if self._closed:
            return
        self._closed = True
        for handle in self._handles:
            handle.unsubscribe()
        self._handles.clear()
        logger.debug("Channel %s closed", self._identity)

    def __enter__(self) -> "TypedChannel":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
