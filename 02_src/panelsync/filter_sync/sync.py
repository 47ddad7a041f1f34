"""FilterSync: one panel's filter set, mirrored across panels over the bus."""

from collections.abc import Mapping
from typing import Any

from ..channel import TypedChannel
from ..event_bus import IEventBus, SubscriptionHandle
from ..logging_config import event_context, get_logger
from ..models import FILTER, FILTER_CLEARED, FilterSet, Priority, SyncEvent

logger = get_logger(__name__)


class FilterSync:
    """
    Edits, applies and mirrors a FilterSet for one consumer.

    Edits stay local until apply_filters(), which broadcasts `filter` with
    the whole set; clear_filters() empties the set and broadcasts
    `filterCleared`. From other sources, `filter` replaces the local set and
    `filterCleared` empties it. With sync disabled nothing is sent or
    received, and the set is edited locally only.
    """

    def __init__(
        self,
        bus: IEventBus,
        identity: str,
        *,
        initial: FilterSet | Mapping[str, Any] | None = None,
        sync_enabled: bool = True,
    ):
        self._channel = TypedChannel(bus, identity, allowed_types=(FILTER, FILTER_CLEARED))
        self._filters = FilterSet.from_value(initial) or FilterSet()
        self._sync_enabled = sync_enabled
        self._handles: list[SubscriptionHandle] = []
        self._closed = False
        if sync_enabled:
            self._listen()

    @property
    def identity(self) -> str:
        return self._channel.identity

    @property
    def channel(self) -> TypedChannel:
        return self._channel

    @property
    def filters(self) -> FilterSet:
        return self._filters

    @property
    def sync_enabled(self) -> bool:
        return self._sync_enabled

    @property
    def closed(self) -> bool:
        return self._closed

    def change_property(self, changes: Mapping[str, Any]) -> FilterSet:
        self._filters = self._filters.with_property(changes)
        return self._filters

    def change_geographic(self, changes: Mapping[str, Any]) -> FilterSet:
        self._filters = self._filters.with_geographic(changes)
        return self._filters

    def apply_filters(
        self,
        priority: Priority | str = Priority.NORMAL,
    ) -> SyncEvent | None:
        """Share the current set with the other panels."""
        if not self._sync_enabled:
            return None
        return self._channel.broadcast_typed(
            FILTER, {"filters": self._filters.to_dict()}, priority
        )

    def clear_filters(self) -> SyncEvent | None:
        """Empty the set and tell the other panels to do the same."""
        self._filters = FilterSet()
        if not self._sync_enabled:
            return None
        return self._channel.broadcast_typed(FILTER_CLEARED, {})

    def reset(self) -> None:
        """Empty the set locally, without broadcasting."""
        self._filters = FilterSet()

    def set_sync_enabled(self, enabled: bool) -> None:
        """Start or stop sending and receiving filter events."""
        if enabled == self._sync_enabled or self._closed:
            return
        self._sync_enabled = enabled
        if enabled:
            self._listen()
        else:
            for handle in self._handles:
                handle.unsubscribe()
            self._handles.clear()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._channel.close()
        self._handles.clear()
        self._filters = FilterSet()

    def _listen(self) -> None:
        self._handles = [
            self._channel.subscribe_to_type(FILTER, self._handle_filter),
            self._channel.subscribe_to_type(FILTER_CLEARED, self._handle_cleared),
        ]

    def _handle_filter(self, event: SyncEvent) -> None:
        filters = FilterSet.from_payload(event.payload)
        if filters is None:
            logger.warning(
                "%s: %r event from %s has no filters",
                self.identity,
                event.type,
                event.source,
                extra=event_context(event, panel_id=self.identity),
            )
            return
        self._filters = filters

    def _handle_cleared(self, event: SyncEvent) -> None:
        self._filters = FilterSet()
