"""Bounded history of delivered events."""

from collections import deque

from ..models import SyncEvent


class HistoryBuffer:
    """The most recent delivered events, newest first."""

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError(f"history limit must be >= 1, got {limit}")
        self._events: deque[SyncEvent] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._events.maxlen

    def record(self, event: SyncEvent) -> None:
        """Add an event; the oldest one is evicted when full."""
        self._events.appendleft(event)

    def snapshot(self) -> list[SyncEvent]:
        return list(self._events)

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)
