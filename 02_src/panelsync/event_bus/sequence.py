"""Sequence id allocation for broadcast ordering."""

import itertools


class SequenceAllocator:
    """Issues strictly increasing ids, one per broadcast."""

    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._last = 0

    def next(self) -> int:
        self._last = next(self._counter)
        return self._last

    @property
    def last(self) -> int:
        """Most recently issued id (0 before the first)."""
        return self._last
