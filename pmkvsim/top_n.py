"""Bounded top-N selection backed by a small min-heap."""

from __future__ import annotations

import heapq
import itertools
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")


class TopN(Generic[T]):
    """Keep the ``limit`` items with the largest keys.

    A limit of zero means no bound: every item is kept, although the
    reported length is then zero.
    """

    def __init__(self, limit: int, key: Callable[[T], Any] | None = None) -> None:
        if limit < 0:
            raise ValueError("limit must not be negative")
        self.limit = limit
        self._key = key
        self._heap: list[tuple[Any, int, T]] = []
        self._counter = itertools.count()

    def _rank(self, item: T) -> Any:
        return item if self._key is None else self._key(item)

    def push(self, item: T) -> None:
        """Offer an item; it replaces the smallest kept one if strictly larger."""
        entry = (self._rank(item), next(self._counter), item)
        if self.limit == 0 or len(self._heap) < self.limit:
            heapq.heappush(self._heap, entry)
        elif self._heap[0][0] < entry[0]:
            heapq.heapreplace(self._heap, entry)

    def extract(self) -> list[T]:
        """Remove and return the kept items, largest first."""
        popped = [heapq.heappop(self._heap)[2] for _ in range(len(self._heap))]
        popped.reverse()
        return popped

    def reset(self) -> None:
        """Discard every kept item."""
        self._heap.clear()

    def __len__(self) -> int:
        return min(len(self._heap), self.limit)