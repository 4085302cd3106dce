"""Bounded feedback queue read by the presentation layer."""

from __future__ import annotations

import bisect

from live_coach.models.feedback import FeedbackItem

DEFAULT_CAPACITY = 50


class FeedbackQueue:
    """Time-ordered collection of feedback items that evicts the oldest.

    The backing tuple is replaced on every push, so a reader holding the
    result of :meth:`list` never sees a partial update.

    Args:
        capacity: Maximum number of items retained.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._items: tuple[FeedbackItem, ...] = ()

    def push(self, item: FeedbackItem) -> None:
        """Insert *item* in timestamp order, evicting the oldest when over capacity.

        Items with equal timestamps keep their push order.
        """
        items = list(self._items)
        bisect.insort_right(items, item, key=lambda queued: queued.timestamp)
        self._items = tuple(items[-self.capacity :])

    def list(self) -> tuple[FeedbackItem, ...]:
        """Return every retained item, oldest first."""
        return self._items

    def clear(self) -> None:
        self._items = ()

    def __len__(self) -> int:
        return len(self._items)
