"""FIFO queue of buys awaiting wallet heuristics."""

import logging
from collections import deque
from typing import Deque, List

from .events import QueuedBuy

logger = logging.getLogger(__name__)


class WorkQueue:
    """
    Buys waiting for the next batch tick.

    Deduplication happens upstream in the parser; the queue itself only
    preserves admission order and hands out at most `limit` items per take.
    Taken items are gone for good, whatever happens to them afterwards.
    """

    def __init__(self):
        self._items: Deque[QueuedBuy] = deque()

    def enqueue(self, item: QueuedBuy) -> None:
        self._items.append(item)

    def take(self, limit: int) -> List[QueuedBuy]:
        """Remove and return up to `limit` items from the front."""
        batch = []
        while self._items and len(batch) < limit:
            batch.append(self._items.popleft())
        return batch

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)
