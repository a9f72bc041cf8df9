"""Bounded ingestion queue between producers and the writer."""

import threading
from collections import deque

from rpcstats.core.models import SHUTDOWN, QueueItem, Record


class IngestQueue:
    """Bounded, thread-safe FIFO of statistics records.

    Producers never block: offers beyond capacity are dropped and counted.
    A single consumer blocks in take() until a record arrives or the queue
    is closed, at which point it receives the SHUTDOWN marker. Records still
    buffered at close time are not drained.

    Args:
        capacity: Maximum number of buffered records.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._items: deque[Record] = deque()
        self._condition = threading.Condition()
        self._closed = False
        self._dropped = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def size(self) -> int:
        with self._condition:
            return len(self._items)

    @property
    def dropped(self) -> int:
        """Number of records rejected because the queue was full or closed."""
        with self._condition:
            return self._dropped

    @property
    def closed(self) -> bool:
        with self._condition:
            return self._closed

    def offer(self, record: Record) -> bool:
        """Enqueue a record without blocking.

        Returns:
            True if the record was accepted, False if it was dropped.
        """
        with self._condition:
            if self._closed or len(self._items) >= self._capacity:
                self._dropped += 1
                return False
            self._items.append(record)
            self._condition.notify()
            return True

    def take(self, timeout: float | None = None) -> QueueItem | None:
        """Remove and return the oldest record, blocking while empty.

        Args:
            timeout: Seconds to wait. None waits until a record arrives or
                the queue is closed.

        Returns:
            The oldest record, SHUTDOWN once the queue is closed, or None
            if the timeout expired.
        """
        with self._condition:
            ready = self._condition.wait_for(
                lambda: self._closed or bool(self._items), timeout=timeout
            )
            if self._closed:
                return SHUTDOWN
            if not ready:
                return None
            return self._items.popleft()

    def close(self) -> None:
        """Close the queue and wake every blocked consumer."""
        with self._condition:
            self._closed = True
            self._condition.notify_all()
