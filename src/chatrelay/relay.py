"""The bounded hand-off channel between the decoder and stream listeners."""

import logging
import queue
import threading
import time
from collections import deque
from typing import Deque, Optional

from .errors import RelayClosed
from .models import RelayItem

logger = logging.getLogger(__name__)


class FragmentRelay:
    """A closable, bounded FIFO shared by producers and listeners.

    Producers block in `publish` while the relay is full; listeners block in
    `take_next` while it is empty. Every item goes to exactly one listener:
    whichever is waiting first. Items from concurrent producers interleave,
    but each producer's own items keep their order.
    """

    def __init__(self, capacity: int = 10):
        if capacity < 1:
            raise ValueError("Relay capacity must be at least 1")
        self.capacity = capacity
        self._items: Deque[RelayItem] = deque()
        self._closed = False
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, item: RelayItem, timeout: Optional[float] = None) -> None:
        """Appends an item, blocking while the relay is full.

        Raises
        ------
        RelayClosed
            If the relay is closed before or while waiting for space.
        queue.Full
            If `timeout` elapses before space becomes available.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._not_full:
            while not self._closed and len(self._items) >= self.capacity:
                remaining = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise queue.Full
                self._not_full.wait(remaining)
            if self._closed:
                raise RelayClosed("Cannot publish on a closed relay")
            self._items.append(item)
            self._not_empty.notify()

    def take_next(self, timeout: Optional[float] = None) -> Optional[RelayItem]:
        """Removes and returns the oldest item, blocking while empty.

        Returns None once the relay is closed and fully drained.

        Raises
        ------
        queue.Empty
            If `timeout` elapses before an item arrives.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._not_empty:
            while not self._items:
                if self._closed:
                    return None
                remaining = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise queue.Empty
                self._not_empty.wait(remaining)
            item = self._items.popleft()
            self._not_full.notify()
            return item

    def close(self) -> None:
        """Shuts the relay down and wakes every blocked caller. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._not_empty.notify_all()
            self._not_full.notify_all()
        logger.info("Fragment relay closed")

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
