"""
Chain Feed

A bounded channel that turns the arbitrator's "block appended" callbacks
into something a slow consumer (one socket connection) can drain at its
own pace.

Backpressure policy: drop-oldest. When the buffer is full the oldest
pending snapshot is discarded; each snapshot is a full chain, so the
newest one always supersedes what was dropped.
"""

from collections import deque
from threading import Condition
from typing import Deque, Optional, Tuple

from ..blockchain.ledger import Block


DEFAULT_FEED_SIZE = 8

Snapshot = Tuple[Block, ...]


class ChainFeed:
    """
    Subscriber that buffers chain snapshots.

    Instances are callable so they can be passed straight to
    `SubmissionArbitrator.subscribe`.
    """

    def __init__(self, maxsize: int = DEFAULT_FEED_SIZE):
        if maxsize < 1:
            raise ValueError("Feed size must be at least 1")
        self._items: Deque[Snapshot] = deque(maxlen=maxsize)
        self._cond = Condition()
        self._closed = False
        self._last_length = 0
        self.dropped = 0

    def __call__(self, snapshot: Snapshot) -> None:
        self.put(snapshot)

    def put(self, snapshot: Snapshot) -> None:
        """Enqueue a snapshot, discarding the oldest one if full."""
        with self._cond:
            # Subscribers run unlocked, so an older chain can arrive late
            if self._closed or len(snapshot) <= self._last_length:
                return
            self._last_length = len(snapshot)
            if len(self._items) == self._items.maxlen:
                self.dropped += 1
            self._items.append(snapshot)
            self._cond.notify()

    def get(self, timeout: Optional[float] = None) -> Optional[Snapshot]:
        """
        Wait for the next snapshot.

        Returns:
            The oldest buffered snapshot, or None on timeout or close
        """
        with self._cond:
            if not self._items and not self._closed:
                self._cond.wait(timeout)
            if self._items:
                return self._items.popleft()
            return None

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop accepting snapshots and wake any waiting reader."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
