"""
Subscription
============

Bounded, drop-oldest delivery queue for one live subscriber.

Design Rules:
    - deliver() never blocks and may be called from any thread
    - Fixed maximum size; the oldest pending snapshot is dropped on overflow
    - get() is awaited by the subscriber's transport task
    - Does NOT inspect or modify snapshots
"""

import asyncio
import itertools
import logging
import threading
from typing import Optional, Tuple

from crowd_monitor.models.reading import ClassifiedReading


logger = logging.getLogger(__name__)


Snapshot = Tuple[ClassifiedReading, ...]

_ids = itertools.count(1)


class Subscription:
    """
    One subscriber's pending snapshots.

    The queue belongs to the event loop of the subscriber. Deliveries
    from other threads (the tick worker) are marshalled onto that loop.
    A subscription created without a loop is bound to the creating
    thread instead; delivering to it from any other thread raises.

    Attributes:
        subscriber_id: Process-unique id (for logs)
        maxsize: Maximum pending snapshots
        dropped_count: Snapshots dropped due to overflow
        delivered_count: Snapshots accepted into the queue
    """

    def __init__(
        self,
        maxsize: int = 8,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        label: str = "",
    ) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self.subscriber_id = next(_ids)
        self.label = label or f"subscriber-{self.subscriber_id}"
        self.maxsize = maxsize
        self._queue: asyncio.Queue[Snapshot] = asyncio.Queue(maxsize=maxsize)
        self._loop = loop
        self._owner_thread = threading.get_ident() if loop is None else None
        self._closed = False
        self.dropped_count: int = 0
        self.delivered_count: int = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def deliver(self, snapshot: Snapshot) -> None:
        """
        Enqueue a snapshot without blocking.

        Raises:
            RuntimeError: the subscriber's event loop is closed, or a
                loop-less subscription is used from a foreign thread
        """
        if self._closed:
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if self._loop is None:
            if threading.get_ident() != self._owner_thread:
                raise RuntimeError(
                    f"{self.label} has no event loop and cannot accept "
                    f"deliveries from another thread"
                )
            self._put(snapshot)
        elif running is self._loop:
            self._put(snapshot)
        else:
            self._loop.call_soon_threadsafe(self._put, snapshot)

    def _put(self, snapshot: Snapshot) -> None:
        if self._closed:
            return

        if self._queue.full():
            try:
                self._queue.get_nowait()
                self.dropped_count += 1
                logger.warning(
                    f"{self.label} is slow, dropped oldest snapshot. "
                    f"Total dropped: {self.dropped_count}"
                )
            except asyncio.QueueEmpty:
                pass

        self._queue.put_nowait(snapshot)
        self.delivered_count += 1

    async def get(self, timeout: Optional[float] = None) -> Optional[Snapshot]:
        """
        Next pending snapshot.

        Args:
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            Snapshot, or None if the timeout expired.
        """
        try:
            if timeout is not None:
                return await asyncio.wait_for(self._queue.get(), timeout=timeout)
            return await self._queue.get()
        except asyncio.TimeoutError:
            return None

    def get_nowait(self) -> Optional[Snapshot]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    def close(self) -> None:
        self._closed = True

    def metrics(self) -> dict:
        return {
            "subscriber_id": self.subscriber_id,
            "pending": self.pending,
            "maxsize": self.maxsize,
            "dropped_count": self.dropped_count,
            "delivered_count": self.delivered_count,
        }
