"""
Broadcast Hub
=============

Publish/subscribe fan-out of tick snapshots to live subscribers.

Design Rules:
    - publish() is best-effort and never blocks the tick
    - A failing subscriber is removed; other subscribers are unaffected
    - subscribe()/unsubscribe() are safe during an in-flight publish
    - The hub keeps no snapshot history; only per-subscriber queues
    - refresh_on_demand() builds a fresh snapshot for one caller and
      never appends it to the store or publishes it
"""

import asyncio
import logging
import threading
from typing import Callable, Dict, List, Optional, Sequence

from crowd_monitor.broadcast.subscription import Snapshot, Subscription
from crowd_monitor.models.reading import ClassifiedReading


logger = logging.getLogger(__name__)


SnapshotSource = Callable[[], Sequence[ClassifiedReading]]


class BroadcastHub:
    """
    Registry of subscriptions plus snapshot fan-out.

    Example:
        hub = BroadcastHub(refresh_source=builder.build, max_pending=8)

        subscription = hub.subscribe()
        hub.publish(snapshot)
        snapshot = await subscription.get()
        hub.unsubscribe(subscription)
    """

    def __init__(
        self,
        refresh_source: Optional[SnapshotSource] = None,
        max_pending: int = 8,
    ) -> None:
        """
        Args:
            refresh_source: Builds a fresh, non-persisted snapshot
            max_pending: Queue size for new subscriptions
        """
        self._refresh_source = refresh_source
        self._max_pending = max_pending
        self._lock = threading.Lock()
        self._subscriptions: Dict[int, Subscription] = {}
        self._publish_count: int = 0
        self._failed_deliveries: int = 0

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        label: str = "",
    ) -> Subscription:
        """
        Register a new subscriber.

        Args:
            loop: Event loop the subscriber consumes on. Defaults to the
                running loop, if any.
            label: Name used in logs
        """
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None

        subscription = Subscription(maxsize=self._max_pending, loop=loop, label=label)
        with self._lock:
            self._subscriptions[subscription.subscriber_id] = subscription

        logger.info(
            f"{subscription.label} subscribed "
            f"(subscribers={self.subscriber_count})"
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Deregister a subscriber. Unknown subscriptions are ignored."""
        subscription.close()
        with self._lock:
            removed = self._subscriptions.pop(subscription.subscriber_id, None)

        if removed is not None:
            logger.info(
                f"{subscription.label} unsubscribed "
                f"(subscribers={self.subscriber_count})"
            )

    def publish(self, readings: Sequence[ClassifiedReading]) -> int:
        """
        Deliver a snapshot to every registered subscriber.

        Returns:
            Number of subscribers the snapshot was handed to
        """
        snapshot: Snapshot = tuple(readings)

        with self._lock:
            targets: List[Subscription] = list(self._subscriptions.values())
            self._publish_count += 1

        delivered = 0
        for subscription in targets:
            try:
                subscription.deliver(snapshot)
                delivered += 1
            except Exception as e:
                self._failed_deliveries += 1
                logger.warning(f"Delivery to {subscription.label} failed: {e}")
                self.unsubscribe(subscription)

        logger.debug(f"Published snapshot of {len(snapshot)} readings to {delivered} subscribers")
        return delivered

    def refresh_on_demand(self) -> Snapshot:
        """
        Build a fresh snapshot for a single requester.

        Raises:
            RuntimeError: no refresh source configured
        """
        if self._refresh_source is None:
            raise RuntimeError("BroadcastHub has no refresh source")
        return tuple(self._refresh_source())

    def metrics(self) -> dict:
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            publish_count = self._publish_count
        return {
            "subscribers": len(subscriptions),
            "publish_count": publish_count,
            "failed_deliveries": self._failed_deliveries,
            "dropped_snapshots": sum(s.dropped_count for s in subscriptions),
            "subscriptions": [s.metrics() for s in subscriptions],
        }
