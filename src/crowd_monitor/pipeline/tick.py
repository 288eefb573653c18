"""
Tick Pipeline
=============

One full tick: build snapshot → store.append → hub.publish.

Failure Policy:
    - PersistenceError from the store is logged and counted; the tick
      still publishes the in-memory snapshot
    - Ticks are serialized; concurrent callers wait for each other
    - Tick timestamps are strictly increasing; a clock that stalls or
      goes backwards is nudged forward by TIMESTAMP_STEP
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from crowd_monitor.broadcast.hub import BroadcastHub
from crowd_monitor.errors import PersistenceError
from crowd_monitor.models.reading import ClassifiedReading
from crowd_monitor.pipeline.snapshot import SnapshotBuilder
from crowd_monitor.storage.base import Clock, TimeSeriesStore, default_clock


logger = logging.getLogger(__name__)


TIMESTAMP_STEP = 0.001


@dataclass(frozen=True, slots=True)
class TickResult:
    """
    Outcome of one tick.

    Attributes:
        tick_number: 1-based tick counter
        timestamp: Timestamp stamped on every reading of the tick
        readings: The snapshot
        persisted: Whether store.append succeeded
        delivered: Subscribers the snapshot was handed to
    """

    tick_number: int
    timestamp: float
    readings: List[ClassifiedReading]
    persisted: bool
    delivered: int


class TickPipeline:
    """
    Runs ticks against a store and a hub.

    Example:
        pipeline = TickPipeline(builder, store, hub)
        result = pipeline.run_tick()
    """

    def __init__(
        self,
        builder: SnapshotBuilder,
        store: TimeSeriesStore,
        hub: BroadcastHub,
        clock: Optional[Clock] = None,
    ) -> None:
        self.builder = builder
        self.store = store
        self.hub = hub
        self._clock = clock or default_clock
        self._tick_lock = threading.Lock()

        self._tick_count: int = 0
        self._persistence_failures: int = 0
        self._last_timestamp: Optional[float] = None

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def persistence_failures(self) -> int:
        return self._persistence_failures

    def run_tick(self) -> TickResult:
        """Run one tick. Never raises PersistenceError."""
        with self._tick_lock:
            timestamp = self._next_timestamp()
            readings = self.builder.build(timestamp)

            persisted = True
            try:
                self.store.append(readings)
            except PersistenceError as e:
                persisted = False
                self._persistence_failures += 1
                logger.error(
                    f"Persistence error at tick {self._tick_count + 1}: {e} "
                    f"(failures={self._persistence_failures})"
                )

            delivered = self.hub.publish(readings)
            self._tick_count += 1

            logger.info(
                f"Tick {self._tick_count}: zones={len(readings)}, "
                f"persisted={persisted}, subscribers={delivered}"
            )
            return TickResult(
                tick_number=self._tick_count,
                timestamp=timestamp,
                readings=readings,
                persisted=persisted,
                delivered=delivered,
            )

    def _next_timestamp(self) -> float:
        timestamp = self._clock()
        if self._last_timestamp is not None and timestamp <= self._last_timestamp:
            logger.warning(
                f"Clock did not advance ({timestamp:.3f} <= {self._last_timestamp:.3f}), "
                f"nudging tick timestamp"
            )
            timestamp = self._last_timestamp + TIMESTAMP_STEP
        self._last_timestamp = timestamp
        return timestamp

    def get_metrics(self) -> dict:
        return {
            "tick_count": self._tick_count,
            "persistence_failures": self._persistence_failures,
            "last_tick_timestamp": self._last_timestamp,
        }
