"""
Time-Series Store Interface
===========================

Append-only store of ClassifiedReadings keyed by (zone_id, timestamp).

Contract:
    append(readings)
        Adds one tick's readings. Readers see either all of them or
        none of them. Any failure (including a duplicate key) rejects
        the whole batch and raises PersistenceError.

    latest_per_zone()
        The most recent reading of every zone that has ever reported,
        one per zone, in order of each zone's first appearance.

    history(zone_id, duration_seconds)
        Readings of one zone with now - duration <= timestamp <= now,
        strictly ascending by timestamp. Unknown zones yield [].

There is no update or delete operation. Retention is out of scope.
"""

import time
from typing import Callable, List, Protocol, Sequence

from crowd_monitor.models.reading import ClassifiedReading


Clock = Callable[[], float]

# Wall clock used when no clock is injected
default_clock: Clock = time.time


class TimeSeriesStore(Protocol):
    """Protocol implemented by every store backend."""

    def append(self, readings: Sequence[ClassifiedReading]) -> None:
        ...

    def latest_per_zone(self) -> List[ClassifiedReading]:
        ...

    def history(self, zone_id: str, duration_seconds: float) -> List[ClassifiedReading]:
        ...

    def count(self) -> int:
        ...

    def close(self) -> None:
        ...
