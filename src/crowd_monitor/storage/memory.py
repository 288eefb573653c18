"""
In-Memory Time-Series Store
===========================

Thread-safe, process-local implementation of the TimeSeriesStore contract.

Layout:
    _series[zone_id]      -> readings sorted by timestamp
    _timestamps[zone_id]  -> parallel list of timestamps (for bisect)

A single lock guards both the writer (tick thread) and the readers
(request handlers). An append validates the whole batch before
touching any series, so a rejected batch leaves no trace.
"""

import bisect
import logging
import threading
from typing import Dict, List, Optional, Sequence, Set, Tuple

from crowd_monitor.errors import PersistenceError
from crowd_monitor.models.reading import ClassifiedReading
from crowd_monitor.storage.base import Clock, default_clock


logger = logging.getLogger(__name__)


class InMemoryTimeSeriesStore:
    """
    Append-only in-memory store.

    Example:
        store = InMemoryTimeSeriesStore()
        store.append(readings)
        latest = store.latest_per_zone()
        window = store.history("AB1", duration_seconds=15 * 60)
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        """
        Args:
            clock: Returns "now" in UNIX seconds for history windows.
        """
        self._clock = clock or default_clock
        self._lock = threading.Lock()
        self._series: Dict[str, List[ClassifiedReading]] = {}
        self._timestamps: Dict[str, List[float]] = {}
        self._total: int = 0
        self._closed: bool = False

    def append(self, readings: Sequence[ClassifiedReading]) -> None:
        """
        Append one tick's readings atomically.

        Raises:
            PersistenceError: store closed or duplicate (zone_id, timestamp)
        """
        if not readings:
            return

        with self._lock:
            if self._closed:
                raise PersistenceError("Store is closed", operation="append")

            seen: Set[Tuple[str, float]] = set()
            for reading in readings:
                key = (reading.zone_id, reading.timestamp)
                if key in seen or self._contains(reading.zone_id, reading.timestamp):
                    raise PersistenceError(
                        f"Duplicate reading for zone {reading.zone_id!r} "
                        f"at {reading.timestamp}",
                        operation="append",
                    )
                seen.add(key)

            for reading in readings:
                series = self._series.setdefault(reading.zone_id, [])
                stamps = self._timestamps.setdefault(reading.zone_id, [])
                position = bisect.bisect_right(stamps, reading.timestamp)
                stamps.insert(position, reading.timestamp)
                series.insert(position, reading)

            self._total += len(readings)

        logger.debug(f"Appended {len(readings)} readings (total={self._total})")

    def latest_per_zone(self) -> List[ClassifiedReading]:
        with self._lock:
            self._ensure_open("latest_per_zone")
            return [series[-1] for series in self._series.values() if series]

    def history(self, zone_id: str, duration_seconds: float) -> List[ClassifiedReading]:
        """Readings in [now - duration, now], ascending. Unknown zone -> []."""
        now = self._clock()
        start = now - duration_seconds

        with self._lock:
            self._ensure_open("history")
            stamps = self._timestamps.get(zone_id)
            if not stamps:
                return []
            lo = bisect.bisect_left(stamps, start)
            hi = bisect.bisect_right(stamps, now)
            return self._series[zone_id][lo:hi]

    def count(self) -> int:
        with self._lock:
            return self._total

    def close(self) -> None:
        with self._lock:
            self._closed = True
        logger.info("InMemoryTimeSeriesStore closed")

    def _contains(self, zone_id: str, timestamp: float) -> bool:
        stamps = self._timestamps.get(zone_id)
        if not stamps:
            return False
        position = bisect.bisect_left(stamps, timestamp)
        return position < len(stamps) and stamps[position] == timestamp

    def _ensure_open(self, operation: str) -> None:
        if self._closed:
            raise PersistenceError("Store is closed", operation=operation)
