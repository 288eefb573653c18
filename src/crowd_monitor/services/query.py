"""
Query Service
=============

Request/response queries over the time-series store.

Builds the response models served by the REST layer. Transport
framing (routing, status codes) stays in main.py.

Queries:
    latest()                 -> LatestZonesResponse
    history(zone_id, minutes)-> HistoryResponse (unknown zone = empty, success;
                                echoes the effective window)
    summary()                -> SummaryResponse
    health()                 -> HealthResponse
    refresh()                -> SnapshotResponse (fresh, not persisted)
"""

import logging
from typing import Optional

from crowd_monitor.broadcast.hub import BroadcastHub
from crowd_monitor.models.output import (
    HealthResponse,
    HistoryResponse,
    LatestZonesResponse,
    ReadingPayload,
    SnapshotResponse,
    SummaryPayload,
    SummaryResponse,
)
from crowd_monitor.services.summary import SummaryService
from crowd_monitor.storage.base import Clock, TimeSeriesStore, default_clock


logger = logging.getLogger(__name__)


class QueryService:
    """
    Read side of the crowd monitor.

    Attributes:
        default_history_minutes: Window used when none is requested
        max_history_minutes: Upper bound on requested windows
    """

    def __init__(
        self,
        store: TimeSeriesStore,
        summary_service: SummaryService,
        hub: BroadcastHub,
        default_history_minutes: float = 15.0,
        max_history_minutes: float = 24 * 60.0,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.summary_service = summary_service
        self.hub = hub
        self.default_history_minutes = default_history_minutes
        self.max_history_minutes = max_history_minutes
        self._clock = clock or default_clock
        self._started_at = self._clock()

    def latest(self) -> LatestZonesResponse:
        readings = self.store.latest_per_zone()
        return LatestZonesResponse(
            data=[ReadingPayload.from_reading(r) for r in readings],
            timestamp=self._clock(),
        )

    def history(self, zone_id: str, minutes: Optional[float] = None) -> HistoryResponse:
        """
        Readings of ``zone_id`` over the last ``minutes``.

        The window is clamped to ``max_history_minutes``; the response
        reports the window actually applied.

        Raises:
            ValueError: non-positive window
        """
        if minutes is None:
            minutes = self.default_history_minutes
        if minutes <= 0:
            raise ValueError("minutes must be positive")
        if minutes > self.max_history_minutes:
            logger.debug(
                f"History window {minutes}min clamped to {self.max_history_minutes}min"
            )
            minutes = self.max_history_minutes

        readings = self.store.history(zone_id, duration_seconds=minutes * 60)
        return HistoryResponse(
            zone_id=zone_id,
            data=[ReadingPayload.from_reading(r) for r in readings],
            count=len(readings),
            minutes=minutes,
        )

    def summary(self) -> SummaryResponse:
        summary = self.summary_service.summarize()
        return SummaryResponse(summary=SummaryPayload.from_summary(summary))

    def refresh(self) -> SnapshotResponse:
        snapshot = self.hub.refresh_on_demand()
        return SnapshotResponse(data=[ReadingPayload.from_reading(r) for r in snapshot])

    def health(self) -> HealthResponse:
        now = self._clock()
        return HealthResponse(
            timestamp=now,
            uptime=round(max(0.0, now - self._started_at), 1),
        )
