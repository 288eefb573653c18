"""
Summary Service
===============

System-wide totals over the latest reading of each zone.

    total_population       = sum(latest.population)
    active_zone_count      = count(latest.population > 0)
    overcrowded_zone_count = count(latest.status == OVERCROWDED)
    total_zone_count       = number of registered zones

Read-only; PersistenceError from the store propagates to the caller.
"""

from crowd_monitor.models.reading import Summary
from crowd_monitor.models.zone import ZoneRegistry
from crowd_monitor.storage.base import TimeSeriesStore


class SummaryService:
    """Aggregates ``store.latest_per_zone()`` into a Summary."""

    def __init__(self, store: TimeSeriesStore, registry: ZoneRegistry) -> None:
        self.store = store
        self.registry = registry

    def summarize(self) -> Summary:
        latest = self.store.latest_per_zone()
        return Summary(
            total_population=sum(r.population for r in latest),
            active_zone_count=sum(1 for r in latest if r.population > 0),
            overcrowded_zone_count=sum(1 for r in latest if r.is_overcrowded),
            total_zone_count=len(self.registry),
        )
