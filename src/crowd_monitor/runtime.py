"""
Runtime Assembly
================

Builds the full component graph from Settings.

    ZoneRegistry ─┐
    Simulator ────┤
    Clusterer ────┼─> SnapshotBuilder ─┬─> TickPipeline ─> TickScheduler
    Classifier ───┘                    └─> BroadcastHub (refresh source)
    Store ───────────────────────────────> TickPipeline, SummaryService, QueryService

Fails fast with ConfigurationError on an invalid zone catalog or store
backend, before anything is started.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from crowd_monitor.broadcast.hub import BroadcastHub
from crowd_monitor.classification.classifier import CrowdClassifier
from crowd_monitor.clustering.dbscan import DBSCANClusterer
from crowd_monitor.config import Settings
from crowd_monitor.errors import ConfigurationError
from crowd_monitor.models.zone import ZoneRegistry
from crowd_monitor.pipeline.scheduler import TickScheduler
from crowd_monitor.pipeline.snapshot import SnapshotBuilder
from crowd_monitor.pipeline.tick import TickPipeline
from crowd_monitor.services.query import QueryService
from crowd_monitor.services.summary import SummaryService
from crowd_monitor.simulation.simulator import ActivitySimulator, RandomSource
from crowd_monitor.storage import create_store
from crowd_monitor.storage.base import Clock, TimeSeriesStore, default_clock


logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """All long-lived components of a running service."""

    registry: ZoneRegistry
    builder: SnapshotBuilder
    store: TimeSeriesStore
    hub: BroadcastHub
    pipeline: TickPipeline
    scheduler: TickScheduler
    summary_service: SummaryService
    query_service: QueryService


def build_runtime(
    settings: Settings,
    clock: Optional[Clock] = None,
    rng: Optional[RandomSource] = None,
) -> Runtime:
    """
    Assemble components from settings.

    Args:
        settings: Loaded configuration
        clock: Time source for ticks and queries (default: time.time)
        rng: Random source for the simulator (default: seeded from
            settings.simulator.seed)

    Raises:
        ConfigurationError: invalid zones, clustering parameters or backend
        PersistenceError: store cannot be opened
    """
    clock = clock or default_clock
    registry = ZoneRegistry.from_config(settings.zones)

    if rng is None:
        rng = random.Random(settings.simulator.seed)

    try:
        clusterer = DBSCANClusterer(
            epsilon=settings.clustering.epsilon,
            min_points=settings.clustering.min_points,
        )
        classifier = CrowdClassifier(
            overcrowded_percent=settings.thresholds.overcrowded,
            moderate_percent=settings.thresholds.moderate,
        )
        simulator = ActivitySimulator(
            registry,
            base_occupancy_fraction=settings.simulator.base_occupancy_fraction,
            variance_fraction=settings.simulator.variance_fraction,
            coordinate_extent=settings.simulator.coordinate_extent,
            rng=rng,
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    builder = SnapshotBuilder(registry, simulator, clusterer, classifier, clock=clock)
    store = create_store(settings.store, clock=clock)
    hub = BroadcastHub(
        refresh_source=builder.build,
        max_pending=settings.broadcast.max_pending_snapshots,
    )
    pipeline = TickPipeline(builder, store, hub, clock=clock)
    scheduler = TickScheduler(
        pipeline,
        interval_seconds=settings.scheduler.interval_seconds,
        stop_timeout_seconds=settings.scheduler.stop_timeout_seconds,
    )
    summary_service = SummaryService(store, registry)
    query_service = QueryService(
        store,
        summary_service,
        hub,
        default_history_minutes=settings.query.default_history_minutes,
        max_history_minutes=settings.query.max_history_minutes,
        clock=clock,
    )

    logger.info(
        f"Runtime built: zones={len(registry)}, store={settings.store.backend}, "
        f"interval={settings.scheduler.interval_seconds}s"
    )
    return Runtime(
        registry=registry,
        builder=builder,
        store=store,
        hub=hub,
        pipeline=pipeline,
        scheduler=scheduler,
        summary_service=summary_service,
        query_service=query_service,
    )
