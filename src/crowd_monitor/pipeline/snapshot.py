"""
Snapshot Builder
================

Simulate → cluster → classify for one tick.

The builder has no side effects beyond consuming entropy from the
simulator's random source. It is shared by the periodic tick (which
persists and publishes the result) and by on-demand refreshes (which
do neither).
"""

import logging
from typing import List, Optional

from crowd_monitor.classification.classifier import CrowdClassifier
from crowd_monitor.clustering.dbscan import DBSCANClusterer
from crowd_monitor.models.reading import ClassifiedReading
from crowd_monitor.models.zone import ZoneRegistry
from crowd_monitor.simulation.simulator import ActivitySimulator
from crowd_monitor.storage.base import Clock, default_clock


logger = logging.getLogger(__name__)


class SnapshotBuilder:
    """
    Produces one classified snapshot per call.

    Example:
        builder = SnapshotBuilder(registry, simulator, clusterer, classifier)
        readings = builder.build()
    """

    def __init__(
        self,
        registry: ZoneRegistry,
        simulator: ActivitySimulator,
        clusterer: DBSCANClusterer,
        classifier: CrowdClassifier,
        clock: Optional[Clock] = None,
    ) -> None:
        self.registry = registry
        self.simulator = simulator
        self.clusterer = clusterer
        self.classifier = classifier
        self._clock = clock or default_clock

    def build(self, timestamp: Optional[float] = None) -> List[ClassifiedReading]:
        """
        Build a snapshot.

        Args:
            timestamp: Tick timestamp. Defaults to the builder's clock.

        Returns:
            One ClassifiedReading per zone, in registry order
        """
        if timestamp is None:
            timestamp = self._clock()

        signals = self.simulator.generate()
        assignment = self.clusterer.cluster_signals(signals)
        readings = self.classifier.classify_tick(
            signals, self.registry.zones, assignment, timestamp
        )

        logger.debug(
            f"Snapshot built: zones={len(readings)}, "
            f"clusters={assignment.cluster_count}, noise={assignment.noise_count}"
        )
        return readings
