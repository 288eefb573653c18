"""
Crowd Classifier
================

Deterministic crowd status and density score for one zone reading.

Formulas:
    percentage = population / capacity * 100
    status     = OVERCROWDED  if percentage > 85
                 MODERATE     if percentage > 60
                 NORMAL       otherwise
    density    = floor(percentage * 1.2) = floor(population * 120 / capacity)

Comparisons are strict, so exactly 85% is MODERATE and exactly 60% is
NORMAL. Both comparisons and the density floor are done on integers
(cross-multiplied) so boundary values are not subject to float rounding.
"""

import logging
from typing import List, Sequence

from crowd_monitor.clustering.dbscan import ClusterAssignment
from crowd_monitor.models.reading import ClassifiedReading, CrowdStatus
from crowd_monitor.models.signal import Signal
from crowd_monitor.models.zone import Zone


logger = logging.getLogger(__name__)


DEFAULT_OVERCROWDED_PERCENT = 85.0
DEFAULT_MODERATE_PERCENT = 60.0

# density = floor(occupancy_ratio * DENSITY_SCALE)
DENSITY_SCALE = 120


def classify_status(
    population: int,
    capacity: int,
    overcrowded_percent: float = DEFAULT_OVERCROWDED_PERCENT,
    moderate_percent: float = DEFAULT_MODERATE_PERCENT,
) -> CrowdStatus:
    """
    Crowd status for a population against a capacity.

    Args:
        population: Population count (>= 0)
        capacity: Zone capacity (> 0, guaranteed by the zone registry)
        overcrowded_percent: OVERCROWDED strictly above this percentage
        moderate_percent: MODERATE strictly above this percentage

    Returns:
        CrowdStatus tier
    """
    scaled = population * 100
    if scaled > overcrowded_percent * capacity:
        return CrowdStatus.OVERCROWDED
    if scaled > moderate_percent * capacity:
        return CrowdStatus.MODERATE
    return CrowdStatus.NORMAL


def compute_density(population: int, capacity: int) -> int:
    """floor(population / capacity * 120), exact."""
    return (population * DENSITY_SCALE) // capacity


class CrowdClassifier:
    """
    Turns a signal, its zone and its cluster label into a ClassifiedReading.

    Pure: holds only the thresholds.

    Example:
        classifier = CrowdClassifier()
        reading = classifier.classify(signal, zone, cluster=1, timestamp=now)
    """

    def __init__(
        self,
        overcrowded_percent: float = DEFAULT_OVERCROWDED_PERCENT,
        moderate_percent: float = DEFAULT_MODERATE_PERCENT,
    ) -> None:
        if moderate_percent > overcrowded_percent:
            raise ValueError("moderate_percent must not exceed overcrowded_percent")

        self.overcrowded_percent = overcrowded_percent
        self.moderate_percent = moderate_percent

    def classify(
        self,
        signal: Signal,
        zone: Zone,
        cluster: int,
        timestamp: float,
    ) -> ClassifiedReading:
        """
        Classify one zone.

        Args:
            signal: The zone's signal for this tick
            zone: Zone definition (source of name and capacity)
            cluster: Persisted cluster label (0 = noise)
            timestamp: Tick timestamp (UNIX seconds)
        """
        return ClassifiedReading(
            zone_id=zone.id,
            zone_name=zone.name,
            population=signal.population,
            density=compute_density(signal.population, zone.capacity),
            cluster=cluster,
            capacity=zone.capacity,
            status=classify_status(
                signal.population,
                zone.capacity,
                self.overcrowded_percent,
                self.moderate_percent,
            ),
            timestamp=timestamp,
        )

    def classify_tick(
        self,
        signals: Sequence[Signal],
        zones: Sequence[Zone],
        assignment: ClusterAssignment,
        timestamp: float,
    ) -> List[ClassifiedReading]:
        """
        Classify a whole tick.

        ``signals``, ``zones`` and ``assignment`` are index-aligned.
        """
        if not (len(signals) == len(zones) == len(assignment.labels)):
            raise ValueError("signals, zones and cluster labels must be aligned")

        readings = [
            self.classify(signal, zone, assignment.wire_label(i), timestamp)
            for i, (signal, zone) in enumerate(zip(signals, zones))
        ]

        overcrowded = sum(1 for r in readings if r.is_overcrowded)
        if overcrowded:
            logger.debug(f"{overcrowded} of {len(readings)} zones overcrowded")
        return readings
