"""
Activity Simulator
==================

Synthetic per-zone activity signals.

The simulator stands in for real network activity (connected Wi-Fi
devices per zone). It is a parameterized random generator, not a
physical model:

    population = floor(capacity * base + random() * capacity * variance)
    coordinate = (random() * extent, random() * extent)

Design Rules:
    - One Signal per zone per tick, in registry order
    - No cross-tick state: coordinates are redrawn every tick
    - The random source is injected so ticks are reproducible in tests
"""

import logging
import math
import random
from typing import List, Optional, Protocol

from crowd_monitor.models.signal import Signal
from crowd_monitor.models.zone import ZoneRegistry


logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    """
    Source of uniform floats in [0, 1).

    ``random.Random`` satisfies this protocol; tests may pass any object
    with a compatible ``random()`` method.
    """

    def random(self) -> float:
        ...


class ActivitySimulator:
    """
    Generates one Signal per registered zone.

    Attributes:
        registry: Zones to simulate
        base_occupancy_fraction: Fraction of capacity always present
        variance_fraction: Maximum extra occupancy as a fraction of capacity
        coordinate_extent: Side length of the square coordinate domain

    Example:
        simulator = ActivitySimulator(registry, rng=random.Random(42))
        signals = simulator.generate()
    """

    def __init__(
        self,
        registry: ZoneRegistry,
        base_occupancy_fraction: float = 0.3,
        variance_fraction: float = 0.5,
        coordinate_extent: float = 100.0,
        rng: Optional[RandomSource] = None,
    ) -> None:
        """
        Initialize the simulator.

        Args:
            registry: Validated zone registry
            base_occupancy_fraction: Base occupancy, >= 0
            variance_fraction: Random variance, >= 0
            coordinate_extent: Coordinates lie in [0, extent)^2
            rng: Random source. Defaults to an unseeded random.Random.
        """
        if base_occupancy_fraction < 0:
            raise ValueError("base_occupancy_fraction must be non-negative")
        if variance_fraction < 0:
            raise ValueError("variance_fraction must be non-negative")
        if coordinate_extent <= 0:
            raise ValueError("coordinate_extent must be positive")

        self.registry = registry
        self.base_occupancy_fraction = base_occupancy_fraction
        self.variance_fraction = variance_fraction
        self.coordinate_extent = coordinate_extent
        self._rng: RandomSource = rng if rng is not None else random.Random()

        logger.info(
            f"ActivitySimulator initialized: zones={len(registry)}, "
            f"base={base_occupancy_fraction}, variance={variance_fraction}"
        )

    def generate(self) -> List[Signal]:
        """
        Draw one tick of signals.

        Population and both coordinate axes are drawn per zone, in that
        order, so a seeded source yields the same tick every time.

        Returns:
            Signals in registry order
        """
        signals = []
        for zone in self.registry:
            base = zone.capacity * self.base_occupancy_fraction
            variance = self._rng.random() * zone.capacity * self.variance_fraction
            population = max(0, math.floor(base + variance))

            x = self._rng.random() * self.coordinate_extent
            y = self._rng.random() * self.coordinate_extent

            signals.append(
                Signal(zone_id=zone.id, population=population, coordinate=(x, y))
            )

        logger.debug(f"Generated {len(signals)} signals")
        return signals
