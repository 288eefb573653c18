"""
Signal Model
============

Ephemeral per-zone activity reading produced by the simulator.

Signals are consumed immediately by the clusterer and classifier
within the same tick and are never persisted.
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True, slots=True)
class Signal:
    """
    Raw activity signal for one zone in one tick.

    Attributes:
        zone_id: Zone this signal belongs to
        population: Simulated connected-device count (>= 0)
        coordinate: 2-D point used for spatial clustering
    """

    zone_id: str
    population: int
    coordinate: Tuple[float, float]

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.population < 0:
            raise ValueError("population must be non-negative")

    def __repr__(self) -> str:
        x, y = self.coordinate
        return (
            f"Signal(zone_id={self.zone_id!r}, population={self.population}, "
            f"coordinate=({x:.2f}, {y:.2f}))"
        )
