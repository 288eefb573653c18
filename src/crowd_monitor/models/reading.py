"""
Reading Models
==============

Persisted and derived data models for classified zone readings.

Core Concepts:
    - CrowdStatus: Discrete crowding tiers (normal, moderate, overcrowded)
    - ClassifiedReading: The persisted unit, one per zone per tick
    - Summary: System-wide aggregate over the latest readings

Wire Format (one element of a snapshot):
    {
        "zoneId": "AB1",
        "zoneName": "AB1",
        "population": 4625,
        "density": 94,
        "cluster": 1,
        "capacity": 5880,
        "status": "moderate",
        "timestamp": 1770500938.284
    }

`cluster` is the 1-based cluster id, or 0 for zones the clusterer
marked as noise.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


# Wire/persisted value for "not in any cluster"
NOISE_LABEL = 0


class CrowdStatus(str, Enum):
    """
    Crowding tiers ordered by severity.

    Attributes:
        NORMAL: Occupancy at or below the moderate threshold
        MODERATE: Occupancy above moderate, at or below overcrowded
        OVERCROWDED: Occupancy above the overcrowded threshold
    """

    NORMAL = "normal"
    MODERATE = "moderate"
    OVERCROWDED = "overcrowded"


@dataclass(frozen=True, slots=True)
class ClassifiedReading:
    """
    Classified zone reading.

    Created by the classifier, appended once to the store and never
    mutated afterwards.

    Attributes:
        zone_id: Zone identifier
        zone_name: Zone display name
        population: Population count (>= 0)
        density: floor(population / capacity * 120)
        cluster: 1-based cluster id, or NOISE_LABEL (0)
        capacity: Zone capacity at classification time
        status: Crowding tier
        timestamp: UNIX timestamp of the tick (seconds)
    """

    zone_id: str
    zone_name: str
    population: int
    density: int
    cluster: int
    capacity: int
    status: CrowdStatus
    timestamp: float

    @property
    def occupancy_percentage(self) -> float:
        """Occupancy as a percentage of capacity, rounded to 2 dp."""
        return round(self.population / self.capacity * 100, 2)

    @property
    def is_overcrowded(self) -> bool:
        return self.status is CrowdStatus.OVERCROWDED

    @property
    def is_noise(self) -> bool:
        return self.cluster == NOISE_LABEL

    def to_dict(self) -> Dict[str, Any]:
        """Export in the camelCase wire format."""
        return {
            "zoneId": self.zone_id,
            "zoneName": self.zone_name,
            "population": self.population,
            "density": self.density,
            "cluster": self.cluster,
            "capacity": self.capacity,
            "status": self.status.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassifiedReading":
        """Inverse of to_dict()."""
        return cls(
            zone_id=str(data["zoneId"]),
            zone_name=str(data["zoneName"]),
            population=int(data["population"]),
            density=int(data["density"]),
            cluster=int(data["cluster"]),
            capacity=int(data["capacity"]),
            status=CrowdStatus(data["status"]),
            timestamp=float(data["timestamp"]),
        )


@dataclass(frozen=True, slots=True)
class Summary:
    """
    System-wide totals derived from the latest reading of each zone.

    Not persisted; recomputed on every request.
    """

    total_population: int
    active_zone_count: int
    overcrowded_zone_count: int
    total_zone_count: int
