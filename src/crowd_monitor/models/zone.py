"""
Zone Registry
=============

Static catalog of monitored zones.

The registry is built once at startup from configuration and is
read-only afterwards. All validation of the zone catalog happens here,
so invalid capacities never reach the classifier.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple

from crowd_monitor.errors import ConfigurationError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Zone:
    """
    A monitored zone.

    Attributes:
        id: Unique zone identifier
        name: Display name
        capacity: Maximum comfortable population (> 0)
    """

    id: str
    name: str
    capacity: int


class ZoneRegistry:
    """
    Immutable, ordered collection of zones.

    Iteration order is the configuration order; the simulator and the
    clusterer rely on it as the stable input index order.

    Raises:
        ConfigurationError: on an empty catalog, a duplicate id or a
            non-positive capacity.
    """

    def __init__(self, zones: Iterable[Zone]) -> None:
        zones = tuple(zones)
        if not zones:
            raise ConfigurationError("At least one zone must be registered")

        by_id: Dict[str, Zone] = {}
        for zone in zones:
            if zone.capacity <= 0:
                raise ConfigurationError(
                    f"Zone {zone.id!r} has non-positive capacity {zone.capacity}"
                )
            if zone.id in by_id:
                raise ConfigurationError(f"Duplicate zone id {zone.id!r}")
            by_id[zone.id] = zone

        self._zones: Tuple[Zone, ...] = zones
        self._by_id = by_id

        logger.info(f"ZoneRegistry loaded: {len(zones)} zones")

    @classmethod
    def from_config(cls, zone_configs: Iterable) -> "ZoneRegistry":
        """Build a registry from ZoneConfig models."""
        return cls(
            Zone(id=zc.id, name=zc.name, capacity=zc.capacity)
            for zc in zone_configs
        )

    def get(self, zone_id: str) -> Optional[Zone]:
        return self._by_id.get(zone_id)

    def __contains__(self, zone_id: object) -> bool:
        return zone_id in self._by_id

    def __iter__(self) -> Iterator[Zone]:
        return iter(self._zones)

    def __len__(self) -> int:
        return len(self._zones)

    @property
    def zones(self) -> Tuple[Zone, ...]:
        return self._zones

    @property
    def ids(self) -> Tuple[str, ...]:
        return tuple(zone.id for zone in self._zones)
