"""
Test Configuration
==================

Pytest fixtures and test configuration for the crowd monitor.
"""

import os
from pathlib import Path

# Settings are loaded on import; pin them before any crowd_monitor import.
os.environ["CROWD_CONFIG_PATH"] = str(Path(__file__).parent.parent / "config.yaml")
os.environ["CROWD_TICK_INTERVAL"] = "3600"
os.environ["CROWD_STORE_BACKEND"] = "memory"
os.environ["CROWD_LOG_LEVEL"] = "WARNING"

import pytest

from crowd_monitor.models.reading import ClassifiedReading, CrowdStatus
from crowd_monitor.models.zone import Zone, ZoneRegistry
from crowd_monitor.storage.memory import InMemoryTimeSeriesStore
from crowd_monitor.storage.sqlite import SQLiteTimeSeriesStore


class ScriptedRandom:
    """Random source that replays a fixed sequence of values."""

    def __init__(self, values):
        self._values = list(values)
        self._index = 0

    def random(self) -> float:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        return value


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


def make_reading(
    zone_id: str = "AB1",
    timestamp: float = 1_700_000_000.0,
    population: int = 100,
    capacity: int = 200,
    cluster: int = 0,
    status: CrowdStatus = CrowdStatus.NORMAL,
) -> ClassifiedReading:
    return ClassifiedReading(
        zone_id=zone_id,
        zone_name=f"Zone {zone_id}",
        population=population,
        density=population * 120 // capacity,
        cluster=cluster,
        capacity=capacity,
        status=status,
        timestamp=timestamp,
    )


@pytest.fixture
def campus_zones():
    """The nine default campus zones."""
    return [
        Zone("AB1", "AB1", 5880),
        Zone("AB2", "AB2", 250),
        Zone("AB3", "AB3", 5880),
        Zone("AB4", "AB4", 5880),
        Zone("Library", "Library", 300),
        Zone("Admin", "Admin Block", 250),
        Zone("North", "North Square", 200),
        Zone("Gazebo", "Gazebo", 200),
        Zone("MBA", "MBA Amphitheater", 150),
    ]


@pytest.fixture
def registry(campus_zones):
    return ZoneRegistry(campus_zones)


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture(params=["memory", "sqlite"])
def store(request, clock, tmp_path):
    """Every store backend, sharing the manual clock."""
    if request.param == "memory":
        backend = InMemoryTimeSeriesStore(clock=clock)
    else:
        backend = SQLiteTimeSeriesStore(str(tmp_path / "readings.db"), clock=clock)
    yield backend
    backend.close()
