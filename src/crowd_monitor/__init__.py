"""
Crowd Monitor
=============

Real-time crowd monitoring service for a fixed set of campus zones.

Every tick the service simulates zone activity, clusters the zones
spatially, classifies each zone's crowding level, appends the readings
to a time-series store and pushes the snapshot to live subscribers.

Components:
    - simulation: Synthetic activity signals per zone
    - clustering: Density-based spatial clustering (DBSCAN)
    - classification: Crowd status and density score
    - storage: Append-only time-series store (memory, SQLite)
    - broadcast: Publish/subscribe fan-out of snapshots
    - pipeline: Tick pipeline and periodic scheduler
    - services: Summary and query services

Example:
    from crowd_monitor.config import settings

    print(settings.scheduler.interval_seconds)
    # Service is started via the FastAPI application in main.py
"""

__version__ = "0.1.0"
__author__ = "Crowd Monitor Project"

__all__ = [
    "__version__",
]
