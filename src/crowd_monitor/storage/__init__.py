"""
Storage Module
==============

Append-only time-series storage for classified readings.

Components:
    - TimeSeriesStore: Backend protocol
    - InMemoryTimeSeriesStore: Process-local backend (default)
    - SQLiteTimeSeriesStore: Durable file-backed backend
    - create_store: Backend selection from configuration
"""

import logging
from typing import Optional

from crowd_monitor.config import StoreConfig
from crowd_monitor.errors import ConfigurationError
from crowd_monitor.storage.base import Clock, TimeSeriesStore
from crowd_monitor.storage.memory import InMemoryTimeSeriesStore
from crowd_monitor.storage.sqlite import SQLiteTimeSeriesStore


logger = logging.getLogger(__name__)


def create_store(config: StoreConfig, clock: Optional[Clock] = None) -> TimeSeriesStore:
    """
    Create the configured store backend.

    Raises:
        ConfigurationError: unknown backend name
        PersistenceError: the SQLite database cannot be opened
    """
    backend = config.backend.lower()

    if backend == "memory":
        logger.info("Using InMemoryTimeSeriesStore")
        return InMemoryTimeSeriesStore(clock=clock)

    if backend == "sqlite":
        logger.info(f"Using SQLiteTimeSeriesStore: path={config.sqlite_path}")
        return SQLiteTimeSeriesStore(config.sqlite_path, clock=clock)

    raise ConfigurationError(f"Unknown store backend: {config.backend}")


__all__ = [
    "TimeSeriesStore",
    "InMemoryTimeSeriesStore",
    "SQLiteTimeSeriesStore",
    "create_store",
]
