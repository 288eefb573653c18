"""
SQLite Time-Series Store
========================

Durable implementation of the TimeSeriesStore contract on SQLite.

Schema:
    readings(zone_id, zone_name, population, density, cluster,
             capacity, status, timestamp)
    PRIMARY KEY (zone_id, timestamp)

Each append is one transaction, so a tick's readings become visible
together or not at all. The connection is shared between the tick
thread and request handlers and serialized by a lock.
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional, Sequence

from crowd_monitor.errors import PersistenceError
from crowd_monitor.models.reading import ClassifiedReading, CrowdStatus
from crowd_monitor.storage.base import Clock, default_clock


logger = logging.getLogger(__name__)


_COLUMNS = (
    "zone_id, zone_name, population, density, cluster, capacity, status, timestamp"
)


class SQLiteTimeSeriesStore:
    """
    Append-only store backed by a SQLite database file.

    Example:
        store = SQLiteTimeSeriesStore("./data/crowd_readings.db")
        store.append(readings)
        store.close()
    """

    def __init__(self, db_path: str = ":memory:", clock: Optional[Clock] = None) -> None:
        """
        Open (or create) the database.

        Args:
            db_path: Database file, or ":memory:"
            clock: Returns "now" in UNIX seconds for history windows

        Raises:
            PersistenceError: if the database cannot be opened
        """
        self.db_path = db_path
        self._clock = clock or default_clock
        self._lock = threading.Lock()

        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._create_tables()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(
                f"Cannot open SQLite store at {db_path}: {e}",
                operation="open",
            ) from e

        logger.info(f"SQLiteTimeSeriesStore opened: {db_path}")

    def _create_tables(self) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS readings (
                    zone_id TEXT NOT NULL,
                    zone_name TEXT NOT NULL,
                    population INTEGER NOT NULL CHECK (population >= 0),
                    density INTEGER NOT NULL CHECK (density >= 0),
                    cluster INTEGER NOT NULL CHECK (cluster >= 0),
                    capacity INTEGER NOT NULL,
                    status TEXT NOT NULL,
                    timestamp REAL NOT NULL,
                    PRIMARY KEY (zone_id, timestamp)
                )
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_readings_timestamp ON readings(timestamp)"
            )

    def append(self, readings: Sequence[ClassifiedReading]) -> None:
        """
        Insert one tick's readings in a single transaction.

        Raises:
            PersistenceError: on any SQLite error (batch rolled back)
        """
        if not readings:
            return

        rows = [
            (
                r.zone_id,
                r.zone_name,
                r.population,
                r.density,
                r.cluster,
                r.capacity,
                r.status.value,
                r.timestamp,
            )
            for r in readings
        ]

        try:
            with self._lock, self._conn:
                self._conn.executemany(
                    f"INSERT INTO readings ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    rows,
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"Append failed: {e}", operation="append") from e

        logger.debug(f"Appended {len(rows)} readings to {self.db_path}")

    def latest_per_zone(self) -> List[ClassifiedReading]:
        query = f"""
            SELECT {', '.join('r.' + c.strip() for c in _COLUMNS.split(','))}
            FROM readings r
            JOIN (
                SELECT zone_id, MAX(timestamp) AS latest, MIN(rowid) AS first_seen
                FROM readings
                GROUP BY zone_id
            ) m ON r.zone_id = m.zone_id AND r.timestamp = m.latest
            ORDER BY m.first_seen
        """
        return self._select(query, (), operation="latest_per_zone")

    def history(self, zone_id: str, duration_seconds: float) -> List[ClassifiedReading]:
        """Readings in [now - duration, now], ascending. Unknown zone -> []."""
        now = self._clock()
        query = f"""
            SELECT {_COLUMNS}
            FROM readings
            WHERE zone_id = ? AND timestamp >= ? AND timestamp <= ?
            ORDER BY timestamp ASC
        """
        return self._select(query, (zone_id, now - duration_seconds, now), operation="history")

    def count(self) -> int:
        try:
            with self._lock:
                row = self._conn.execute("SELECT COUNT(*) FROM readings").fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Count failed: {e}", operation="count") from e
        return int(row[0])

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.info(f"SQLiteTimeSeriesStore closed: {self.db_path}")

    def _select(self, query: str, params: tuple, operation: str) -> List[ClassifiedReading]:
        try:
            with self._lock:
                rows = self._conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"{operation} failed: {e}", operation=operation) from e
        return [_row_to_reading(row) for row in rows]


def _row_to_reading(row: sqlite3.Row) -> ClassifiedReading:
    return ClassifiedReading(
        zone_id=row["zone_id"],
        zone_name=row["zone_name"],
        population=row["population"],
        density=row["density"],
        cluster=row["cluster"],
        capacity=row["capacity"],
        status=CrowdStatus(row["status"]),
        timestamp=row["timestamp"],
    )
