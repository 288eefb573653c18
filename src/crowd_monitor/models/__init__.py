"""
Data Models
===========

Data models for the crowd monitor.

Models:
    Zone:
        - Zone: Static zone definition
        - ZoneRegistry: Validated, read-only zone catalog

    Pipeline:
        - Signal: Ephemeral per-zone activity reading
        - ClassifiedReading: Persisted classified reading
        - CrowdStatus: normal / moderate / overcrowded
        - Summary: System-wide aggregate

    Output:
        - ReadingPayload, LatestZonesResponse, HistoryResponse,
          SummaryResponse, SnapshotResponse, HealthResponse
"""

from crowd_monitor.models.zone import Zone, ZoneRegistry
from crowd_monitor.models.signal import Signal
from crowd_monitor.models.reading import (
    NOISE_LABEL,
    ClassifiedReading,
    CrowdStatus,
    Summary,
)
from crowd_monitor.models.output import (
    ErrorResponse,
    HealthResponse,
    HistoryResponse,
    LatestZonesResponse,
    ReadingPayload,
    SnapshotResponse,
    SummaryPayload,
    SummaryResponse,
)

__all__ = [
    # Zone
    "Zone",
    "ZoneRegistry",
    # Pipeline
    "Signal",
    "ClassifiedReading",
    "CrowdStatus",
    "Summary",
    "NOISE_LABEL",
    # Output
    "ReadingPayload",
    "LatestZonesResponse",
    "HistoryResponse",
    "SummaryPayload",
    "SummaryResponse",
    "SnapshotResponse",
    "HealthResponse",
    "ErrorResponse",
]
