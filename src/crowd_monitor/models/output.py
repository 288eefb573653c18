"""
API Output Models
=================

This module defines the response contracts of the crowd monitor REST API.

Response Contracts:
    GET /api/zones
        {"success": true, "data": [<reading>...], "timestamp": 1770500938.2}

    GET /api/history/{zone_id}?minutes=15
        {"success": true, "zoneId": "AB1", "data": [<reading>...], "count": 12}

    GET /api/summary
        {"success": true, "summary": {"totalPopulation": 9312,
         "activeZones": 9, "overcrowdedZones": 2, "totalZones": 9}}

    GET /health
        {"status": "OK", "timestamp": 1770500938.2, "uptime": 120.4}

Field names are snake_case in Python and camelCase on the wire
(serialize with ``model_dump(by_alias=True)``).
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from crowd_monitor.models.reading import ClassifiedReading, CrowdStatus, Summary


class ReadingPayload(BaseModel):
    """One classified zone reading as exposed to clients."""

    model_config = ConfigDict(populate_by_name=True)

    zone_id: str = Field(..., alias="zoneId")
    zone_name: str = Field(..., alias="zoneName")
    population: int = Field(..., ge=0)
    density: int = Field(..., ge=0)
    cluster: int = Field(
        ...,
        ge=0,
        description="1-based cluster id, 0 for noise",
    )
    capacity: int = Field(..., gt=0)
    status: CrowdStatus
    timestamp: float

    @classmethod
    def from_reading(cls, reading: ClassifiedReading) -> "ReadingPayload":
        return cls(
            zone_id=reading.zone_id,
            zone_name=reading.zone_name,
            population=reading.population,
            density=reading.density,
            cluster=reading.cluster,
            capacity=reading.capacity,
            status=reading.status,
            timestamp=reading.timestamp,
        )


class LatestZonesResponse(BaseModel):
    """Latest reading per zone."""

    success: bool = True
    data: List[ReadingPayload]
    timestamp: float = Field(..., description="Server time of the response")


class HistoryResponse(BaseModel):
    """Readings for one zone inside a time window, ascending."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    zone_id: str = Field(..., alias="zoneId")
    data: List[ReadingPayload]
    count: int = Field(..., ge=0)
    minutes: float = Field(
        ...,
        gt=0,
        description="Window actually applied, after clamping to the maximum",
    )


class SummaryPayload(BaseModel):
    """System-wide totals."""

    model_config = ConfigDict(populate_by_name=True)

    total_population: int = Field(..., ge=0, alias="totalPopulation")
    active_zones: int = Field(..., ge=0, alias="activeZones")
    overcrowded_zones: int = Field(..., ge=0, alias="overcrowdedZones")
    total_zones: int = Field(..., ge=0, alias="totalZones")

    @classmethod
    def from_summary(cls, summary: Summary) -> "SummaryPayload":
        return cls(
            total_population=summary.total_population,
            active_zones=summary.active_zone_count,
            overcrowded_zones=summary.overcrowded_zone_count,
            total_zones=summary.total_zone_count,
        )


class SummaryResponse(BaseModel):
    success: bool = True
    summary: SummaryPayload


class SnapshotResponse(BaseModel):
    """A fresh, non-persisted snapshot (on-demand refresh)."""

    success: bool = True
    data: List[ReadingPayload]


class HealthResponse(BaseModel):
    """Liveness probe payload."""

    status: str = "OK"
    timestamp: float
    uptime: float = Field(..., ge=0, description="Seconds since startup")


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
