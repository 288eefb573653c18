"""
Crowd Monitor Configuration
===========================

This module handles configuration loading for the crowd monitor.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    CROWD_TICK_INTERVAL    -> scheduler.interval_seconds
    CROWD_STORE_BACKEND    -> store.backend
    CROWD_SQLITE_PATH      -> store.sqlite_path
    CROWD_EPSILON          -> clustering.epsilon
    CROWD_MIN_POINTS       -> clustering.min_points
    CROWD_SEED             -> simulator.seed
    CROWD_CORS_ORIGIN      -> server.cors_origins (comma separated)
    CROWD_PORT             -> server.port
    CROWD_LOG_LEVEL        -> logging.level
    PORT                   -> server.port (container platforms)

Example:
    from crowd_monitor.config import settings

    print(settings.service.name)
    print(settings.clustering.epsilon)
    print([zone.id for zone in settings.zones])
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from crowd_monitor.errors import ConfigurationError


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServiceConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="crowd-monitor", description="Service name")
    version: str = Field(default="v0.1.0", description="API version")


class ZoneConfig(BaseModel):
    """
    Static zone definition.

    Capacity is deliberately unconstrained here; the zone registry
    rejects non-positive values with a ConfigurationError at startup.
    """

    id: str = Field(..., min_length=1, description="Unique zone identifier")
    name: str = Field(..., description="Display name")
    capacity: int = Field(..., description="Maximum comfortable population")


DEFAULT_ZONES: List[ZoneConfig] = [
    ZoneConfig(id="AB1", name="AB1", capacity=5880),
    ZoneConfig(id="AB2", name="AB2", capacity=250),
    ZoneConfig(id="AB3", name="AB3", capacity=5880),
    ZoneConfig(id="AB4", name="AB4", capacity=5880),
    ZoneConfig(id="Library", name="Library", capacity=300),
    ZoneConfig(id="Admin", name="Admin Block", capacity=250),
    ZoneConfig(id="North", name="North Square", capacity=200),
    ZoneConfig(id="Gazebo", name="Gazebo", capacity=200),
    ZoneConfig(id="MBA", name="MBA Amphitheater", capacity=150),
]


class SimulatorConfig(BaseModel):
    """Activity simulator configuration."""

    base_occupancy_fraction: float = Field(
        default=0.3,
        ge=0,
        description="Fraction of capacity always present",
    )
    variance_fraction: float = Field(
        default=0.5,
        ge=0,
        description="Maximum random extra occupancy as a fraction of capacity",
    )
    coordinate_extent: float = Field(
        default=100.0,
        gt=0,
        description="Coordinates are drawn uniformly from [0, extent)^2",
    )
    seed: Optional[int] = Field(
        default=None,
        description="Seed for the random source (None = nondeterministic)",
    )


class ClusteringConfig(BaseModel):
    """DBSCAN parameters."""

    epsilon: float = Field(default=30.0, gt=0, description="Neighborhood radius")
    min_points: int = Field(
        default=2,
        ge=2,
        description="Minimum neighborhood size (including self) for a core point",
    )


class ThresholdsConfig(BaseModel):
    """Occupancy percentage thresholds for crowd status."""

    overcrowded: float = Field(default=85.0, ge=0, description="OVERCROWDED above this %")
    moderate: float = Field(default=60.0, ge=0, description="MODERATE above this %")


class SchedulerConfig(BaseModel):
    """Periodic tick driver configuration."""

    interval_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Seconds between ticks",
    )
    stop_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Maximum wait for an in-flight tick on shutdown",
    )


class StoreConfig(BaseModel):
    """Time-series store configuration."""

    backend: str = Field(
        default="memory",
        description="Store backend: 'memory' or 'sqlite'",
    )
    sqlite_path: str = Field(
        default="./data/crowd_readings.db",
        description="SQLite database path (sqlite backend only)",
    )


class BroadcastConfig(BaseModel):
    """Broadcast hub configuration."""

    max_pending_snapshots: int = Field(
        default=8,
        ge=1,
        description="Per-subscriber queue size (drops oldest on overflow)",
    )


class QueryConfig(BaseModel):
    """History query bounds."""

    default_history_minutes: float = Field(default=15.0, gt=0)
    max_history_minutes: float = Field(default=24 * 60.0, gt=0)


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=5000, ge=1, le=65535, description="Bind port")
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000"],
        description="Allowed CORS origins",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the crowd monitor.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    service: ServiceConfig = Field(default_factory=ServiceConfig)
    zones: List[ZoneConfig] = Field(default_factory=lambda: list(DEFAULT_ZONES))
    simulator: SimulatorConfig = Field(default_factory=SimulatorConfig)
    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    thresholds: ThresholdsConfig = Field(default_factory=ThresholdsConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    broadcast: BroadcastConfig = Field(default_factory=BroadcastConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, checks CROWD_CONFIG_PATH
            and then common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        ConfigurationError: a value fails validation
    """
    if config_path is None:
        config_path = os.environ.get("CROWD_CONFIG_PATH")

    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    try:
        return Settings.model_validate(config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Scheduler
    if env_interval := os.environ.get("CROWD_TICK_INTERVAL"):
        config_data.setdefault("scheduler", {})["interval_seconds"] = float(env_interval)

    # Store
    if env_backend := os.environ.get("CROWD_STORE_BACKEND"):
        config_data.setdefault("store", {})["backend"] = env_backend
    if env_sqlite := os.environ.get("CROWD_SQLITE_PATH"):
        config_data.setdefault("store", {})["sqlite_path"] = env_sqlite

    # Clustering
    if env_eps := os.environ.get("CROWD_EPSILON"):
        config_data.setdefault("clustering", {})["epsilon"] = float(env_eps)
    if env_min := os.environ.get("CROWD_MIN_POINTS"):
        config_data.setdefault("clustering", {})["min_points"] = int(env_min)

    # Simulator
    if env_seed := os.environ.get("CROWD_SEED"):
        config_data.setdefault("simulator", {})["seed"] = int(env_seed)

    # Server settings (container platforms use PORT)
    if env_cors := os.environ.get("CROWD_CORS_ORIGIN"):
        config_data.setdefault("server", {})["cors_origins"] = [
            origin.strip() for origin in env_cors.split(",") if origin.strip()
        ]
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("CROWD_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging
    if env_log := os.environ.get("CROWD_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
