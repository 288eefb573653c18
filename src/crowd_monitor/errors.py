"""
Error Taxonomy
==============

Exceptions raised by the crowd monitor.

    CrowdMonitorError
        ├── ConfigurationError  (fatal, raised before startup completes)
        └── PersistenceError    (recoverable, raised by store backends)

Pipeline stages (simulator, clusterer, classifier) do not raise for
valid input. Unknown zones in history queries are not errors.
"""


class CrowdMonitorError(Exception):
    """Base class for all crowd monitor errors."""


class ConfigurationError(CrowdMonitorError):
    """Invalid static configuration (zones, clustering parameters)."""


class PersistenceError(CrowdMonitorError):
    """Store append or query failure."""

    def __init__(self, message: str, operation: str = "unknown") -> None:
        super().__init__(message)
        self.operation = operation
