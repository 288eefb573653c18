"""
Services Module
===============

Read-side services over the time-series store.
"""

from crowd_monitor.services.summary import SummaryService
from crowd_monitor.services.query import QueryService

__all__ = ["QueryService", "SummaryService"]
