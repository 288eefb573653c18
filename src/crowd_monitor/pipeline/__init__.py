"""
Pipeline Module
===============

The simulate → cluster → classify → persist → broadcast tick.

Components:
    - SnapshotBuilder: simulate → cluster → classify (no side effects)
    - TickPipeline: one tick including append and publish
    - TickScheduler: periodic driver with start()/stop()
"""

from crowd_monitor.pipeline.snapshot import SnapshotBuilder
from crowd_monitor.pipeline.tick import TickPipeline, TickResult
from crowd_monitor.pipeline.scheduler import TickScheduler

__all__ = ["SnapshotBuilder", "TickPipeline", "TickResult", "TickScheduler"]
