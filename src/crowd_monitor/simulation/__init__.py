"""
Simulation Module
=================

Synthetic activity generation for the crowd pipeline.

Components:
    - RandomSource: Protocol for injectable uniform random sources
    - ActivitySimulator: One Signal per zone per tick
"""

from crowd_monitor.simulation.simulator import ActivitySimulator, RandomSource

__all__ = ["ActivitySimulator", "RandomSource"]
