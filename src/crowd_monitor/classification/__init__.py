"""
Classification Module
=====================

Crowd status tiers and density scores.
"""

from crowd_monitor.classification.classifier import (
    CrowdClassifier,
    classify_status,
    compute_density,
)

__all__ = ["CrowdClassifier", "classify_status", "compute_density"]
