"""
Clustering Module
=================

Density-based spatial clustering of zone coordinates.
"""

from crowd_monitor.clustering.dbscan import ClusterAssignment, DBSCANClusterer

__all__ = ["ClusterAssignment", "DBSCANClusterer"]
