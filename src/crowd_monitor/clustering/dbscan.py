"""
Spatial Clusterer
=================

Density-based spatial clustering (DBSCAN) over one tick of signals.

Definitions:
    neighborhood(p) = { q : ||p - q|| <= epsilon }   (p itself included)
    core point      = |neighborhood(p)| >= min_points
    border point    = non-core point inside a core point's neighborhood
    noise           = point not density-reachable from any core point

Ordering:
    Points are visited in input index order and clusters are opened in
    that order by sklearn.cluster.DBSCAN. A border point
    shared by two clusters therefore belongs to the cluster whose core
    point has the lowest index. Cluster ids are assigned 1, 2, ... in
    the order clusters are opened. The result is fully determined by
    the coordinates, epsilon and min_points.

Labels:
    Internally noise is ``None``. ``ClusterAssignment.wire_label`` maps
    noise to NOISE_LABEL (0) for the persisted and broadcast format.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
from sklearn.cluster import DBSCAN

from crowd_monitor.models.reading import NOISE_LABEL
from crowd_monitor.models.signal import Signal


logger = logging.getLogger(__name__)


SKLEARN_NOISE = -1


@dataclass(frozen=True, slots=True)
class ClusterAssignment:
    """
    Cluster labels for one tick.

    Attributes:
        labels: Per input index, a 1-based cluster id or None for noise
        cluster_count: Number of clusters found
    """

    labels: Tuple[Optional[int], ...]
    cluster_count: int

    def wire_label(self, index: int) -> int:
        """Label at ``index`` in persisted form (0 = noise)."""
        label = self.labels[index]
        return NOISE_LABEL if label is None else label

    @property
    def noise_count(self) -> int:
        return sum(1 for label in self.labels if label is None)

    def members(self, cluster_id: int) -> List[int]:
        """Input indices assigned to ``cluster_id``."""
        return [i for i, label in enumerate(self.labels) if label == cluster_id]


class DBSCANClusterer:
    """
    DBSCAN over 2-D points.

    Attributes:
        epsilon: Neighborhood radius (Euclidean, inclusive)
        min_points: Minimum neighborhood size for a core point, self included

    Example:
        clusterer = DBSCANClusterer(epsilon=30.0, min_points=2)
        assignment = clusterer.fit([(0, 0), (5, 5), (90, 90)])
        assignment.labels  # (1, 1, None)
    """

    def __init__(self, epsilon: float = 30.0, min_points: int = 2) -> None:
        """
        Initialize clusterer.

        Args:
            epsilon: Neighborhood radius, > 0
            min_points: Core point threshold, >= 2 (a lone point is
                never a cluster)
        """
        if epsilon <= 0:
            raise ValueError("epsilon must be positive")
        if min_points < 2:
            raise ValueError("min_points must be >= 2")

        self.epsilon = epsilon
        self.min_points = min_points

        logger.info(
            f"DBSCANClusterer initialized: epsilon={epsilon}, min_points={min_points}"
        )

    def cluster_signals(self, signals: Sequence[Signal]) -> ClusterAssignment:
        """Cluster a tick's signals by their coordinates."""
        return self.fit([signal.coordinate for signal in signals])

    def fit(self, points: Sequence[Tuple[float, float]]) -> ClusterAssignment:
        """
        Cluster points.

        Args:
            points: 2-D coordinates in input index order

        Returns:
            ClusterAssignment aligned with ``points``
        """
        n = len(points)
        if n < 2:
            return ClusterAssignment(labels=(None,) * n, cluster_count=0)

        raw = DBSCAN(eps=self.epsilon, min_samples=self.min_points).fit_predict(
            np.asarray(points, dtype=float)
        )

        # sklearn: -1 is noise, clusters are 0-based
        labels = tuple(None if label == SKLEARN_NOISE else int(label) + 1 for label in raw)

        assignment = ClusterAssignment(labels=labels, cluster_count=int(raw.max()) + 1)
        logger.debug(
            f"DBSCAN: points={n}, clusters={assignment.cluster_count}, "
            f"noise={assignment.noise_count}"
        )
        return assignment
