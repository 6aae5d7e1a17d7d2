"""K-means clustering.

Farthest-point seeding followed by alternating assignment and update phases,
run either on a paced task or one phase at a time.
"""

from .app.controller import KMeansClusterer
from .domain.datasets import DATASETS
from .domain.types import ClusteringPhase, KMeansConfig

__all__ = ["KMeansClusterer", "ClusteringPhase", "KMeansConfig", "DATASETS"]
