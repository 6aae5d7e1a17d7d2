"""Core type definitions for the k-means clusterer."""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

Point = Tuple[float, float]


class ClusteringPhase(Enum):
    """Phases of one k-means iteration."""
    IDLE = "idle"
    ASSIGNMENT = "assignment"  # Assigning points to nearest centroid
    UPDATE = "update"          # Moving centroids to cluster means


@dataclass
class KMeansConfig:
    """Configuration for the k-means clusterer."""
    k: int = 3
    max_iterations: int = 10
    speed: float = 1.5  # seconds per phase in continuous mode
    dataset: str = "blobs"
    point_count: int = 100


@dataclass(frozen=True)
class KMeansSnapshot:
    """Immutable view of the clusterer's observable state."""
    state: str
    phase: ClusteringPhase
    dataset: str
    k: int
    iteration: int
    converged: bool
    inertia: float
    points: Tuple[Point, ...]
    assignments: Tuple[int, ...]
    centroids: Tuple[Point, ...]
    cluster_sizes: Tuple[int, ...]
