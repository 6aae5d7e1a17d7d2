"""Lloyd's k-means steps over 2-D points held in numpy arrays."""

from typing import Optional
import numpy as np

from ...utils.rng import SeededRNG

UNASSIGNED = -1


def _distances(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Euclidean distance matrix, shape (n_points, n_centroids)."""
    diff = points[:, np.newaxis, :] - centroids[np.newaxis, :, :]
    return np.sqrt(np.sum(diff * diff, axis=2))


def farthest_point_seeding(points: np.ndarray, k: int, rng: Optional[SeededRNG] = None) -> np.ndarray:
    """
    Pick k initial centroids among the points.

    The first is a uniformly random point; each next one is the point whose
    distance to its nearest chosen centroid is largest (first such point on ties).
    """
    if len(points) == 0 or k <= 0:
        return np.zeros((0, 2))

    rng = rng or SeededRNG()
    chosen = [points[rng.randint(0, len(points) - 1)]]

    for _ in range(1, k):
        min_dist = _distances(points, np.array(chosen)).min(axis=1)
        chosen.append(points[int(np.argmax(min_dist))])

    return np.array(chosen, dtype=float)


def assign(points: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Index of the nearest centroid for every point; ties go to the lower index."""
    if len(points) == 0 or len(centroids) == 0:
        return np.full(len(points), UNASSIGNED, dtype=int)
    return np.argmin(_distances(points, centroids), axis=1).astype(int)


def update_centroids(points: np.ndarray, assignments: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Move every centroid to the mean of its points. Empty clusters stay where they are."""
    updated = np.array(centroids, dtype=float, copy=True)
    for cluster_id in range(len(updated)):
        members = points[assignments == cluster_id]
        if len(members):
            updated[cluster_id] = members.mean(axis=0)
    return updated


def inertia(points: np.ndarray, assignments: np.ndarray, centroids: np.ndarray) -> float:
    """Sum of squared distances from each assigned point to its centroid."""
    mask = assignments != UNASSIGNED
    if not mask.any():
        return 0.0
    diff = points[mask] - centroids[assignments[mask]]
    return float(np.sum(diff * diff))


def cluster_sizes(assignments: np.ndarray, k: int) -> np.ndarray:
    """Number of points assigned to each of the k clusters."""
    assigned = assignments[assignments != UNASSIGNED]
    return np.bincount(assigned, minlength=k)[:k]
