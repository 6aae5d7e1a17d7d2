"""Synthetic point sets for clustering."""

from typing import Callable, Dict, Optional, Tuple
import numpy as np

from ...utils.rng import SeededRNG

BLOB_CENTERS = ((0.3, 0.3), (0.7, 0.7), (0.3, 0.7))
BLOB_SPREAD = 0.1

Dataset = Tuple[np.ndarray, np.ndarray]


def make_blobs(n: int = 100, rng: Optional[SeededRNG] = None) -> Dataset:
    """
    Three well separated square blobs around BLOB_CENTERS.

    Points are split as evenly as possible, earlier blobs taking the remainder,
    and labelled with the index of the blob that generated them.
    """
    rng = rng or SeededRNG()
    counts = [n // len(BLOB_CENTERS) + (1 if i < n % len(BLOB_CENTERS) else 0)
              for i in range(len(BLOB_CENTERS))]

    points = []
    labels = []
    for label, ((cx, cy), count) in enumerate(zip(BLOB_CENTERS, counts)):
        offsets = rng.uniform(-BLOB_SPREAD, BLOB_SPREAD, size=2 * count).reshape(count, 2)
        points.append(offsets + np.array([cx, cy]))
        labels.extend([label] * count)

    return np.vstack(points) if points else np.zeros((0, 2)), np.array(labels, dtype=int)


def make_uniform(n: int = 100, rng: Optional[SeededRNG] = None) -> Dataset:
    """Points spread uniformly over [0.1, 0.9]^2, with no generating structure (labels -1)."""
    rng = rng or SeededRNG()
    points = rng.uniform(0.1, 0.9, size=2 * n).reshape(n, 2)
    return points, np.full(n, -1, dtype=int)


DATASETS: Dict[str, Callable[..., Dataset]] = {
    "blobs": make_blobs,
    "random": make_uniform,
}


def generate_dataset(name: str, n: int = 100, rng: Optional[SeededRNG] = None) -> Dataset:
    """
    Build the named dataset.

    Raises:
        ValueError: If the name is unknown or n is negative
    """
    if name not in DATASETS:
        raise ValueError(f"Unknown dataset {name!r}, expected one of {sorted(DATASETS)}")
    if n < 0:
        raise ValueError(f"Point count must not be negative, got {n}")
    return DATASETS[name](n, rng)
