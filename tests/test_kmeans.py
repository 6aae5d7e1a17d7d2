"""Tests for the k-means steps and the clustering datasets."""

import numpy as np
import pytest

from mllab.kmeans.domain import kmeans
from mllab.kmeans.domain.datasets import BLOB_CENTERS, BLOB_SPREAD, generate_dataset, make_blobs, make_uniform
from mllab.utils.rng import SeededRNG


class TestSteps:
    def test_assign_to_nearest(self):
        points = np.array([[0.0, 0.0], [0.9, 1.0], [0.2, 0.1]])
        centroids = np.array([[0.0, 0.0], [1.0, 1.0]])
        assert list(kmeans.assign(points, centroids)) == [0, 1, 0]

    def test_assign_ties_go_to_lower_index(self):
        points = np.array([[0.5, 0.0]])
        centroids = np.array([[0.0, 0.0], [1.0, 0.0]])
        assert list(kmeans.assign(points, centroids)) == [0]

    def test_update_moves_to_mean(self):
        points = np.array([[0.0, 0.0], [1.0, 1.0], [4.0, 4.0]])
        updated = kmeans.update_centroids(points, np.array([0, 0, 1]), np.array([[0.0, 0.0], [3.0, 3.0]]))
        assert np.allclose(updated, [[0.5, 0.5], [4.0, 4.0]])

    def test_empty_cluster_keeps_position(self):
        points = np.array([[0.0, 0.0], [1.0, 1.0]])
        centroids = np.array([[0.0, 0.0], [5.0, 5.0]])
        updated = kmeans.update_centroids(points, np.array([0, 0]), centroids)
        assert np.allclose(updated, [[0.5, 0.5], [5.0, 5.0]])
        assert np.allclose(centroids, [[0.0, 0.0], [5.0, 5.0]])

    def test_update_never_increases_inertia(self):
        rng = np.random.default_rng(0)
        points = rng.random((60, 2))
        centroids = rng.random((4, 2))
        assignments = kmeans.assign(points, centroids)

        before = kmeans.inertia(points, assignments, centroids)
        after = kmeans.inertia(points, assignments, kmeans.update_centroids(points, assignments, centroids))
        assert after <= before

    def test_inertia_skips_unassigned(self):
        points = np.array([[0.0, 0.0], [3.0, 4.0]])
        centroids = np.array([[0.0, 0.0]])
        assert kmeans.inertia(points, np.array([0, 0]), centroids) == 25.0
        assert kmeans.inertia(points, np.array([0, kmeans.UNASSIGNED]), centroids) == 0.0
        assert kmeans.inertia(points, np.array([kmeans.UNASSIGNED] * 2), centroids) == 0.0

    def test_cluster_sizes(self):
        sizes = kmeans.cluster_sizes(np.array([0, 2, 2, kmeans.UNASSIGNED]), 3)
        assert list(sizes) == [1, 0, 2]

    def test_seeding_picks_farthest_points(self):
        points = np.array([[0.0, 0.0], [0.1, 0.0], [1.0, 1.0], [0.5, 0.6]])
        seeds = kmeans.farthest_point_seeding(points, 2, SeededRNG(4))

        assert len(seeds) == 2
        assert any(np.array_equal(seeds[0], p) for p in points)
        distances = np.linalg.norm(points - seeds[0], axis=1)
        assert np.array_equal(seeds[1], points[int(np.argmax(distances))])

    def test_seeding_three_blobs_puts_one_seed_in_each(self):
        points, labels = make_blobs(99, SeededRNG(2))
        seeds = kmeans.farthest_point_seeding(points, 3, SeededRNG(2))
        nearest_center = kmeans.assign(seeds, np.array(BLOB_CENTERS))
        assert sorted(nearest_center) == [0, 1, 2]

    def test_seeding_without_points(self):
        assert kmeans.farthest_point_seeding(np.zeros((0, 2)), 3).shape == (0, 2)

    def test_stable_clusters_converge_after_one_iteration(self):
        points = np.array([[0.0, 0.0], [0.0, 0.1], [5.0, 5.0], [5.0, 5.1]])
        centroids = np.array([[0.0, 0.0], [5.0, 5.0]])

        first = kmeans.assign(points, centroids)
        centroids = kmeans.update_centroids(points, first, centroids)
        second = kmeans.assign(points, centroids)

        assert np.array_equal(first, second)
        assert np.allclose(centroids, [[0.0, 0.05], [5.0, 5.05]])


class TestDatasets:
    def test_blobs_split_and_spread(self):
        points, labels = make_blobs(100, SeededRNG(0))
        assert points.shape == (100, 2)
        assert list(np.bincount(labels)) == [34, 33, 33]
        for label, center in enumerate(BLOB_CENTERS):
            offsets = np.abs(points[labels == label] - np.array(center))
            assert np.all(offsets <= BLOB_SPREAD)

    def test_uniform_has_no_labels(self):
        points, labels = make_uniform(50, SeededRNG(0))
        assert points.shape == (50, 2)
        assert np.all((points >= 0.1) & (points <= 0.9))
        assert np.all(labels == -1)

    def test_generate_by_name(self):
        points, _ = generate_dataset("random", 10, SeededRNG(0))
        assert len(points) == 10

    def test_unknown_dataset_raises(self):
        with pytest.raises(ValueError):
            generate_dataset("spirals", 10)

    def test_negative_count_raises(self):
        with pytest.raises(ValueError):
            generate_dataset("blobs", -5)

    def test_empty_dataset(self):
        points, labels = generate_dataset("blobs", 0, SeededRNG(0))
        assert points.shape == (0, 2)
        assert len(labels) == 0
