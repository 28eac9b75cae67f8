"""
Unit tests for k-means, elbow k selection and silhouette score.

Tests clustering outcomes on synthetic vectors with fixed seeds and
asserts on partitions rather than exact centroid values.
"""

import math
import unittest

import numpy as np

from text_clustering.kmeans import _assign_to_clusters, find_optimal_k, k_means, silhouette_score
from text_clustering.models import TermVector


def make_vector(doc_id, weights):
    return TermVector(
        id=doc_id,
        weights=dict(weights),
        magnitude=math.sqrt(sum(w * w for w in weights.values()))
    )


def grouped_vectors(groups, copies):
    """Identical copies of one vector per group: group g uses term t{g}."""
    vectors = []
    for g in range(groups):
        for c in range(copies):
            vectors.append(make_vector(f"g{g}-{c}", {f"t{g}": 1.0}))
    vocabulary = [f"t{g}" for g in range(groups)]
    return vectors, vocabulary


def partition(result):
    """Set of frozensets of member ids, independent of cluster order."""
    return {frozenset(cluster.member_ids) for cluster in result.clusters}


class TestKMeans(unittest.TestCase):
    """Test k_means()."""

    def setUp(self):
        """Set up test fixtures."""
        self.vectors, self.vocabulary = grouped_vectors(groups=3, copies=4)
        self.expected = {
            frozenset(f"g{g}-{c}" for c in range(4)) for g in range(3)
        }

    def test_separates_groups(self):
        """Test k-means recovers well separated groups."""
        result = k_means(self.vectors, self.vocabulary, 3, random_state=7)

        self.assertEqual(partition(result), self.expected)
        self.assertAlmostEqual(result.total_inertia, 0.0, places=10)
        self.assertGreaterEqual(result.iterations, 1)
        self.assertLessEqual(result.iterations, 100)

    def test_assignments_match_members(self):
        """Test every id is in exactly one cluster and assignments agree."""
        result = k_means(self.vectors, self.vocabulary, 3, random_state=3)

        seen = []
        for index, cluster in enumerate(result.clusters):
            for member_id in cluster.member_ids:
                seen.append(member_id)
                self.assertEqual(result.assignments[member_id], index)

        self.assertEqual(sorted(seen), sorted(v.id for v in self.vectors))
        self.assertEqual(len(result.assignments), len(self.vectors))

    def test_single_cluster(self):
        """Test k=1 puts everything in one cluster around the mean."""
        vectors = [
            make_vector("a", {"x": 1.0}),
            make_vector("b", {"x": 3.0, "y": 1.0}),
            make_vector("c", {"y": 2.0}),
        ]
        vocabulary = ["x", "y"]

        result = k_means(vectors, vocabulary, 1, random_state=0)

        self.assertEqual(len(result.clusters), 1)
        self.assertEqual(sorted(result.clusters[0].member_ids), ["a", "b", "c"])

        points = np.array([[1.0, 0.0], [3.0, 1.0], [0.0, 2.0]])
        mean = points.mean(axis=0)
        expected_inertia = float(np.sum((points - mean) ** 2))

        np.testing.assert_allclose(result.clusters[0].centroid, mean)
        self.assertAlmostEqual(result.total_inertia, expected_inertia)
        self.assertAlmostEqual(result.clusters[0].inertia, expected_inertia)

    def test_k_clamped_to_vector_count(self):
        """Test k larger than the corpus is clamped."""
        vectors = [make_vector("a", {"x": 1.0}), make_vector("b", {"y": 1.0})]

        result = k_means(vectors, ["x", "y"], 10, random_state=0)

        self.assertEqual(len(result.clusters), 2)

    def test_no_empty_clusters_with_duplicates(self):
        """Test duplicate points never surface empty clusters."""
        vectors = [make_vector(f"d{i}", {"same": 1.0}) for i in range(5)]

        for seed in range(5):
            result = k_means(vectors, ["same"], 3, random_state=seed)

            self.assertGreaterEqual(len(result.clusters), 1)
            for cluster in result.clusters:
                self.assertGreater(len(cluster.member_ids), 0)
            self.assertEqual(len(result.assignments), 5)

    def test_empty_input(self):
        """Test empty input and non-positive k return an empty result."""
        for vectors, k in (([], 3), (self.vectors, 0), (self.vectors, -1)):
            result = k_means(vectors, self.vocabulary, k)
            self.assertEqual(result.clusters, [])
            self.assertEqual(result.assignments, {})
            self.assertEqual(result.iterations, 0)
            self.assertEqual(result.total_inertia, 0.0)

    def test_seed_is_reproducible(self):
        """Test the same seed gives the same result."""
        vectors = [
            make_vector(f"v{i}", {"x": float(i % 5), "y": float(i % 3)})
            for i in range(12)
        ]

        first = k_means(vectors, ["x", "y"], 3, random_state=11)
        second = k_means(vectors, ["x", "y"], 3, random_state=11)

        self.assertEqual(first.assignments, second.assignments)
        self.assertEqual(first.total_inertia, second.total_inertia)

    def test_accepts_generator(self):
        """Test a numpy Generator can be passed as random_state."""
        rng = np.random.default_rng(5)
        result = k_means(self.vectors, self.vocabulary, 3, random_state=rng)

        self.assertEqual(partition(result), self.expected)

    def test_stops_early_on_convergence(self):
        """Test separable data converges long before max_iterations."""
        result = k_means(self.vectors, self.vocabulary, 3, max_iterations=100, random_state=7)

        self.assertLessEqual(result.iterations, 3)

    def test_max_iterations_caps_passes(self):
        """Test max_iterations=1 runs exactly one refinement pass."""
        vectors = [
            make_vector(f"v{i}", {"x": float(i % 5), "y": float(i % 3)})
            for i in range(12)
        ]

        result = k_means(vectors, ["x", "y"], 3, max_iterations=1, random_state=4)

        self.assertEqual(result.iterations, 1)
        self.assertEqual(len(result.assignments), 12)


class TestAssignToClusters(unittest.TestCase):
    """Test nearest-centroid assignment."""

    def test_tie_goes_to_lowest_index(self):
        """Test a point equidistant from two centroids joins the first."""
        points = np.array([[0.0, 0.0]])
        centroids = np.array([[1.0, 0.0], [-1.0, 0.0]])

        labels, inertia = _assign_to_clusters(points, centroids)

        self.assertEqual(labels.tolist(), [0])
        self.assertAlmostEqual(inertia, 1.0)

    def test_tie_among_later_centroids(self):
        """Test ties between non-first centroids also pick the lower index."""
        points = np.array([[0.0, 0.0], [5.0, 5.0]])
        centroids = np.array([[5.0, 5.0], [0.0, 2.0], [0.0, -2.0]])

        labels, _ = _assign_to_clusters(points, centroids)

        self.assertEqual(labels.tolist(), [1, 0])


class TestFindOptimalK(unittest.TestCase):
    """Test elbow-based k selection."""

    def test_too_few_vectors(self):
        """Test two or fewer vectors give k=1 without inertias."""
        vectors, vocabulary = grouped_vectors(groups=2, copies=1)

        self.assertEqual(find_optimal_k(vectors, vocabulary, 5), (1, []))
        self.assertEqual(find_optimal_k(vectors[:1], vocabulary, 5), (1, []))

    def test_identical_documents(self):
        """Test a repeated document has no elbow."""
        vectors = [make_vector(f"d{i}", {"python": 0.4, "code": 0.4}) for i in range(5)]

        optimal_k, inertias = find_optimal_k(vectors, ["python", "code"], 3, random_state=0)

        self.assertEqual(optimal_k, 1)
        self.assertEqual(len(inertias), 3)
        for inertia in inertias:
            self.assertAlmostEqual(inertia, 0.0, places=10)

    def test_two_groups(self):
        """Test two separated groups give an elbow at k=2."""
        vectors, vocabulary = grouped_vectors(groups=2, copies=3)

        optimal_k, inertias = find_optimal_k(vectors, vocabulary, 3, random_state=1)

        self.assertEqual(optimal_k, 2)
        self.assertEqual(len(inertias), 3)
        self.assertAlmostEqual(inertias[0], 3.0)
        self.assertAlmostEqual(inertias[1], 0.0, places=10)

    def test_max_k_clamped(self):
        """Test max_k is clamped to n - 1."""
        vectors, vocabulary = grouped_vectors(groups=2, copies=2)

        optimal_k, inertias = find_optimal_k(vectors, vocabulary, 10, random_state=2)

        self.assertEqual(len(inertias), 3)
        self.assertGreaterEqual(optimal_k, 1)
        self.assertLessEqual(optimal_k, 3)

    def test_forces_two_clusters_for_four_documents(self):
        """Test k=1 is bumped to 2 when there are at least four documents."""
        vectors, vocabulary = grouped_vectors(groups=2, copies=2)

        # max_k=2 leaves no interior point on the curve
        optimal_k, inertias = find_optimal_k(vectors, vocabulary, 2, random_state=0)

        self.assertEqual(len(inertias), 2)
        self.assertEqual(optimal_k, 2)


class TestSilhouetteScore(unittest.TestCase):
    """Test silhouette_score()."""

    def setUp(self):
        """Set up test fixtures."""
        self.vectors = [
            make_vector("p1", {"x": 1.0}),
            make_vector("p2", {"x": 2.0}),
            make_vector("p3", {"x": 10.0}),
        ]
        self.vocabulary = ["x"]

    def test_known_value(self):
        """Test silhouette against a hand computed value."""
        score = silhouette_score(
            self.vectors, self.vocabulary, {"p1": 0, "p2": 0, "p3": 1}
        )

        # p1: a=1, b=9; p2: a=1, b=8; p3: singleton a=0, b=8.5
        expected = ((9 - 1) / 9 + (8 - 1) / 8 + 1.0) / 3
        self.assertAlmostEqual(score, expected)

    def test_single_point(self):
        """Test fewer than two points score 0."""
        self.assertEqual(silhouette_score(self.vectors[:1], self.vocabulary, {"p1": 0}), 0.0)
        self.assertEqual(silhouette_score([], self.vocabulary, {}), 0.0)

    def test_single_cluster(self):
        """Test one cluster of distinct points scores -1 (b = 0)."""
        score = silhouette_score(
            self.vectors, self.vocabulary, {"p1": 0, "p2": 0, "p3": 0}
        )
        self.assertAlmostEqual(score, -1.0)

    def test_identical_points_in_one_cluster(self):
        """Test a = b = 0 gives 0."""
        vectors = [make_vector("a", {"x": 1.0}), make_vector("b", {"x": 1.0})]
        self.assertEqual(silhouette_score(vectors, ["x"], {"a": 0, "b": 0}), 0.0)

    def test_range(self):
        """Test score lies in [-1, 1] for arbitrary partitions."""
        rng = np.random.default_rng(0)
        vectors = [
            make_vector(f"v{i}", {"x": float(rng.random()), "y": float(rng.random())})
            for i in range(10)
        ]
        assignments = {f"v{i}": int(rng.integers(3)) for i in range(10)}

        score = silhouette_score(vectors, ["x", "y"], assignments)

        self.assertGreaterEqual(score, -1.0)
        self.assertLessEqual(score, 1.0)

    def test_string_labels(self):
        """Test cluster ids can be strings."""
        score = silhouette_score(
            self.vectors, self.vocabulary, {"p1": "cluster-0", "p2": "cluster-0", "p3": "cluster-1"}
        )
        self.assertGreater(score, 0.5)


if __name__ == '__main__':
    unittest.main()
