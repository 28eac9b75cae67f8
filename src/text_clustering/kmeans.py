"""
K-Means clustering on TF-IDF vectors.

Provides:
- k_means: k-means++ seeded Lloyd iterations with empty-cluster reseeding
- find_optimal_k: elbow method over the k-means inertia curve
- silhouette_score: partition quality in [-1, 1]

All randomness goes through a numpy Generator built from `random_state`
(None, an int seed or an existing Generator), so results can be pinned
in tests.
"""

import logging
import math
from typing import Dict, Hashable, List, Optional, Tuple, Union

import numpy as np

from .models import KMeansCluster, KMeansResult, TermVector
from .similarity import euclidean_distance, to_dense_matrix

logger = logging.getLogger(__name__)

RandomState = Optional[Union[int, np.random.Generator]]

DEFAULT_MAX_ITERATIONS = 100
ELBOW_MAX_ITERATIONS = 50
CONVERGENCE_TOLERANCE = 1e-4

# Below this the k=1 inertia means every point coincides with the centroid
ZERO_INERTIA = 1e-10


def _distances_to_centroids(vectors: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Euclidean distance of every vector to every centroid, shape (n, k)."""
    return np.stack(
        [np.linalg.norm(vectors - centroid, axis=1) for centroid in centroids],
        axis=1
    )


def _init_centroids_kmeans_plus_plus(
    vectors: np.ndarray,
    k: int,
    rng: np.random.Generator
) -> np.ndarray:
    """
    Choose initial centroids with k-means++.

    The first centroid is drawn uniformly; each following one is drawn
    with probability proportional to the squared distance to the nearest
    centroid chosen so far.
    """
    n = vectors.shape[0]
    centroids = [vectors[rng.integers(n)].copy()]

    for _ in range(1, k):
        min_distances = _distances_to_centroids(vectors, np.array(centroids)).min(axis=1)
        squared = min_distances ** 2
        total = squared.sum()

        if total > 0:
            idx = rng.choice(n, p=squared / total)
        else:
            # Every point sits on an existing centroid
            idx = rng.integers(n)

        centroids.append(vectors[idx].copy())

    return np.array(centroids)


def _assign_to_clusters(vectors: np.ndarray, centroids: np.ndarray) -> Tuple[np.ndarray, float]:
    """
    Assign each vector to its nearest centroid.

    Ties go to the lowest centroid index (np.argmin returns the first minimum).

    Returns:
        Tuple of (labels, total inertia)
    """
    distances = _distances_to_centroids(vectors, centroids)
    labels = np.argmin(distances, axis=1)
    nearest = distances[np.arange(vectors.shape[0]), labels]

    return labels, float(np.sum(nearest ** 2))


def _update_centroids(
    vectors: np.ndarray,
    labels: np.ndarray,
    k: int,
    rng: np.random.Generator
) -> np.ndarray:
    """Recompute centroids as member means, reseeding empty clusters."""
    n, dims = vectors.shape
    centroids = np.empty((k, dims), dtype=np.float64)

    for c in range(k):
        mask = labels == c
        if mask.any():
            centroids[c] = vectors[mask].mean(axis=0)
        else:
            idx = rng.integers(n)
            logger.debug(f"Cluster {c} is empty, reseeding from vector {idx}")
            centroids[c] = vectors[idx]

    return centroids


def _has_converged(old: np.ndarray, new: np.ndarray, tolerance: float) -> bool:
    return all(euclidean_distance(o, c) < tolerance for o, c in zip(old, new))


def k_means(
    vectors: List[TermVector],
    vocabulary: List[str],
    k: int,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = CONVERGENCE_TOLERANCE,
    random_state: RandomState = None
) -> KMeansResult:
    """
    Run k-means clustering.

    Args:
        vectors: Sparse TF-IDF vectors
        vocabulary: Vocabulary defining the dense layout
        k: Requested number of clusters (clamped to len(vectors))
        max_iterations: Upper bound on refinement passes
        tolerance: Centroid movement below which the run has converged
        random_state: Seed or Generator for seeding and reseeding

    Returns:
        KMeansResult; every returned cluster has at least one member
    """
    k = min(k, len(vectors))
    if k <= 0:
        return KMeansResult.empty()

    rng = np.random.default_rng(random_state)

    ids = [vector.id for vector in vectors]
    dense = to_dense_matrix(vectors, vocabulary)

    centroids = _init_centroids_kmeans_plus_plus(dense, k, rng)

    iterations = 0
    for iterations in range(1, max_iterations + 1):
        labels, inertia = _assign_to_clusters(dense, centroids)
        new_centroids = _update_centroids(dense, labels, k, rng)

        converged = _has_converged(centroids, new_centroids, tolerance)
        centroids = new_centroids

        if converged:
            logger.debug(f"k={k} converged after {iterations} iterations (inertia {inertia:.4f})")
            break

    # Final membership against the final centroids
    labels, _ = _assign_to_clusters(dense, centroids)

    clusters: List[KMeansCluster] = []
    index_map: Dict[int, int] = {}
    for c in range(k):
        mask = labels == c
        if not mask.any():
            continue

        squared = np.linalg.norm(dense[mask] - centroids[c], axis=1) ** 2
        index_map[c] = len(clusters)
        clusters.append(KMeansCluster(
            centroid=centroids[c],
            member_ids=[doc_id for doc_id, member in zip(ids, mask) if member],
            inertia=float(np.sum(squared))
        ))

    if len(clusters) < k:
        logger.debug(f"Dropped {k - len(clusters)} clusters with no members")

    assignments = {doc_id: index_map[int(label)] for doc_id, label in zip(ids, labels)}

    return KMeansResult(
        clusters=clusters,
        assignments=assignments,
        iterations=iterations,
        total_inertia=float(sum(cluster.inertia for cluster in clusters))
    )


def _elbow_angle(previous: float, current: float, following: float) -> float:
    """Angle at `current` between the segments to its neighbours."""
    v1 = (-1.0, previous - current)
    v2 = (1.0, following - current)

    dot = v1[0] * v2[0] + v1[1] * v2[1]
    mag1 = math.hypot(*v1)
    mag2 = math.hypot(*v2)

    cosine = max(-1.0, min(1.0, dot / (mag1 * mag2)))
    return math.acos(cosine)


def find_optimal_k(
    vectors: List[TermVector],
    vocabulary: List[str],
    max_k: int = 10,
    max_iterations: int = ELBOW_MAX_ITERATIONS,
    random_state: RandomState = None
) -> Tuple[int, List[float]]:
    """
    Find the optimal number of clusters with the elbow method.

    Runs k-means for k = 1..max_k and picks the k where the inertia
    curve bends most sharply.

    Args:
        vectors: Sparse TF-IDF vectors
        vocabulary: Vocabulary defining the dense layout
        max_k: Largest k to try (clamped to len(vectors) - 1)
        max_iterations: Iteration cap for each trial run
        random_state: Seed or Generator shared by all trial runs

    Returns:
        Tuple of (optimal_k, inertias) where inertias[i] belongs to k = i + 1
    """
    n = len(vectors)
    if n <= 2:
        return 1, []

    max_k = min(max_k, n - 1)
    rng = np.random.default_rng(random_state)

    inertias = [
        k_means(vectors, vocabulary, k, max_iterations=max_iterations, random_state=rng).total_inertia
        for k in range(1, max_k + 1)
    ]

    if inertias and inertias[0] <= ZERO_INERTIA:
        logger.info("All vectors coincide, no cluster structure to find")
        return 1, inertias

    optimal_k = 1
    max_angle = 0.0
    for i in range(1, len(inertias) - 1):
        angle = _elbow_angle(inertias[i - 1], inertias[i], inertias[i + 1])
        if angle > max_angle:
            max_angle = angle
            optimal_k = i + 1  # k is 1-indexed

    # Prefer two clusters over one once there is enough data
    if optimal_k == 1 and n >= 4:
        optimal_k = 2

    logger.info(f"Elbow method chose k={optimal_k} (tried k=1..{max_k})")
    return optimal_k, inertias


def silhouette_score(
    vectors: List[TermVector],
    vocabulary: List[str],
    assignments: Dict[str, Hashable]
) -> float:
    """
    Silhouette score for a partition.

    Returns a value between -1 and 1, higher is better. Singleton
    clusters count with a = 0; with a single cluster b = 0.

    Args:
        vectors: Sparse TF-IDF vectors
        vocabulary: Vocabulary defining the dense layout
        assignments: Document ID -> cluster label

    Returns:
        Mean per-point silhouette (0.0 for fewer than two points)
    """
    assigned = [vector for vector in vectors if vector.id in assignments]
    n = len(assigned)
    if n <= 1:
        return 0.0

    dense = to_dense_matrix(assigned, vocabulary)
    labels = [assignments[vector.id] for vector in assigned]
    unique_labels = list(dict.fromkeys(labels))
    masks = {label: np.array([l == label for l in labels]) for label in unique_labels}

    total_score = 0.0
    for i in range(n):
        distances = np.linalg.norm(dense - dense[i], axis=1)
        own = labels[i]

        same = masks[own].copy()
        same[i] = False
        a = float(distances[same].mean()) if same.any() else 0.0

        b = math.inf
        for label in unique_labels:
            if label == own:
                continue
            b = min(b, float(distances[masks[label]].mean()))
        if b == math.inf:
            b = 0.0

        if a == 0 and b == 0:
            silhouette = 0.0
        else:
            silhouette = (b - a) / max(a, b)
        total_score += silhouette

    return total_score / n
