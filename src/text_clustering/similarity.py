"""
Similarity functions for comparing document vectors.

Cosine similarity works on sparse TermVectors; Euclidean distance
works on dense vectors laid out in vocabulary order.
"""

import logging
from typing import List, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as sk_cosine_similarity

from .models import SimilarDocument, TermVector

logger = logging.getLogger(__name__)


class DimensionMismatchError(ValueError):
    """Raised when two dense vectors have different lengths."""


def cosine_similarity(a: TermVector, b: TermVector) -> float:
    """
    Cosine similarity between two TF-IDF vectors.

    Returns a value between 0 (nothing in common) and 1 (identical
    direction). Zero-magnitude vectors have similarity 0 with everything.
    """
    if a.magnitude == 0 or b.magnitude == 0:
        return 0.0

    # Iterate over the smaller vector
    if len(a.weights) <= len(b.weights):
        smaller, larger = a.weights, b.weights
    else:
        smaller, larger = b.weights, a.weights

    dot_product = 0.0
    for term, value in smaller.items():
        other = larger.get(term)
        if other is not None:
            dot_product += value * other

    return dot_product / (a.magnitude * b.magnitude)


def cosine_distance(a: TermVector, b: TermVector) -> float:
    return 1.0 - cosine_similarity(a, b)


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Euclidean (L2) distance between two dense vectors.

    Raises:
        DimensionMismatchError: If the vectors have different lengths
    """
    a_arr = np.asarray(a, dtype=np.float64)
    b_arr = np.asarray(b, dtype=np.float64)

    if a_arr.shape != b_arr.shape:
        raise DimensionMismatchError(
            f"Vectors must have the same length, got {a_arr.shape[0]} and {b_arr.shape[0]}"
        )

    return float(np.linalg.norm(a_arr - b_arr))


def to_dense_vector(vector: TermVector, vocabulary: List[str]) -> np.ndarray:
    """Convert a sparse vector to a dense array (index = vocabulary position)."""
    return np.array(
        [vector.weights.get(term, 0.0) for term in vocabulary],
        dtype=np.float64
    )


def to_sparse_vector(dense: Sequence[float], vocabulary: List[str], doc_id: str) -> TermVector:
    """Convert a dense array back to a sparse vector, omitting exact zeros."""
    if len(dense) != len(vocabulary):
        raise DimensionMismatchError(
            f"Dense vector has {len(dense)} entries but vocabulary has {len(vocabulary)} terms"
        )

    weights = {}
    sum_squares = 0.0
    for term, value in zip(vocabulary, dense):
        if value != 0:
            weights[term] = float(value)
            sum_squares += float(value) * float(value)

    return TermVector(id=doc_id, weights=weights, magnitude=float(np.sqrt(sum_squares)))


def to_dense_matrix(vectors: List[TermVector], vocabulary: List[str]) -> np.ndarray:
    """Stack dense vectors into an (n_docs, n_terms) matrix."""
    index = {term: i for i, term in enumerate(vocabulary)}
    matrix = np.zeros((len(vectors), len(vocabulary)), dtype=np.float64)

    for row, vector in enumerate(vectors):
        for term, weight in vector.weights.items():
            col = index.get(term)
            if col is not None:
                matrix[row, col] = weight

    return matrix


def similarities_to(target: TermVector, candidates: List[TermVector]) -> np.ndarray:
    """
    Cosine similarity of one vector against many, via scikit-learn.

    Args:
        target: Vector to compare against
        candidates: Vectors to compare with the target

    Returns:
        Array of len(candidates) similarities, in candidate order
    """
    if not candidates:
        return np.zeros(0)

    terms = dict.fromkeys(target.weights)
    for candidate in candidates:
        terms.update(dict.fromkeys(candidate.weights))

    matrix = to_dense_matrix([target, *candidates], list(terms))
    if matrix.shape[1] == 0:
        return np.zeros(len(candidates))

    # sklearn normalizes zero rows to zero, which keeps them at similarity 0
    return sk_cosine_similarity(matrix[:1], matrix[1:])[0]


def find_most_similar(
    target: TermVector,
    candidates: List[TermVector],
    top_k: int = 5
) -> List[SimilarDocument]:
    """
    Find the candidates most similar to a target vector.

    Args:
        target: Vector to compare against
        candidates: Vectors to rank (the target itself is skipped)
        top_k: Maximum number of results

    Returns:
        SimilarDocument list sorted by similarity, highest first
    """
    others = [candidate for candidate in candidates if candidate.id != target.id]
    scores = similarities_to(target, others)

    similarities = [
        SimilarDocument(id=candidate.id, similarity=float(score))
        for candidate, score in zip(others, scores)
    ]
    similarities.sort(key=lambda s: (-s.similarity, s.id))

    return similarities[:top_k]
