"""
Text clustering engine for the scrapbook knowledge base.

Groups short scraps by topic using TF-IDF vectors and k-means:
1. Rebuild: full re-clustering of all scraps (k chosen by the elbow method)
2. Assign: classify one new scrap against the clusters of the last rebuild
3. Similar: nearest-neighbour scraps by cosine similarity
"""

from .config import ClusteringConfig, ConfigError
from .engine import ClusterEngine
from .kmeans import find_optimal_k, k_means, silhouette_score
from .models import (
    Cluster,
    ClusterAssignment,
    ClusteringResult,
    Document,
    KMeansCluster,
    KMeansResult,
    SimilarDocument,
    TermVector,
    TfidfResult,
)
from .similarity import (
    DimensionMismatchError,
    cosine_distance,
    cosine_similarity,
    euclidean_distance,
    find_most_similar,
    similarities_to,
    to_dense_vector,
    to_sparse_vector,
)
from .tfidf import TfidfVectorizer
from .tokenizer import tokenize

__all__ = [
    'ClusterEngine',
    'ClusteringConfig',
    'ConfigError',
    'Cluster',
    'ClusterAssignment',
    'ClusteringResult',
    'Document',
    'KMeansCluster',
    'KMeansResult',
    'SimilarDocument',
    'TermVector',
    'TfidfResult',
    'TfidfVectorizer',
    'DimensionMismatchError',
    'cosine_distance',
    'cosine_similarity',
    'euclidean_distance',
    'find_most_similar',
    'similarities_to',
    'to_dense_vector',
    'to_sparse_vector',
    'find_optimal_k',
    'k_means',
    'silhouette_score',
    'tokenize',
]
