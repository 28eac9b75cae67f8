"""
Cluster engine: high-level API for clustering scraps.

Runs the full pipeline (TF-IDF → elbow k selection → k-means →
silhouette) and turns the k-means output into named, colored clusters.
Also answers incremental questions against the last rebuild: which
cluster a new scrap belongs to, and which scraps are similar to a given one.

A ClusterEngine holds mutable state from the last rebuild and is not
safe for concurrent or reentrant use; serialize calls per instance.
"""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np

from .config import ClusteringConfig
from .kmeans import find_optimal_k, k_means, silhouette_score
from .models import (
    Cluster,
    ClusterAssignment,
    ClusteringResult,
    Document,
    SimilarDocument,
    TfidfResult,
)
from .similarity import find_most_similar, similarities_to
from .tfidf import TfidfVectorizer

logger = logging.getLogger(__name__)


def aggregate_term_scores(member_ids: Iterable[str], tfidf: TfidfResult) -> Dict[str, float]:
    """Sum TF-IDF weights per term across cluster members."""
    term_scores: Dict[str, float] = {}

    for member_id in member_ids:
        vector = tfidf.get(member_id)
        if vector is None:
            continue
        for term, score in vector.weights.items():
            term_scores[term] = term_scores.get(term, 0.0) + score

    return term_scores


def top_terms(term_scores: Dict[str, float], limit: int) -> List[str]:
    """Highest scoring terms; ties are broken alphabetically."""
    ranked = sorted(term_scores.items(), key=lambda item: (-item[1], item[0]))
    return [term for term, _ in ranked[:limit]]


def generate_cluster_name(member_ids: Sequence[str], tfidf: TfidfResult, cluster_index: int,
                          name_terms: int = 3) -> str:
    """Generate a cluster name from its top terms, e.g. "Python, Code, Programming"."""
    terms = top_terms(aggregate_term_scores(member_ids, tfidf), name_terms)

    if terms:
        return ", ".join(term[:1].upper() + term[1:] for term in terms)

    return f"Cluster {cluster_index + 1}"


def generate_cluster_description(member_kinds: Sequence[str]) -> str:
    """Summarize scrap kinds, e.g. "Contains 3 scraps: 2 notes, 1 link"."""
    kind_counts = Counter(member_kinds)

    kind_summary = ", ".join(
        f"{count} {kind}{'s' if count > 1 else ''}"
        for kind, count in kind_counts.items()
    )

    return f"Contains {len(member_kinds)} scraps: {kind_summary}"


def extract_cluster_keywords(member_ids: Sequence[str], tfidf: TfidfResult, limit: int = 10) -> List[str]:
    return top_terms(aggregate_term_scores(member_ids, tfidf), limit)


class ClusterEngine:
    """
    Clusters scraps using TF-IDF and k-means.

    Args:
        config: Clustering configuration (default: ClusteringConfig())
    """

    def __init__(self, config: Optional[ClusteringConfig] = None):
        self.config = config or ClusteringConfig()

        self._vectorizer = TfidfVectorizer()
        self._documents: Dict[str, Document] = {}
        self._last_result: Optional[TfidfResult] = None

    @property
    def last_result(self) -> Optional[TfidfResult]:
        """TF-IDF vectors from the last rebuild (None before the first)."""
        return self._last_result

    def reset(self) -> None:
        self._vectorizer.clear()
        self._documents.clear()
        self._last_result = None

    def rebuild_clusters(self, documents: Sequence[Document]) -> ClusteringResult:
        """
        Re-cluster the whole corpus from scratch.

        Args:
            documents: All scraps to cluster

        Returns:
            ClusteringResult; empty (no clusters, quality 0) when there is
            not enough data to cluster
        """
        if len(documents) < 2:
            logger.warning(f"Need at least 2 scraps to cluster, got {len(documents)}")
            return ClusteringResult()

        logger.info(f"Rebuilding clusters for {len(documents)} scraps")

        # Clear and rebuild TF-IDF
        self._vectorizer.clear()
        self._documents.clear()

        for document in documents:
            self._documents[document.id] = document
            self._vectorizer.add_document(document.id, document.text)

        tfidf = self._vectorizer.calculate_all_vectors()
        self._last_result = tfidf

        non_empty = sum(1 for vector in tfidf.vectors if vector.magnitude > 0)
        if non_empty < 2:
            logger.warning(
                f"Only {non_empty} scraps have usable terms "
                f"(vocabulary size {len(tfidf.vocabulary)}), skipping clustering"
            )
            return ClusteringResult()

        rng = np.random.default_rng(self.config.random_state)

        max_k = min(self.config.max_k, len(documents) // 2)
        optimal_k, inertias = find_optimal_k(
            tfidf.vectors,
            tfidf.vocabulary,
            max_k,
            max_iterations=self.config.elbow_max_iterations,
            random_state=rng
        )
        logger.debug(f"Inertia curve: {inertias}")

        kmeans_result = k_means(
            tfidf.vectors,
            tfidf.vocabulary,
            optimal_k,
            max_iterations=self.config.max_iterations,
            tolerance=self.config.tolerance,
            random_state=rng
        )

        quality = silhouette_score(tfidf.vectors, tfidf.vocabulary, kmeans_result.assignments)

        now = datetime.now(timezone.utc)
        palette = self.config.palette
        clusters: List[Cluster] = []
        assignments: Dict[str, str] = {}

        for i, kcluster in enumerate(kmeans_result.clusters):
            cluster_id = f"cluster-{i}"
            member_kinds = [self._documents[member_id].kind for member_id in kcluster.member_ids]

            cluster = Cluster(
                id=cluster_id,
                member_ids=list(kcluster.member_ids),
                centroid=kcluster.centroid.tolist(),
                inertia=kcluster.inertia,
                name=generate_cluster_name(kcluster.member_ids, tfidf, i, self.config.name_terms),
                description=generate_cluster_description(member_kinds),
                keywords=extract_cluster_keywords(kcluster.member_ids, tfidf, self.config.keyword_limit),
                # Inherited tightness heuristic, not a normalized score; can go negative
                coherence=1 - kcluster.inertia / max(len(kcluster.member_ids), 1),
                color=palette[i % len(palette)],
                created_at=now,
                updated_at=now
            )
            clusters.append(cluster)

            for member_id in kcluster.member_ids:
                assignments[member_id] = cluster_id

            logger.info(f"  {cluster_id}: {cluster.name} ({len(cluster.member_ids)} scraps)")

        logger.info(
            f"Clustering complete: {len(clusters)} clusters, "
            f"{kmeans_result.iterations} iterations, quality {quality:.3f}"
        )

        return ClusteringResult(clusters=clusters, assignments=assignments, quality=quality)

    def assign_to_cluster(self, document: Document, existing_clusters: Sequence[Cluster]) -> ClusterAssignment:
        """
        Find the best existing cluster for a new scrap.

        The scrap is vectorized on a throwaway copy of the vectorizer, so the
        engine state from the last rebuild stays untouched.

        Args:
            document: New scrap
            existing_clusters: Clusters from the last rebuild

        Returns:
            ClusterAssignment with the best cluster ID, or None when the best
            average similarity is below the assign threshold
        """
        if self._last_result is None or not existing_clusters:
            return ClusterAssignment(cluster_id=None, score=0.0)

        snapshot = self._vectorizer.copy()
        snapshot.add_document(document.id, document.text)
        tfidf = snapshot.calculate_all_vectors()

        scrap_vector = tfidf.get(document.id)
        if scrap_vector is None:
            return ClusterAssignment(cluster_id=None, score=0.0)

        best_cluster: Optional[str] = None
        best_score = 0.0

        for cluster in existing_clusters:
            # Average similarity to cluster members
            member_vectors = [
                vector for vector in (tfidf.get(member_id) for member_id in cluster.member_ids)
                if vector is not None
            ]
            if not member_vectors:
                continue

            avg_similarity = float(np.mean(similarities_to(scrap_vector, member_vectors)))

            if avg_similarity > best_score:
                best_score = avg_similarity
                best_cluster = cluster.id

        if best_score < self.config.assign_threshold:
            logger.debug(f"Scrap {document.id} matches no cluster (best score {best_score:.3f})")
            return ClusterAssignment(cluster_id=None, score=best_score)

        logger.debug(f"Assigned scrap {document.id} to {best_cluster} (score {best_score:.3f})")
        return ClusterAssignment(cluster_id=best_cluster, score=best_score)

    def get_cluster_similarity(self, doc_id: str, cluster: Cluster) -> float:
        """Average similarity between a scrap and the other members of a cluster."""
        if self._last_result is None:
            return 0.0

        scrap_vector = self._last_result.get(doc_id)
        if scrap_vector is None:
            return 0.0

        member_vectors = [
            self._last_result.get(member_id)
            for member_id in cluster.member_ids
            if member_id != doc_id and self._last_result.get(member_id) is not None
        ]
        if not member_vectors:
            return 0.0

        return float(np.mean(similarities_to(scrap_vector, member_vectors)))

    def get_similar_documents(self, doc_id: str, limit: int = 5) -> List[SimilarDocument]:
        """
        Get scraps similar to a given scrap.

        Args:
            doc_id: Scrap ID from the last rebuild
            limit: Maximum number of results

        Returns:
            Similar scraps above the similarity threshold, most similar first
        """
        if self._last_result is None:
            return []

        target = self._last_result.get(doc_id)
        if target is None:
            return []

        ranked = find_most_similar(target, self._last_result.vectors, top_k=len(self._last_result))
        similar = [s for s in ranked if s.similarity > self.config.similarity_threshold]

        return similar[:limit]
