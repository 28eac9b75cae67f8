"""
Data model for the clustering engine.

Plain dataclasses passed between the vectorizer, k-means and the
cluster engine, plus the result types handed to the rendering layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import numpy as np


def _utc_now() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


@dataclass
class Document:
    """
    A single scrap to cluster.

    Attributes:
        id: Scrap ID
        text: Concatenated title, body, keywords and tags
        kind: Scrap type ("note", "link", "image", ...), used for descriptions
    """

    id: str
    text: str
    kind: str = "note"

    @classmethod
    def from_parts(
        cls,
        doc_id: str,
        kind: str = "note",
        title: Optional[str] = None,
        content: Optional[str] = None,
        keywords: Iterable[str] = (),
        tags: Iterable[str] = (),
        auto_tags: Iterable[str] = (),
        link_title: Optional[str] = None,
        link_description: Optional[str] = None,
    ) -> "Document":
        """
        Build a document from the fields of a scrap.

        Empty parts are skipped; the rest are joined with single spaces.
        """
        parts: List[Optional[str]] = [title, content, *keywords, *tags, *auto_tags]
        parts.extend([link_title, link_description])

        text = " ".join(part for part in parts if part)
        return cls(id=doc_id, text=text, kind=kind)


@dataclass
class TermVector:
    """Sparse TF-IDF vector of one document."""

    id: str
    weights: Dict[str, float]
    magnitude: float


@dataclass
class TfidfResult:
    """Output of a full vectorization pass."""

    vectors: List[TermVector]
    vocabulary: List[str]
    idf: Dict[str, float]
    _by_id: Dict[str, TermVector] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._by_id = {vector.id: vector for vector in self.vectors}

    def get(self, doc_id: str) -> Optional[TermVector]:
        return self._by_id.get(doc_id)

    def __len__(self) -> int:
        return len(self.vectors)


@dataclass
class KMeansCluster:
    centroid: np.ndarray
    member_ids: List[str] = field(default_factory=list)
    inertia: float = 0.0  # Sum of squared member distances to centroid


@dataclass
class KMeansResult:
    clusters: List[KMeansCluster]
    assignments: Dict[str, int]  # document id -> cluster index
    iterations: int
    total_inertia: float

    @classmethod
    def empty(cls) -> "KMeansResult":
        return cls(clusters=[], assignments={}, iterations=0, total_inertia=0.0)


@dataclass
class Cluster:
    """
    A labelled group of scraps, ready for display.

    Attributes:
        id: Cluster ID (unique within one rebuild)
        member_ids: Scrap IDs in this cluster
        centroid: Mean TF-IDF vector (vocabulary order)
        inertia: Sum of squared member distances to centroid
        name: Top terms, capitalized and comma-joined
        description: Summary of scrap kinds
        keywords: Top terms by aggregate TF-IDF weight
        coherence: 1 - inertia / member count
        color: Hex color for rendering
    """

    id: str
    member_ids: List[str]
    centroid: List[float]
    inertia: float
    name: str
    description: str
    keywords: List[str]
    coherence: float
    color: str
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def size(self) -> int:
        return len(self.member_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "keywords": list(self.keywords),
            "member_ids": list(self.member_ids),
            "centroid": list(self.centroid),
            "inertia": self.inertia,
            "coherence": self.coherence,
            "color": self.color,
            "size": self.size,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class ClusteringResult:
    clusters: List[Cluster] = field(default_factory=list)
    assignments: Dict[str, str] = field(default_factory=dict)  # scrap id -> cluster id
    quality: float = 0.0  # silhouette score

    @property
    def is_empty(self) -> bool:
        return not self.clusters

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clusters": [cluster.to_dict() for cluster in self.clusters],
            "assignments": dict(self.assignments),
            "quality": self.quality,
        }


@dataclass
class ClusterAssignment:
    """Best existing cluster for a new scrap (cluster_id is None below threshold)."""

    cluster_id: Optional[str]
    score: float


@dataclass
class SimilarDocument:
    id: str
    similarity: float
