"""
TF-IDF (Term Frequency-Inverse Document Frequency) vectorizer.

Converts scrap text into sparse weighted term vectors for clustering.
Vocabulary and IDF are only recomputed on an explicit call to
calculate_all_vectors(), never incrementally.

Weights are computed with scikit-learn's TfidfVectorizer (smoothed IDF,
no row normalization) and rescaled so TF is count / total tokens.
"""

import logging
import math
from collections import Counter
from typing import Dict, List, Optional

from sklearn.feature_extraction.text import TfidfVectorizer as SkTfidfVectorizer

from .models import TermVector, TfidfResult
from .tokenizer import tokenize

logger = logging.getLogger(__name__)


def calculate_tf(tokens: List[str]) -> Dict[str, float]:
    """Term frequency normalized by total token count."""
    total_terms = len(tokens)
    if total_terms == 0:
        return {}

    return {term: count / total_terms for term, count in Counter(tokens).items()}


def calculate_magnitude(weights: Dict[str, float]) -> float:
    return math.sqrt(sum(value * value for value in weights.values()))


def build_sklearn_vectorizer() -> SkTfidfVectorizer:
    """
    scikit-learn vectorizer matching the scrap tokenizer.

    idf(term) = ln((N + 1) / (df + 1)) + 1 (smooth_idf), raw counts
    (norm=None), so weight = count * idf before TF rescaling.
    """
    return SkTfidfVectorizer(
        tokenizer=tokenize,
        lowercase=False,
        token_pattern=None,
        norm=None,
        smooth_idf=True
    )


class TfidfVectorizer:
    """
    Accumulates tokenized documents and produces TF-IDF vectors.

    Documents are kept in insertion order, which also fixes the order of
    the vocabulary (first occurrence wins).
    """

    def __init__(self):
        self._texts: Dict[str, str] = {}
        self._documents: Dict[str, List[str]] = {}
        self._tf_vectors: Dict[str, Dict[str, float]] = {}
        self._idf: Dict[str, float] = {}
        self._vocabulary: List[str] = []

    def add_document(self, doc_id: str, text: str) -> None:
        """Tokenize a document and store its term frequencies."""
        tokens = tokenize(text)
        # Re-adding an id replaces its tokens but keeps its position
        self._texts[doc_id] = text
        self._documents[doc_id] = tokens
        self._tf_vectors[doc_id] = calculate_tf(tokens)

        if not tokens:
            logger.debug(f"Document {doc_id} produced no tokens")

    def remove_document(self, doc_id: str) -> None:
        self._texts.pop(doc_id, None)
        self._documents.pop(doc_id, None)
        self._tf_vectors.pop(doc_id, None)

    def clear(self) -> None:
        self._texts.clear()
        self._documents.clear()
        self._tf_vectors.clear()
        self._idf = {}
        self._vocabulary = []

    def copy(self) -> 'TfidfVectorizer':
        """Independent snapshot sharing no mutable state with this one."""
        snapshot = TfidfVectorizer()
        snapshot._texts = dict(self._texts)
        snapshot._documents = {doc_id: list(tokens) for doc_id, tokens in self._documents.items()}
        snapshot._tf_vectors = {doc_id: dict(tf) for doc_id, tf in self._tf_vectors.items()}
        snapshot._idf = dict(self._idf)
        snapshot._vocabulary = list(self._vocabulary)
        return snapshot

    def calculate_vector(self, doc_id: str) -> Optional[TermVector]:
        """
        Calculate the TF-IDF vector for a single document.

        Uses the IDF from the last calculate_all_vectors() call; terms
        unknown to that IDF get weight 0.

        Args:
            doc_id: Document ID

        Returns:
            TermVector, or None if the document is unknown
        """
        tf = self._tf_vectors.get(doc_id)
        if tf is None:
            return None

        weights = {term: tf_value * self._idf.get(term, 0.0) for term, tf_value in tf.items()}

        return TermVector(
            id=doc_id,
            weights=weights,
            magnitude=calculate_magnitude(weights)
        )

    def calculate_all_vectors(self) -> TfidfResult:
        """
        Recompute vocabulary and IDF, then vectorize every document.

        Returns:
            TfidfResult with vectors (document insertion order), vocabulary and idf
        """
        vocabulary: Dict[str, None] = {}
        for tokens in self._documents.values():
            for token in tokens:
                vocabulary.setdefault(token, None)
        self._vocabulary = list(vocabulary)

        doc_ids = list(self._documents)

        if not self._vocabulary:
            # scikit-learn refuses to fit an empty vocabulary
            self._idf = {}
            vectors = [TermVector(id=doc_id, weights={}, magnitude=0.0) for doc_id in doc_ids]
        else:
            sk_vectorizer = build_sklearn_vectorizer()
            matrix = sk_vectorizer.fit_transform([self._texts[doc_id] for doc_id in doc_ids]).tocsr()
            columns = sk_vectorizer.vocabulary_
            terms = sk_vectorizer.get_feature_names_out()

            self._idf = {
                term: float(sk_vectorizer.idf_[columns[term]]) for term in self._vocabulary
            }

            vectors = []
            for row, doc_id in enumerate(doc_ids):
                total_terms = len(self._documents[doc_id])
                start, end = matrix.indptr[row], matrix.indptr[row + 1]
                weights = {
                    str(terms[column]): float(value) / total_terms
                    for column, value in zip(matrix.indices[start:end], matrix.data[start:end])
                }
                vectors.append(TermVector(
                    id=doc_id,
                    weights=weights,
                    magnitude=calculate_magnitude(weights)
                ))

        logger.debug(
            f"Vectorized {len(vectors)} documents, vocabulary size {len(self._vocabulary)}"
        )

        return TfidfResult(
            vectors=vectors,
            vocabulary=list(self._vocabulary),
            idf=dict(self._idf)
        )

    @property
    def vocabulary_size(self) -> int:
        """Size of the vocabulary from the last full calculation."""
        return len(self._vocabulary)

    @property
    def document_count(self) -> int:
        return len(self._documents)
