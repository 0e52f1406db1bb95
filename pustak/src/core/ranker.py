"""
Pustak - Similarity Ranker
===========================
Exhaustive cosine-similarity search over the in-memory corpus.

At construction the ranker stacks each language's embedded chunks into a
``float64`` matrix and pre-computes the row norms.  ``top_k`` is then a
single matrix-vector product per query: O(N·D) for the N chunks of the
requested language.  No index structure is used; the corpus targets
well under tens of thousands of chunks.

Zero vectors
------------
If the query or a chunk embedding is all-zero the denominator is zero.
The similarity for that pair is defined as ``0.0`` so that NaN can never
reach the sort.

Ordering
--------
Scores are sorted descending with a stable sort, so equal scores keep
corpus order (first seen wins).
"""

from __future__ import annotations

import time
from collections.abc import Sequence

import numpy as np

from pustak.src.core.errors import DimensionMismatchError
from pustak.src.core.models import Chunk, Language, ScoredChunk
from pustak.src.database.chunk_store import ChunkStore
from pustak.src.utils.logger import get_logger

logger = get_logger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    ``dot(a, b) / (‖a‖·‖b‖)``; ``0.0`` if either vector is all-zero.

    Raises
    ------
    DimensionMismatchError
        If the vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(f"Cannot compare vectors of dimension {va.shape[0]} and {vb.shape[0]}.")

    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


class _LanguageIndex:
    """Embedded chunks of one language plus their stacked vectors."""

    __slots__ = ("chunks", "matrix", "norms")

    def __init__(self, chunks: tuple[Chunk, ...], dimension: int) -> None:
        self.chunks = chunks
        if chunks:
            self.matrix = np.asarray([chunk.embedding for chunk in chunks], dtype=np.float64)
        else:
            self.matrix = np.empty((0, dimension), dtype=np.float64)
        self.norms = np.linalg.norm(self.matrix, axis=1)


class SimilarityRanker:
    """
    Ranks corpus chunks against a query vector, filtered by language.

    Parameters
    ----------
    store
        The loaded corpus.  Chunks without an embedding are not eligible
        and are left out of every index.

    Raises
    ------
    DimensionMismatchError
        If embeddings in *store* disagree on dimension.
    """

    __slots__ = ("_dimension", "_indexes")

    def __init__(self, store: ChunkStore) -> None:
        self._dimension: int | None = store.dimension
        self._indexes: dict[Language, _LanguageIndex] = {}

        dimension = self._dimension or 0
        for language in Language:
            eligible = tuple(chunk for chunk in store.chunks_for(language) if chunk.embedding is not None)
            for chunk in eligible:
                if len(chunk.embedding) != dimension:  # type: ignore[arg-type]
                    raise DimensionMismatchError(f"Chunk '{chunk.id}' has dimension {len(chunk.embedding)}, ranker dimension is {dimension}.")  # type: ignore[arg-type]
            self._indexes[language] = _LanguageIndex(eligible, dimension)

        logger.info("[RANK] Ranker built (dimension=%s): %s", self._dimension, ", ".join(f"{lang.value}={len(idx.chunks)}" for lang, idx in self._indexes.items()))


    @property
    def dimension(self) -> int | None:
        return self._dimension


    def top_k(self, query: Sequence[float], language: Language, k: int) -> list[ScoredChunk]:
        """
        Return the *k* chunks in *language* most similar to *query*.

        Fewer than *k* results are returned when the language has fewer
        eligible chunks; the result is never padded.

        Raises
        ------
        DimensionMismatchError
            If ``len(query)`` differs from the corpus dimension.
        """
        index = self._indexes.get(language)
        if index is None or k <= 0 or not index.chunks:
            return []

        q = np.asarray(query, dtype=np.float64)
        if q.ndim != 1 or q.shape[0] != self._dimension:
            raise DimensionMismatchError(f"Query has dimension {q.shape[-1] if q.ndim else 0}, corpus dimension is {self._dimension}.")

        t_rank = time.perf_counter()
        scores = self._score(index, q)
        # Stable sort on the negated scores keeps corpus order for ties
        order = np.argsort(-scores, kind="stable")[:k]
        ranked = [ScoredChunk(chunk=index.chunks[i], score=float(scores[i])) for i in order]

        logger.debug("[RANK] %s: %d candidate(s) → top %d in %.2fms", language.value, len(index.chunks), len(ranked), (time.perf_counter() - t_rank) * 1000)
        return ranked


    @staticmethod
    def _score(index: _LanguageIndex, query: np.ndarray) -> np.ndarray:
        query_norm = float(np.linalg.norm(query))
        if query_norm == 0.0:
            return np.zeros(len(index.chunks), dtype=np.float64)

        dots = index.matrix @ query
        denom = index.norms * query_norm
        scores = np.zeros_like(dots)
        np.divide(dots, denom, out=scores, where=denom != 0.0)
        return scores


    def __repr__(self) -> str:
        return f"SimilarityRanker(dimension={self._dimension}, chunks={sum(len(i.chunks) for i in self._indexes.values())})"
