"""
Tests for cosine similarity and top-K ranking.

System role: Verification of the similarity ranker
"""

import math

import pytest

from pustak.src.core.errors import DimensionMismatchError
from pustak.src.core.models import Chunk, Language
from pustak.src.core.ranker import SimilarityRanker, cosine_similarity
from pustak.src.database.chunk_store import ChunkStore


@pytest.fixture
def ranker(ranking_chunks) -> SimilarityRanker:
    return SimilarityRanker(ChunkStore(ranking_chunks))


class TestCosineSimilarity:
    @pytest.mark.parametrize("v", [[1.0, 0.0], [3.0, 4.0], [-2.5, 0.1, 7.0], [1e-3, 1e-3]])
    def test_self_similarity_is_one(self, v) -> None:
        assert cosine_similarity(v, v) == pytest.approx(1.0)

    def test_symmetric(self) -> None:
        a, b = [0.3, -1.2, 4.0], [2.0, 0.5, -0.7]
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    def test_orthogonal_is_zero(self) -> None:
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite_is_minus_one(self) -> None:
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_magnitude_invariant(self) -> None:
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    def test_zero_vector_returns_zero_not_nan(self) -> None:
        score = cosine_similarity([0.0, 0.0], [1.0, 0.0])
        assert score == 0.0
        assert not math.isnan(score)
        assert cosine_similarity([0.0, 0.0], [0.0, 0.0]) == 0.0

    def test_length_mismatch_raises(self) -> None:
        with pytest.raises(DimensionMismatchError):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


class TestTopK:
    def test_example_ordering(self, ranker: SimilarityRanker) -> None:
        results = ranker.top_k([1.0, 0.0], Language.ENGLISH, 2)

        assert [r.id for r in results] == ["1", "3"]
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(0.9 / math.sqrt(0.82))
        assert results[1].score == pytest.approx(0.994, abs=1e-3)

    def test_sorted_non_increasing(self, ranker: SimilarityRanker) -> None:
        results = ranker.top_k([0.2, 0.8], Language.ENGLISH, 10)
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_never_returns_other_languages(self, ranker: SimilarityRanker) -> None:
        results = ranker.top_k([1.0, 0.0], Language.TAMIL, 10)
        assert [r.id for r in results] == ["4"]
        assert all(r.language is Language.TAMIL for r in results)

    def test_fewer_chunks_than_k_returns_all_without_padding(self) -> None:
        chunks = [
            Chunk(id="a", text="a", language=Language.HINDI, embedding=(1.0, 0.0)),
            Chunk(id="b", text="b", language=Language.HINDI, embedding=(0.0, 1.0)),
            Chunk(id="c", text="c", language=Language.GERMAN, embedding=(1.0, 1.0)),
        ]
        results = SimilarityRanker(ChunkStore(chunks)).top_k([1.0, 1.0], Language.HINDI, 5)
        assert len(results) == 2

    def test_language_without_chunks_returns_empty(self, ranker: SimilarityRanker) -> None:
        assert ranker.top_k([1.0, 0.0], Language.MALAYALAM, 3) == []

    def test_non_positive_k_returns_empty(self, ranker: SimilarityRanker) -> None:
        assert ranker.top_k([1.0, 0.0], Language.ENGLISH, 0) == []

    def test_ties_keep_corpus_order(self) -> None:
        chunks = [Chunk(id=str(i), text=f"t{i}", language=Language.TELUGU, embedding=(1.0, 0.0)) for i in range(4)]
        results = SimilarityRanker(ChunkStore(chunks)).top_k([2.0, 0.0], Language.TELUGU, 3)
        assert [r.id for r in results] == ["0", "1", "2"]

    def test_zero_query_scores_zero(self, ranker: SimilarityRanker) -> None:
        results = ranker.top_k([0.0, 0.0], Language.ENGLISH, 3)
        assert [r.score for r in results] == [0.0, 0.0, 0.0]
        assert [r.id for r in results] == ["1", "2", "3"]

    def test_zero_chunk_embedding_scores_zero(self) -> None:
        chunks = [
            Chunk(id="zero", text="z", language=Language.ENGLISH, embedding=(0.0, 0.0)),
            Chunk(id="neg", text="n", language=Language.ENGLISH, embedding=(-1.0, 0.0)),
        ]
        results = SimilarityRanker(ChunkStore(chunks)).top_k([1.0, 0.0], Language.ENGLISH, 2)
        assert [(r.id, r.score) for r in results] == [("zero", 0.0), ("neg", pytest.approx(-1.0))]

    def test_query_dimension_mismatch_raises(self, ranker: SimilarityRanker) -> None:
        with pytest.raises(DimensionMismatchError):
            ranker.top_k([1.0, 0.0, 0.0], Language.ENGLISH, 2)

    def test_unembedded_chunks_are_not_ranked(self) -> None:
        chunks = [
            Chunk(id="ready", text="r", language=Language.ENGLISH, embedding=(1.0, 0.0)),
            Chunk(id="pending", text="p", language=Language.ENGLISH),
        ]
        results = SimilarityRanker(ChunkStore(chunks)).top_k([1.0, 0.0], Language.ENGLISH, 5)
        assert [r.id for r in results] == ["ready"]

    def test_mixed_corpus_dimensions_fail_at_construction(self) -> None:
        chunks = [
            Chunk(id="a", text="a", language=Language.ENGLISH, embedding=(1.0, 0.0)),
            Chunk(id="b", text="b", language=Language.GERMAN, embedding=(1.0, 0.0, 0.0)),
        ]
        with pytest.raises(DimensionMismatchError):
            SimilarityRanker(ChunkStore(chunks))
