"""
Pustak - RAG Engine
====================
Orchestrates one question through the retrieval-augmented pipeline.

Flow (one sequential await chain per request):
    1. Embed question       → ``EmbeddingClient.embed``
    2. Retrieve             → ``SimilarityRanker.top_k`` (language filter)
    3. Empty retrieval      → fixed per-language reply (skip LLM)
    4. Build context        → numbered excerpts, most similar first
    5. Window history       → last ``history_limit`` turns
    6. Generate             → ``AnswerGenerator.generate``
    7. Return answer

Every collaborator is passed in at construction; the manager holds no
request-scoped state and is safe to share across concurrent requests.

Usage:
    rag = RAGManager(store, ranker, embedding_client, answer_generator)
    answer = await rag.generate_response("Who is the narrator?", Language.ENGLISH)
"""

from __future__ import annotations

import time
from collections.abc import Sequence

from pustak.config.prompt_templates import NO_CONTEXT_RESPONSES
from pustak.src.core.answer_generator import AnswerGenerator
from pustak.src.core.embedding_client import EmbeddingClient
from pustak.src.core.models import HistoryMessage, Language, ScoredChunk
from pustak.src.core.ranker import SimilarityRanker
from pustak.src.database.chunk_store import ChunkStore
from pustak.src.utils.logger import get_logger
from pustak.src.utils.text_utils import preview

logger = get_logger(__name__)


class RAGManager:
    """
    Embed → rank → generate.

    Parameters
    ----------
    store
        The loaded, immutable corpus.
    ranker
        A ``SimilarityRanker`` built over *store*.
    embedding_client
        Embeds the incoming question.
    answer_generator
        Produces the final answer.
    top_k
        Chunks retrieved per question.
    history_limit
        Maximum prior turns forwarded to the LLM.
    """

    __slots__ = ("_store", "_ranker", "_embedder", "_generator", "_top_k", "_history_limit")

    def __init__(self, store: ChunkStore, ranker: SimilarityRanker, embedding_client: EmbeddingClient, answer_generator: AnswerGenerator, top_k: int = 5, history_limit: int = 10) -> None:
        self._store = store
        self._ranker = ranker
        self._embedder = embedding_client
        self._generator = answer_generator
        self._top_k = top_k
        self._history_limit = history_limit


    @property
    def store(self) -> ChunkStore:
        return self._store


    async def retrieve(self, question: str, language: Language) -> list[ScoredChunk]:
        """Embed *question* and return the top-K chunks in *language*."""
        t_embed = time.perf_counter()
        query_vector = await self._embedder.embed(question)
        embed_ms = (time.perf_counter() - t_embed) * 1000

        t_rank = time.perf_counter()
        results = self._ranker.top_k(query_vector, language, self._top_k)
        rank_ms = (time.perf_counter() - t_rank) * 1000

        logger.info("[RAG] Retrieved %d chunk(s) for %s (embed=%.1fms, rank=%.1fms)", len(results), language.value, embed_ms, rank_ms)
        for result in results:
            logger.debug("[RAG]   id=%s score=%.4f %s", result.id, result.score, preview(result.text))
        return results


    async def generate_response(self, question: str, language: Language, history: Sequence[HistoryMessage] | None = None) -> str:
        """
        Full pipeline for one question.

        Raises
        ------
        EmbeddingError, DimensionMismatchError, GenerationError
            Propagated to the caller (the HTTP layer maps them to 500).
        """
        t_start = time.perf_counter()
        logger.info("[RAG] Question (%s): '%s'", language.value, preview(question))

        results = await self.retrieve(question, language)

        if not results:
            logger.warning("[RAG] No retrievable chunks for language '%s' — returning fixed reply.", language.value)
            return NO_CONTEXT_RESPONSES[language]

        context = self.format_context(results)
        windowed = list(history or ())[-self._history_limit :] if self._history_limit else []

        answer = await self._generator.generate(context, question, language, windowed)

        logger.info("[RAG] Pipeline total: %.1fms (%d history turn(s))", (time.perf_counter() - t_start) * 1000, len(windowed))
        return answer


    @staticmethod
    def format_context(results: Sequence[ScoredChunk]) -> str:
        """Format ranked chunks into a numbered context block."""
        return "\n\n".join(f"[{i}] (relevance: {result.score:.3f})\n{result.text}" for i, result in enumerate(results, 1))
