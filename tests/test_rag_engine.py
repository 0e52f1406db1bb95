"""
Tests for the end-to-end retrieval pipeline with fake remote services.

System role: Verification of the RAG manager
"""

import pytest
from conftest import FakeChatModel, FakeGenaiClient

from pustak.config.prompt_templates import NO_CONTEXT_RESPONSES
from pustak.src.core.answer_generator import AnswerGenerator
from pustak.src.core.embedding_client import EmbeddingClient
from pustak.src.core.errors import EmbeddingError, GenerationError
from pustak.src.core.models import HistoryMessage, Language
from pustak.src.core.rag_engine import RAGManager
from pustak.src.core.ranker import SimilarityRanker
from pustak.src.database.chunk_store import ChunkStore


def _manager(chunks, genai=None, llm=None, top_k=2, history_limit=10):
    store = ChunkStore(chunks)
    genai = genai or FakeGenaiClient(default=[1.0, 0.0])
    llm = llm or FakeChatModel()
    manager = RAGManager(store, SimilarityRanker(store), EmbeddingClient(genai, model="m", dimension=2), AnswerGenerator(llm), top_k=top_k, history_limit=history_limit)
    return manager, genai, llm


@pytest.mark.asyncio
async def test_retrieve_ranks_within_language(ranking_chunks) -> None:
    manager, genai, _ = _manager(ranking_chunks)

    results = await manager.retrieve("which way is east?", Language.ENGLISH)

    assert [r.id for r in results] == ["1", "3"]
    assert genai.calls[0]["contents"] == "which way is east?"


@pytest.mark.asyncio
async def test_generate_response_sends_ranked_context(ranking_chunks) -> None:
    manager, _, llm = _manager(ranking_chunks, llm=FakeChatModel(answer="East."))

    answer = await manager.generate_response("which way is east?", Language.ENGLISH)

    assert answer == "East."
    prompt = llm.calls[0][-1].content
    assert "[1] (relevance: 1.000)\neast" in prompt
    assert "[2] (relevance: 0.994)\nmostly east" in prompt
    assert "north" not in prompt
    assert "கிழக்கு" not in prompt


@pytest.mark.asyncio
async def test_language_without_chunks_skips_llm(ranking_chunks) -> None:
    manager, genai, llm = _manager(ranking_chunks)

    answer = await manager.generate_response("Was ist das?", Language.GERMAN)

    assert answer == NO_CONTEXT_RESPONSES[Language.GERMAN]
    assert len(genai.calls) == 1
    assert llm.calls == []


@pytest.mark.asyncio
async def test_history_is_windowed_to_most_recent_turns(ranking_chunks) -> None:
    manager, _, llm = _manager(ranking_chunks, history_limit=2)
    history = [HistoryMessage(role="user" if i % 2 == 0 else "assistant", content=f"turn {i}") for i in range(5)]

    await manager.generate_response("and then?", Language.ENGLISH, history)

    sent = [m.content for m in llm.calls[0][1:-1]]
    assert sent == ["turn 3", "turn 4"]


@pytest.mark.asyncio
async def test_zero_history_limit_drops_history(ranking_chunks) -> None:
    manager, _, llm = _manager(ranking_chunks, history_limit=0)

    await manager.generate_response("q", Language.ENGLISH, [HistoryMessage(role="user", content="old")])

    assert len(llm.calls[0]) == 2


@pytest.mark.asyncio
async def test_embedding_failure_propagates(ranking_chunks) -> None:
    manager, _, llm = _manager(ranking_chunks, genai=FakeGenaiClient(fail_on={"q"}))

    with pytest.raises(EmbeddingError):
        await manager.generate_response("q", Language.ENGLISH)
    assert llm.calls == []


@pytest.mark.asyncio
async def test_generation_failure_propagates(ranking_chunks) -> None:
    manager, _, _ = _manager(ranking_chunks, llm=FakeChatModel(error=RuntimeError("503")))

    with pytest.raises(GenerationError):
        await manager.generate_response("q", Language.ENGLISH)


def test_format_context_numbers_from_one(ranking_chunks) -> None:
    manager, _, _ = _manager(ranking_chunks)
    ranked = manager._ranker.top_k([1.0, 0.0], Language.TAMIL, 1)

    assert RAGManager.format_context(ranked) == "[1] (relevance: 1.000)\nகிழக்கு"
    assert RAGManager.format_context([]) == ""
