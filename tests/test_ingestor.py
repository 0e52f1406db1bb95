"""
Tests for the offline embedding job.

System role: Verification of the corpus embedding pipeline
"""

import json

import pytest
from conftest import FakeGenaiClient

from pustak.src.core.embedding_client import EmbeddingClient
from pustak.src.core.errors import BatchEmbeddingError, LoadError
from pustak.src.core.ingestor import EmbeddingJob
from pustak.src.core.models import Language
from pustak.src.database.chunk_store import ChunkStore


@pytest.fixture
def corpus(write_corpus):
    return write_corpus([
        {"id": "c1", "text": "The river  rose at dawn.", "language": "english"},
        {"id": "c2", "text": "நதி காலையில் உயர்ந்தது.", "language": "tamil"},
        {"id": "c3", "text": "Der Fluss stieg am Morgen.", "language": "german"},
        {"id": "c4", "text": "The boat was gone.", "language": "english"},
    ])


@pytest.mark.asyncio
async def test_job_writes_embedded_corpus(corpus, tmp_path, recording_sleep) -> None:
    fake = FakeGenaiClient(default=[0.6, 0.8, 0.0])
    client = EmbeddingClient(fake, model="m", dimension=3, sleep=recording_sleep)
    destination = tmp_path / "chunks-with-embeddings.json"
    progress = []

    summary = await EmbeddingJob(client, corpus, destination, batch_size=3, inter_batch_delay=1.0, on_batch=lambda n, total: progress.append(n)).run()

    assert summary["total_chunks"] == 4
    assert summary["embedded_chunks"] == 4
    assert summary["dimension"] == 3
    assert summary["destination"] == str(destination)
    assert progress == [1, 2]
    assert recording_sleep.delays == [1.0]

    records = json.loads(destination.read_text(encoding="utf-8"))
    assert [r["id"] for r in records] == ["c1", "c2", "c3", "c4"]
    assert all(len(r["embedding"]) == 3 for r in records)


@pytest.mark.asyncio
async def test_output_loads_back_by_language(corpus, tmp_path) -> None:
    fake = FakeGenaiClient(default=[1.0, 0.0])
    destination = tmp_path / "out.json"

    await EmbeddingJob(EmbeddingClient(fake, model="m", dimension=2), corpus, destination, batch_size=10, inter_batch_delay=0).run()
    store = ChunkStore.load(destination, require_embeddings=True, expected_dimension=2)

    assert [c.id for c in store.chunks_for(Language.ENGLISH)] == ["c1", "c4"]
    assert all(len(c.embedding) == 2 for lang in Language for c in store.chunks_for(lang))
    assert store.chunks_for(Language.ENGLISH)[0].embedding == (1.0, 0.0)
    assert store.chunks_for(Language.TAMIL)[0].text == "நதி காலையில் உயர்ந்தது."
    assert store.chunks_for(Language.HINDI) == ()


@pytest.mark.asyncio
async def test_texts_are_cleaned_before_embedding(write_corpus, tmp_path) -> None:
    fake = FakeGenaiClient(default=[1.0])
    source = write_corpus([{"id": "x", "text": "  Hello\u0000 world \u200b ", "language": "english"}])

    await EmbeddingJob(EmbeddingClient(fake, model="m", dimension=1), source, tmp_path / "o.json", inter_batch_delay=0).run()

    assert fake.calls[0]["contents"] == "Hello world"


@pytest.mark.asyncio
async def test_failure_writes_nothing_and_names_chunk(corpus, tmp_path, recording_sleep) -> None:
    fake = FakeGenaiClient(default=[1.0], fail_on={"Der Fluss stieg am Morgen."})
    destination = tmp_path / "out.json"
    job = EmbeddingJob(EmbeddingClient(fake, model="m", dimension=1, sleep=recording_sleep), corpus, destination, batch_size=2, inter_batch_delay=1.0)

    with pytest.raises(BatchEmbeddingError) as exc_info:
        await job.run()

    assert exc_info.value.chunk_id == "c3"
    assert not destination.exists()


@pytest.mark.asyncio
async def test_chunk_empty_after_cleaning_is_a_load_error(write_corpus, tmp_path) -> None:
    fake = FakeGenaiClient(default=[1.0])
    source = write_corpus([{"id": "blank", "text": " \u200b\u0007 ", "language": "hindi"}])

    with pytest.raises(LoadError, match="blank"):
        await EmbeddingJob(EmbeddingClient(fake, model="m", dimension=1), source, tmp_path / "o.json").run()
    assert fake.calls == []


@pytest.mark.asyncio
async def test_missing_source(tmp_path) -> None:
    client = EmbeddingClient(FakeGenaiClient(default=[1.0]), model="m", dimension=1)
    with pytest.raises(LoadError):
        await EmbeddingJob(client, tmp_path / "missing.json", tmp_path / "o.json").run()
