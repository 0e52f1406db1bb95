"""
Pustak - Embedding Job
=======================
Offline pipeline that turns the unembedded corpus (``chunks.json``)
into the corpus the server loads (``chunks-with-embeddings.json``).

Steps:
    1. Load   → ``ChunkStore.load`` (fails on malformed input).
    2. Clean  → ``clean_text`` on every chunk (NFC, control chars).
    3. Embed  → ``EmbeddingClient.embed_batch`` in corpus order,
                ``batch_size`` concurrent calls, pause between batches.
    4. Verify → every vector has dimension D.
    5. Save   → ``ChunkStore.save`` (temp file + rename).

All-or-nothing: if any chunk fails to embed the job raises before
anything is written, naming the failing chunk id.

Usage:
    from pustak.src.core.ingestor import EmbeddingJob
    job = EmbeddingJob(client, source=settings.CHUNKS_PATH, destination=settings.EMBEDDED_CHUNKS_PATH)
    summary = await job.run()
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any

from pustak.src.core.embedding_client import BatchCallback, EmbeddingClient
from pustak.src.core.errors import LoadError
from pustak.src.database.chunk_store import ChunkStore
from pustak.src.utils.logger import get_logger
from pustak.src.utils.text_utils import clean_text

logger = get_logger(__name__)


class EmbeddingJob:
    """
    Embed every chunk of a corpus file and write the derived file.

    Parameters
    ----------
    embedding_client
        Client used for the batch embedding.
    source
        Unembedded corpus path.
    destination
        Output path for the embedded corpus.
    batch_size
        Concurrent embedding calls per batch.
    inter_batch_delay
        Seconds to pause between batches.
    on_batch
        Optional progress callback ``(batch_number, total_batches)``.
    """

    def __init__(self, embedding_client: EmbeddingClient, source: Path, destination: Path, batch_size: int = 10, inter_batch_delay: float = 1.0, on_batch: BatchCallback | None = None) -> None:
        self._client = embedding_client
        self._source = Path(source)
        self._destination = Path(destination)
        self._batch_size = batch_size
        self._delay = inter_batch_delay
        self._on_batch = on_batch

    # ══════════════════════════════════════════════════════════════════
    #  PUBLIC ENTRY POINT
    # ══════════════════════════════════════════════════════════════════

    async def run(self) -> dict[str, Any]:
        """
        Execute the job.

        Returns
        -------
        dict
            ``total_chunks``, ``embedded_chunks``, ``dimension``,
            ``destination``, ``elapsed_seconds``.

        Raises
        ------
        LoadError
            Source corpus missing / malformed, or a chunk's text is empty
            after cleaning.
        BatchEmbeddingError
            A chunk failed to embed; nothing is written.
        """
        t_start = time.perf_counter()

        store = ChunkStore.load(self._source)
        texts, ids = self._prepare(store)
        logger.info("[JOB] %d chunk(s) to embed (batch_size=%d, delay=%.1fs).", len(texts), self._batch_size, self._delay)

        t_embed = time.perf_counter()
        vectors = await self._client.embed_batch(texts, batch_size=self._batch_size, inter_batch_delay=self._delay, ids=ids, on_batch=self._on_batch)
        embed_s = time.perf_counter() - t_embed

        cleaned = ChunkStore((chunk.model_copy(update={"text": text}) for chunk, text in zip(store.chunks, texts)), source=store.source)
        embedded = cleaned.with_embeddings(vectors)
        embedded.save(self._destination)

        elapsed = time.perf_counter() - t_start
        logger.info("[JOB] Embedded %d chunk(s) in %.2fs (embedding %.2fs), dimension=%s → %s", len(embedded), elapsed, embed_s, embedded.dimension, self._destination)
        return self._summary(len(store), len(embedded), embedded.dimension, elapsed)

    # ══════════════════════════════════════════════════════════════════
    #  HELPERS
    # ══════════════════════════════════════════════════════════════════

    @staticmethod
    def _prepare(store: ChunkStore) -> tuple[list[str], list[str]]:
        """Clean every chunk's text; an empty result is a load error."""
        texts: list[str] = []
        ids: list[str] = []
        for chunk in store.chunks:
            text = clean_text(chunk.text)
            if not text:
                raise LoadError(f"Chunk '{chunk.id}' has no text after cleaning.")
            texts.append(text)
            ids.append(chunk.id)
        return texts, ids


    def _summary(self, total: int, embedded: int, dimension: int | None, elapsed: float) -> dict[str, Any]:
        return {
            "total_chunks": total,
            "embedded_chunks": embedded,
            "dimension": dimension,
            "destination": str(self._destination),
            "elapsed_seconds": round(elapsed, 2),
        }
