"""
Pustak - Embedding Client
==========================
Turns text into a fixed-length vector through the Gemini embedding API
(``google-genai``, ``client.aio.models.embed_content``).

Response parsing
----------------
Gemini has returned the vector in two shapes::

    A: {"embeddings": [{"values": [...]}]}
    B: {"embedding": {"values": [...]}}

The payload is decoded as a tagged union (``TypeAdapter`` over
``_EmbeddingsPayload | _EmbeddingPayload``, left-to-right), so shape A
wins when both would match.  Anything else raises ``EmbeddingError``
carrying the raw response body; an empty or wrong-length vector is also
an error, never a silent return.

Batch embedding (offline only)
------------------------------
``embed_batch`` runs ``batch_size`` requests concurrently, waits for the
whole batch, pauses ``inter_batch_delay`` seconds, then starts the next
batch.  The first failing item aborts the job with a
``BatchEmbeddingError`` naming its index and chunk id.

Every remote call goes through a ``RetryPolicy``.  The default policy
makes exactly one attempt.

Usage:
    client = EmbeddingClient.from_settings(settings)
    vector = await client.embed("Who wrote the Thirukkural?")
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Annotated, Any, TypeVar, Union

from google import genai
from google.genai import types
from pydantic import BaseModel, Field, FiniteFloat, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_exponential

from pustak.src.core.errors import BatchEmbeddingError, EmbeddingError
from pustak.src.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
Vector = list[float]
SleepFn = Callable[[float], Awaitable[None]]
BatchCallback = Callable[[int, int], None]

_RAW_BODY_LIMIT = 2000


# ══════════════════════════════════════════════════════════════════════
#  RESPONSE SHAPES
# ══════════════════════════════════════════════════════════════════════


class _Values(BaseModel):
    values: list[FiniteFloat] = Field(min_length=1)


class _EmbeddingsPayload(BaseModel):
    """Shape A: ``{"embeddings": [{"values": [...]}, ...]}``."""

    embeddings: list[_Values] = Field(min_length=1)

    def vector(self) -> Vector:
        return self.embeddings[0].values


class _EmbeddingPayload(BaseModel):
    """Shape B: ``{"embedding": {"values": [...]}}``."""

    embedding: _Values

    def vector(self) -> Vector:
        return self.embedding.values


_RESPONSE_ADAPTER: TypeAdapter[_EmbeddingsPayload | _EmbeddingPayload] = TypeAdapter(
    Annotated[Union[_EmbeddingsPayload, _EmbeddingPayload], Field(union_mode="left_to_right")]
)


def parse_embedding_response(response: Any) -> Vector:
    """
    Extract the vector from an ``embed_content`` response.

    Accepts the SDK's response model or a plain dict.

    Raises
    ------
    EmbeddingError
        Neither known shape matched; the message includes the raw body.
    """
    if isinstance(response, dict):
        payload = response
    elif hasattr(response, "model_dump"):
        payload = response.model_dump(mode="json", exclude_none=True)
    else:
        raise EmbeddingError(f"Unexpected embedding response type {type(response).__name__}: {response!r}"[:_RAW_BODY_LIMIT])

    try:
        parsed = _RESPONSE_ADAPTER.validate_python(payload)
    except PydanticValidationError as exc:
        raw_body = json.dumps(payload, ensure_ascii=False, default=str)
        logger.error("[EMBED] Unrecognised response structure: %s", raw_body)
        raise EmbeddingError(f"Unexpected embedding response structure: {raw_body[:_RAW_BODY_LIMIT]}") from exc

    return parsed.vector()


# ══════════════════════════════════════════════════════════════════════
#  RETRY HOOK
# ══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class RetryPolicy:
    """
    Exponential backoff around a single remote call (``tenacity``).

    ``max_attempts=1`` (the default) disables retries.  The wait before
    attempt *n + 1* is ``base_delay * backoff ** (n - 1)``.
    """

    max_attempts: int = 1
    base_delay: float = 1.0
    backoff: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be ≥ 1, got {self.max_attempts}")


    def _log_retry(self, retry_state: RetryCallState) -> None:
        logger.warning(
            "[EMBED] Attempt %d/%d failed (%s) — retrying in %.1fs.",
            retry_state.attempt_number,
            self.max_attempts,
            retry_state.outcome.exception() if retry_state.outcome else None,
            retry_state.next_action.sleep if retry_state.next_action else 0.0,
        )


    async def call(self, operation: Callable[[], Awaitable[T]], sleep: SleepFn = asyncio.sleep) -> T:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(Exception),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.base_delay, exp_base=self.backoff),
            before_sleep=self._log_retry,
            sleep=sleep,
            reraise=True,
        )
        return await retrying(operation)


NO_RETRY = RetryPolicy()


# ══════════════════════════════════════════════════════════════════════
#  CLIENT
# ══════════════════════════════════════════════════════════════════════


class EmbeddingClient:
    """
    Async wrapper over the Gemini embedding endpoint.

    Parameters
    ----------
    client
        A ``google.genai.Client`` (or any object exposing
        ``aio.models.embed_content``).
    model
        Embedding model identifier.
    dimension
        Expected vector length D; also requested from the model as
        ``output_dimensionality``.
    timeout
        Seconds before a single remote call is abandoned (``None`` = no limit).
    retry_policy
        Wraps every remote call; defaults to a single attempt.
    sleep
        Awaitable sleep used for backoff and inter-batch pauses.
    """

    __slots__ = ("_client", "_model", "_dimension", "_timeout", "_retry", "_sleep")

    def __init__(self, client: Any, model: str, dimension: int, timeout: float | None = None, retry_policy: RetryPolicy = NO_RETRY, sleep: SleepFn = asyncio.sleep) -> None:
        self._client = client
        self._model = model
        self._dimension = dimension
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be > 0 or None, got {timeout}")
        self._timeout = timeout
        self._retry = retry_policy
        self._sleep = sleep


    @classmethod
    def from_settings(cls, settings: Any, retry_policy: RetryPolicy = NO_RETRY) -> EmbeddingClient:
        """Build a client from ``Settings``; raises ``ConfigError`` without an API key."""
        client = genai.Client(api_key=settings.api_key())
        logger.info("[EMBED] Gemini embedding client ready: %s (dimension=%d)", settings.EMBEDDING_MODEL, settings.EMBEDDING_DIMENSION)
        return cls(client, model=settings.EMBEDDING_MODEL, dimension=settings.EMBEDDING_DIMENSION, timeout=settings.REMOTE_TIMEOUT_SECONDS, retry_policy=retry_policy)


    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model(self) -> str:
        return self._model

    # ── Single text ────────────────────────────────────────────────────

    async def embed(self, text: str) -> Vector:
        """
        Embed one text.

        Raises
        ------
        EmbeddingError
            Empty input, remote failure / timeout, unrecognised response
            shape, or a vector whose length is not D.
        """
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text.")

        try:
            response = await self._retry.call(lambda: self._request(text), sleep=self._sleep)
        except asyncio.TimeoutError as exc:
            raise EmbeddingError(f"Embedding request timed out after {self._timeout}s.") from exc
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        vector = parse_embedding_response(response)
        if len(vector) != self._dimension:
            raise EmbeddingError(f"Embedding has dimension {len(vector)}, expected {self._dimension}.")
        return vector


    async def _request(self, text: str) -> Any:
        call = self._client.aio.models.embed_content(model=self._model, contents=text, config=types.EmbedContentConfig(output_dimensionality=self._dimension))
        if self._timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self._timeout)

    # ── Batch (offline) ────────────────────────────────────────────────

    async def embed_batch(self, texts: Sequence[str], batch_size: int, inter_batch_delay: float, ids: Sequence[str] | None = None, on_batch: BatchCallback | None = None) -> list[Vector]:
        """
        Embed *texts* in order, ``batch_size`` at a time.

        Parameters
        ----------
        texts
            Texts to embed.
        batch_size
            Concurrent requests per batch.
        inter_batch_delay
            Seconds to pause between consecutive batches.
        ids
            Optional identifiers parallel to *texts*, used in error reports.
        on_batch
            Called with ``(batch_number, total_batches)`` after each batch.

        Raises
        ------
        BatchEmbeddingError
            The first failing item in a batch; nothing is returned.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be ≥ 1, got {batch_size}")
        if inter_batch_delay < 0:
            raise ValueError(f"inter_batch_delay must be ≥ 0, got {inter_batch_delay}")
        if ids is not None and len(ids) != len(texts):
            raise ValueError(f"Length mismatch: {len(texts)} texts vs {len(ids)} ids.")

        total_batches = (len(texts) + batch_size - 1) // batch_size
        vectors: list[Vector] = []
        logger.info("[EMBED] Embedding %d text(s) in %d batch(es) of %d.", len(texts), total_batches, batch_size)

        for start in range(0, len(texts), batch_size):
            batch = texts[start : start + batch_size]
            batch_number = start // batch_size + 1
            t_batch = time.perf_counter()

            results = await asyncio.gather(*(self.embed(text) for text in batch), return_exceptions=True)

            for offset, result in enumerate(results):
                if isinstance(result, BaseException):
                    index = start + offset
                    chunk_id = ids[index] if ids is not None else None
                    logger.error("[EMBED] Batch %d/%d failed at item %d (id=%s): %s", batch_number, total_batches, index, chunk_id, result)
                    raise BatchEmbeddingError(f"Batch {batch_number}/{total_batches} failed at item {index} (id={chunk_id}): {result}", index=index, batch_number=batch_number, chunk_id=chunk_id) from result
            vectors.extend(results)  # type: ignore[arg-type]

            logger.info("[EMBED] Batch %d/%d complete (%d item(s), %.1fms).", batch_number, total_batches, len(batch), (time.perf_counter() - t_batch) * 1000)
            if on_batch is not None:
                on_batch(batch_number, total_batches)

            if start + batch_size < len(texts) and inter_batch_delay > 0:
                await self._sleep(inter_batch_delay)

        return vectors


    def __repr__(self) -> str:
        return f"EmbeddingClient(model='{self._model}', dimension={self._dimension})"
