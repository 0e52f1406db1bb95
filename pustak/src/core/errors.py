"""
Pustak - Error Types
=====================
Every failure the service distinguishes derives from ``PustakError``.

Startup (fatal, abort the process):
    ``LoadError``, ``ConfigError``, ``DimensionMismatchError``.

Per-request (caught at the route boundary):
    ``InvalidRequestError`` → 400,
    ``EmbeddingError`` / ``GenerationError`` → 500.

``DimensionMismatchError`` at request time means the corpus and the
embedding model disagree on D, which is a build-time bug rather than a
user error; it is still reported as a 500 instead of crashing the worker.
"""

from __future__ import annotations


class PustakError(Exception):
    """Base class for all service errors."""


class LoadError(PustakError):
    """Corpus file missing, not valid JSON, or a record lacks required fields."""


class ConfigError(PustakError):
    """Required configuration (e.g. the Gemini API key) is missing or invalid."""


class EmbeddingError(PustakError):
    """Remote embedding call failed, timed out, or returned an unrecognised shape."""


class BatchEmbeddingError(EmbeddingError):
    """An item inside an offline embedding batch failed; the whole job aborts."""

    def __init__(self, message: str, index: int, batch_number: int, chunk_id: str | None = None) -> None:
        super().__init__(message)
        self.index = index
        self.batch_number = batch_number
        self.chunk_id = chunk_id


class DimensionMismatchError(PustakError):
    """Two vectors that must share dimension D do not."""


class GenerationError(PustakError):
    """Remote answer generation failed, timed out, or returned nothing."""


class InvalidRequestError(PustakError):
    """Bad ``/chat`` request body."""

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
