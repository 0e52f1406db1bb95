"""
Pustak - Domain Models
=======================
Immutable value types shared by the store, the ranker, the RAG manager
and the HTTP layer.

``Chunk`` and ``ScoredChunk`` are frozen pydantic models: a chunk is
created once (by the offline embedding job or the corpus loader) and is
read-only for the life of the process.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, FiniteFloat, field_validator


class Language(str, Enum):
    """The six languages the book corpus is published in."""

    TAMIL = "tamil"
    ENGLISH = "english"
    HINDI = "hindi"
    TELUGU = "telugu"
    MALAYALAM = "malayalam"
    GERMAN = "german"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(member.value for member in cls)

    @classmethod
    def parse(cls, value: str) -> Language | None:
        """Return the matching member, or ``None`` for an unsupported tag."""
        try:
            return cls(value)
        except ValueError:
            return None


SUPPORTED_LANGUAGES: tuple[str, ...] = Language.values()


class Chunk(BaseModel):
    """A span of book text tagged with its language and, once embedded, its vector."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    language: Language
    embedding: tuple[FiniteFloat, ...] | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: object) -> str:
        # Source files use both integer and string ids
        return str(v)

    @property
    def is_embedded(self) -> bool:
        return self.embedding is not None

    def to_record(self) -> dict[str, object]:
        """Serialise to the on-disk corpus record shape."""
        record: dict[str, object] = {"id": self.id, "text": self.text, "language": self.language.value}
        if self.embedding is not None:
            record["embedding"] = list(self.embedding)
        return record


class ScoredChunk(BaseModel):
    """A chunk paired with its cosine similarity to one query."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    score: float

    @property
    def id(self) -> str:
        return self.chunk.id

    @property
    def text(self) -> str:
        return self.chunk.text

    @property
    def language(self) -> Language:
        return self.chunk.language


class HistoryMessage(BaseModel):
    """One prior conversation turn supplied by the client."""

    role: Literal["user", "assistant"]
    content: str
