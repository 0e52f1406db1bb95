"""
Pustak - ChunkStore
====================
In-memory, read-only corpus of language-tagged book chunks.

  • Loads the corpus once from a JSON file (``[{id, text, language, embedding?}]``)
  • Read-only lookup by language, preserving corpus order
  • Writes the derived embedded corpus for the offline job

Design decisions:
  • **Immutable value** — the store is built once and handed to the
    ranker and the RAG manager at construction time.  Nothing mutates
    it afterwards, so concurrent requests share it without locking.
  • **Fail loudly at load** — malformed JSON, a non-array document or a
    record missing ``text`` / ``language`` raises ``LoadError``.  A
    corpus with no usable chunks at all is also a ``LoadError``; a
    *single language* with zero chunks is a valid empty result.
  • **Unsupported languages** are skipped with a warning so they can
    never leak into a language-filtered search.
  • **One dimension** — every embedding in the corpus shares length D
    and holds only finite numbers (JSON NaN / Infinity is rejected).

Usage:
    from pustak.src.database.chunk_store import ChunkStore
    store = ChunkStore.load(settings.EMBEDDED_CHUNKS_PATH, require_embeddings=True, expected_dimension=768)
    store.chunks_for(Language.TAMIL)
"""

from __future__ import annotations

import json
import math
from collections.abc import Iterable, Sequence
from numbers import Real
from pathlib import Path

from pustak.src.core.errors import DimensionMismatchError, LoadError
from pustak.src.core.models import Chunk, Language
from pustak.src.utils.logger import get_logger

logger = get_logger(__name__)

# ── Type Aliases ──────────────────────────────────────────────────────
ChunkRecord = dict[str, str | list[float]]

_REQUIRED_FIELDS = ("text", "language")


class ChunkStore:
    """
    Immutable, ordered collection of ``Chunk`` objects indexed by language.

    Parameters
    ----------
    chunks
        Chunks in corpus order.
    source
        Where the chunks came from (for logs and ``repr``).
    """

    __slots__ = ("_chunks", "_by_language", "_dimension", "_source")

    def __init__(self, chunks: Iterable[Chunk], source: str = "<memory>") -> None:
        self._chunks: tuple[Chunk, ...] = tuple(chunks)
        self._source = source

        grouped: dict[Language, list[Chunk]] = {language: [] for language in Language}
        for chunk in self._chunks:
            grouped[chunk.language].append(chunk)
        self._by_language: dict[Language, tuple[Chunk, ...]] = {language: tuple(items) for language, items in grouped.items()}

        self._dimension: int | None = self._resolve_dimension(self._chunks)

    # ══════════════════════════════════════════════════════════════════
    #  LOADING
    # ══════════════════════════════════════════════════════════════════

    @classmethod
    def load(cls, source: str | Path, require_embeddings: bool = False, expected_dimension: int | None = None) -> ChunkStore:
        """
        Load a corpus file.

        Parameters
        ----------
        source
            Path to a JSON array of chunk records.
        require_embeddings
            Reject records without an ``embedding`` (server mode).
        expected_dimension
            If given, every embedding must have exactly this length.

        Raises
        ------
        LoadError
            File missing / unreadable / malformed, a record lacks a
            required field, or no usable chunk remains.
        DimensionMismatchError
            An embedding's length differs from D.
        """
        path = Path(source)
        logger.info("[STORE] Loading corpus from %s", path)

        if not path.is_file():
            raise LoadError(f"Corpus file not found: {path}")

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise LoadError(f"Corpus file {path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise LoadError(f"Corpus file {path} could not be read: {exc}") from exc

        if not isinstance(raw, list):
            raise LoadError(f"Corpus file {path} must contain a JSON array, got {type(raw).__name__}.")

        chunks: list[Chunk] = []
        skipped = 0
        for index, record in enumerate(raw):
            chunk = cls._parse_record(index, record, require_embeddings, expected_dimension)
            if chunk is None:
                skipped += 1
                continue
            chunks.append(chunk)

        if not chunks:
            raise LoadError(f"Corpus file {path} contains no usable chunks ({len(raw)} record(s), {skipped} skipped).")

        store = cls(chunks, source=str(path))
        store._log_summary(skipped)
        return store


    @staticmethod
    def _parse_record(index: int, record: object, require_embeddings: bool, expected_dimension: int | None) -> Chunk | None:
        """Validate one raw record; ``None`` means skip (unsupported language)."""
        if not isinstance(record, dict):
            raise LoadError(f"Record {index} is not a JSON object.")

        for field in _REQUIRED_FIELDS:
            if field not in record:
                raise LoadError(f"Record {index} is missing required field '{field}'.")
            if not isinstance(record[field], str):
                raise LoadError(f"Record {index} field '{field}' must be a string.")

        chunk_id = record.get("id", index)
        language = Language.parse(record["language"].strip().lower())
        if language is None:
            logger.warning("[STORE] Record %d (id=%s) has unsupported language '%s' — excluded.", index, chunk_id, record["language"])
            return None

        embedding: tuple[float, ...] | None = None
        if "embedding" in record and record["embedding"] is not None:
            values = record["embedding"]
            if not isinstance(values, list) or not values or not all(isinstance(v, Real) and not isinstance(v, bool) and math.isfinite(v) for v in values):
                raise LoadError(f"Record {index} (id={chunk_id}) has a malformed embedding.")
            if expected_dimension is not None and len(values) != expected_dimension:
                raise DimensionMismatchError(f"Record {index} (id={chunk_id}) embedding has dimension {len(values)}, expected {expected_dimension}.")
            embedding = tuple(float(v) for v in values)
        elif require_embeddings:
            raise LoadError(f"Record {index} (id={chunk_id}) has no embedding. Run the embedding job first.")

        return Chunk(id=chunk_id, text=record["text"], language=language, embedding=embedding)


    @staticmethod
    def _resolve_dimension(chunks: Sequence[Chunk]) -> int | None:
        dimension: int | None = None
        for chunk in chunks:
            if chunk.embedding is None:
                continue
            if dimension is None:
                dimension = len(chunk.embedding)
            elif len(chunk.embedding) != dimension:
                raise DimensionMismatchError(f"Chunk '{chunk.id}' embedding has dimension {len(chunk.embedding)}, corpus dimension is {dimension}.")
        return dimension


    def _log_summary(self, skipped: int) -> None:
        logger.info("[STORE] Loaded %d chunk(s) from %s (%d skipped, dimension=%s).", len(self._chunks), self._source, skipped, self._dimension)
        for language in Language:
            count = len(self._by_language[language])
            if count:
                logger.info("[STORE]   %-10s %d chunk(s)", language.value, count)
            else:
                logger.warning("[STORE]   %-10s no chunks — queries in this language return no context.", language.value)

    # ══════════════════════════════════════════════════════════════════
    #  READ-ONLY ACCESS
    # ══════════════════════════════════════════════════════════════════

    def chunks_for(self, language: Language) -> tuple[Chunk, ...]:
        """All chunks in *language*, in corpus order (empty tuple if none)."""
        return self._by_language.get(language, ())

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        return self._chunks

    @property
    def dimension(self) -> int | None:
        """Embedding dimension D, or ``None`` for an unembedded corpus."""
        return self._dimension

    @property
    def source(self) -> str:
        return self._source

    def count(self, language: Language | None = None) -> int:
        if language is None:
            return len(self._chunks)
        return len(self.chunks_for(language))

    def languages(self) -> tuple[Language, ...]:
        """Languages that have at least one chunk."""
        return tuple(language for language in Language if self._by_language[language])

    def __len__(self) -> int:
        return len(self._chunks)

    # ══════════════════════════════════════════════════════════════════
    #  DERIVATION & PERSISTENCE
    # ══════════════════════════════════════════════════════════════════

    def with_embeddings(self, vectors: Sequence[Sequence[float]]) -> ChunkStore:
        """
        Return a new store whose chunks carry *vectors* (parallel to corpus order).

        Raises
        ------
        ValueError
            If the number of vectors differs from the number of chunks.
        """
        if len(vectors) != len(self._chunks):
            raise ValueError(f"Length mismatch: {len(vectors)} vectors vs {len(self._chunks)} chunks.")
        embedded = [chunk.model_copy(update={"embedding": tuple(float(v) for v in vector)}) for chunk, vector in zip(self._chunks, vectors)]
        return ChunkStore(embedded, source=self._source)


    def save(self, destination: str | Path) -> Path:
        """
        Write the corpus as a JSON array.

        The file is written to a temporary sibling first and then moved
        into place, so a crash never leaves a half-written corpus behind.
        """
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        records: list[ChunkRecord] = [chunk.to_record() for chunk in self._chunks]  # type: ignore[misc]

        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(path)

        logger.info("[STORE] Saved %d chunk(s) to %s", len(records), path)
        return path


    def __repr__(self) -> str:
        return f"ChunkStore(source='{self._source}', chunks={len(self._chunks)}, dimension={self._dimension})"
