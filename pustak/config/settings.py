"""
Pustak - Centralized Configuration
===================================
Uses ``pydantic-settings`` (``BaseSettings``) to load *all* configuration
from environment variables and the project-level ``.env`` file.

Security
--------
- ``GOOGLE_API_KEY`` is typed as ``SecretStr``.  The raw value is never
  exposed in repr, logs, or tracebacks.  The key is only needed by the
  embedding / generation path, so a missing key is reported by
  ``Settings.api_key()`` as a ``ConfigError`` at the point of startup that
  needs it (server lifespan, offline job), not at import time.

Paths
-----
All filesystem paths are ``Path.resolve()``-d at class level so they
work identically on Windows, WSL, and Linux.

Concurrency
-----------
``EMBED_BATCH_SIZE`` bounds how many embedding calls the offline job
keeps in flight at once; ``EMBED_BATCH_DELAY_SECONDS`` is the pause
between batches (Gemini free-tier rate limits).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pustak.src.core.errors import ConfigError


class Settings(BaseSettings):
    """
    Application-wide settings.

    Every field is loaded from environment variables (or ``.env``).

    Attributes
    ----------
    GOOGLE_API_KEY : SecretStr | None
        API key for Google AI Studio (Gemini).  Required by the server and
        the embedding job; read it through ``settings.api_key()``.
    ENV : Literal["dev", "prod"]
        Environment mode controlling logging verbosity.
    CHUNKS_PATH : Path
        Unembedded corpus (``[{id, text, language}]``).
    EMBEDDED_CHUNKS_PATH : Path
        Corpus produced by the embedding job and loaded by the server.
    EMBEDDING_MODEL : str
        Gemini embedding model identifier.
    EMBEDDING_DIMENSION : int
        Vector length D requested from the embedding model and enforced
        across the whole corpus.
    LLM_MODEL : str
        Model identifier for the answer-generation LLM.
    TOP_K : int
        Number of chunks retrieved per question.
    HISTORY_LIMIT : int
        Maximum number of prior chat turns forwarded to the LLM.
    REMOTE_TIMEOUT_SECONDS : float
        Upper bound on every remote Gemini call; must be > 0.
    """

    # ── Resolved Absolute Paths ────────────────────────────────────────
    BASE_DIR: Path = Path(__file__).resolve().parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    CHUNKS_PATH: Path = DATA_DIR / "chunks.json"
    EMBEDDED_CHUNKS_PATH: Path = DATA_DIR / "chunks-with-embeddings.json"

    # ── Environment Mode ───────────────────────────────────────────────
    ENV: Literal["dev", "prod"] = "dev"

    # ── API Keys ───────────────────────────────────────────────────────
    GOOGLE_API_KEY: SecretStr | None = None

    # ── Model Configuration ────────────────────────────────────────────
    EMBEDDING_MODEL: str = "gemini-embedding-001"
    EMBEDDING_DIMENSION: int = 768
    LLM_MODEL: str = "gemini-2.0-flash"
    LLM_TEMPERATURE: float = 0.3

    # ── Retrieval ──────────────────────────────────────────────────────
    TOP_K: int = 5
    HISTORY_LIMIT: int = 10

    # ── Offline Embedding Job ──────────────────────────────────────────
    EMBED_BATCH_SIZE: int = 10
    EMBED_BATCH_DELAY_SECONDS: float = 1.0
    EMBED_MAX_ATTEMPTS: int = 1

    # ── Remote Calls ───────────────────────────────────────────────────
    REMOTE_TIMEOUT_SECONDS: float = 30.0

    # ── HTTP Server ────────────────────────────────────────────────────
    PORT: int = 5000

    # ── Validators ─────────────────────────────────────────────────────

    @field_validator("EMBEDDING_DIMENSION", "TOP_K", "EMBED_BATCH_SIZE", "EMBED_MAX_ATTEMPTS")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"must be ≥ 1, got {v}")
        return v


    @field_validator("EMBED_BATCH_DELAY_SECONDS")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"must be ≥ 0, got {v}")
        return v


    @field_validator("REMOTE_TIMEOUT_SECONDS")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"REMOTE_TIMEOUT_SECONDS must be > 0, got {v}")
        return v


    @field_validator("LLM_TEMPERATURE")
    @classmethod
    def _temperature_range(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError(f"LLM_TEMPERATURE must be 0–2, got {v}")
        return v

    # ── Accessors ──────────────────────────────────────────────────────

    def api_key(self) -> str:
        """Return the raw Gemini API key, or raise ``ConfigError`` if unset."""
        if self.GOOGLE_API_KEY is None or not self.GOOGLE_API_KEY.get_secret_value().strip():
            raise ConfigError("GOOGLE_API_KEY is not set. Add it to your environment or .env file.")
        return self.GOOGLE_API_KEY.get_secret_value()


    def masked_api_key(self) -> str:
        if self.GOOGLE_API_KEY is None:
            return "<missing>"
        raw = self.GOOGLE_API_KEY.get_secret_value()
        return f"****{raw[-4:]}" if len(raw) > 4 else "****"

    # ── Pydantic Settings Configuration ────────────────────────────────
    model_config = SettingsConfigDict(env_file=Path(__file__).resolve().parent.parent / ".env", env_file_encoding="utf-8", extra="ignore")


# ── Singleton Instance ─────────────────────────────────────────────────
# Import this throughout the project:
#     from pustak.config.settings import settings
settings = Settings()
