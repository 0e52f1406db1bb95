"""
Pustak - Embedding Generation Script
=====================================
CLI entry point for the one-off offline job:
    1. Validate that ``GOOGLE_API_KEY`` is set (fail-fast).
    2. Build the Gemini ``EmbeddingClient``.
    3. Run ``EmbeddingJob`` over ``chunks.json``.
    4. Print an execution summary.

Flags:
    --source        Unembedded corpus   (default: settings.CHUNKS_PATH)
    --destination   Embedded corpus     (default: settings.EMBEDDED_CHUNKS_PATH)
    --batch-size    Concurrent calls per batch
    --delay         Seconds between batches
    --retries       Attempts per chunk (1 = no retry)

Usage:
    python -m pustak.scripts.generate_embeddings
    python -m pustak.scripts.generate_embeddings --batch-size 5 --delay 2
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    from pustak.config.settings import settings

    parser = argparse.ArgumentParser(prog="generate_embeddings", description="Pustak — embed every book chunk with Gemini and write the embedded corpus.")
    parser.add_argument("--source", type=Path, default=settings.CHUNKS_PATH, help="Unembedded corpus JSON file.")
    parser.add_argument("--destination", type=Path, default=settings.EMBEDDED_CHUNKS_PATH, help="Output JSON file with embeddings.")
    parser.add_argument("--batch-size", type=int, default=settings.EMBED_BATCH_SIZE, help="Chunks embedded concurrently per batch.")
    parser.add_argument("--delay", type=float, default=settings.EMBED_BATCH_DELAY_SECONDS, help="Seconds to wait between batches.")
    parser.add_argument("--retries", type=int, default=settings.EMBED_MAX_ATTEMPTS, help="Attempts per chunk before the job aborts (1 = no retry).")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    t_start = time.perf_counter()

    # ── 0. Load settings + .env ────────────────────────────────────────
    try:
        from pustak.config.settings import settings
    except Exception as exc:
        print("\n[FATAL] Configuration error — check your .env file:\n")
        print(f"  {exc}")
        print()
        return 1

    from pustak.src.core.embedding_client import EmbeddingClient, RetryPolicy
    from pustak.src.core.errors import PustakError
    from pustak.src.core.ingestor import EmbeddingJob
    from pustak.src.utils.logger import get_logger

    logger = get_logger(__name__)
    args = _parse_args(argv)
    _print_header(settings, args)

    # ── 1. Embedding client ────────────────────────────────────────────
    try:
        client = EmbeddingClient.from_settings(settings, retry_policy=RetryPolicy(max_attempts=args.retries))
    except PustakError as exc:
        logger.error("%s", exc)
        return 1

    # ── 2. Run the job ─────────────────────────────────────────────────
    job = EmbeddingJob(client, source=args.source, destination=args.destination, batch_size=args.batch_size, inter_batch_delay=args.delay)
    try:
        summary = asyncio.run(job.run())
    except PustakError as exc:
        logger.error("Embedding generation failed: %s", exc)
        if "API key" in str(exc):
            logger.error("  → Check GOOGLE_API_KEY in your .env file")
        return 1

    _print_footer(summary, time.perf_counter() - t_start)
    return 0


# ── Pretty-print helpers ──────────────────────────────────────────────

def _print_header(settings: object, args: argparse.Namespace) -> None:
    print()
    print("=" * 60)
    print("  PUSTAK — Embedding Generation")
    print("=" * 60)
    print(f"  Environment  : {settings.ENV}")                        # type: ignore[attr-defined]
    print(f"  Model        : {settings.EMBEDDING_MODEL}")            # type: ignore[attr-defined]
    print(f"  Dimension    : {settings.EMBEDDING_DIMENSION}")        # type: ignore[attr-defined]
    print(f"  Source       : {args.source}")
    print(f"  Destination  : {args.destination}")
    print(f"  Batch size   : {args.batch_size} (delay {args.delay:.1f}s)")
    print(f"  API Key      : {settings.masked_api_key()}")           # type: ignore[attr-defined]
    print("=" * 60)
    print()


def _print_footer(summary: dict, elapsed: float) -> None:
    print()
    print("=" * 60)
    print("  EMBEDDING GENERATION COMPLETE")
    print("-" * 60)
    print(f"  Total chunks processed : {summary['embedded_chunks']}")
    print(f"  Embedding dimension    : {summary['dimension']}")
    print(f"  Saved to               : {summary['destination']}")
    print(f"  Time taken             : {elapsed:.2f}s")
    print("=" * 60)
    print()


# ── Entry point ────────────────────────────────────────────────────────

if __name__ == "__main__":
    sys.exit(main())
