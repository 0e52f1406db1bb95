"""
Pustak - Retrieval Check
=========================
Embeds one question and prints the top-K chunks for a language, with
scores.  Used to verify the embedded corpus before starting the server.
No answer is generated.

Run:
    python -m pustak.scripts.query_corpus "Who is the king?" --language english -k 5
"""

from __future__ import annotations

import argparse
import asyncio
import sys


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    from pustak.src.core.models import SUPPORTED_LANGUAGES

    parser = argparse.ArgumentParser(prog="query_corpus", description="Pustak — show the chunks retrieved for a question.")
    parser.add_argument("question", help="Question to embed.")
    parser.add_argument("--language", "-l", required=True, choices=SUPPORTED_LANGUAGES)
    parser.add_argument("-k", type=int, default=None, help="Number of chunks (default: settings.TOP_K).")
    return parser.parse_args(argv)


async def _query(question: str, language_tag: str, k: int | None) -> int:
    from pustak.config.settings import settings
    from pustak.src.core.embedding_client import EmbeddingClient
    from pustak.src.core.models import Language
    from pustak.src.core.ranker import SimilarityRanker
    from pustak.src.database.chunk_store import ChunkStore

    store = ChunkStore.load(settings.EMBEDDED_CHUNKS_PATH, require_embeddings=True, expected_dimension=settings.EMBEDDING_DIMENSION)
    ranker = SimilarityRanker(store)
    client = EmbeddingClient.from_settings(settings)
    language = Language(language_tag)

    print(f"Corpus: {len(store)} chunk(s), {store.count(language)} in {language.value}.\n")
    print(f"Query: {question}")
    print("=" * 60)

    vector = await client.embed(question)
    results = ranker.top_k(vector, language, k or settings.TOP_K)

    if not results:
        print(f"\nNo chunks available for '{language.value}'.")
        return 0

    for i, result in enumerate(results, 1):
        print(f"\n--- Result {i} ---")
        print(f"  Chunk id:  {result.id}")
        print(f"  Score:     {result.score:.4f}")
        print("  Text:")
        print(f"    {result.text}")
    return 0


def main(argv: list[str] | None = None) -> int:
    from pustak.src.core.errors import PustakError

    args = _parse_args(argv)
    try:
        return asyncio.run(_query(args.question, args.language, args.k))
    except PustakError as exc:
        print(f"\n[ERROR] {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
