"""
Pustak - Application Entry Point
=================================
FastAPI application factory.

On startup (lifespan) the service is assembled once, in dependency order:

    settings.api_key()          → ConfigError if GOOGLE_API_KEY is missing
    ChunkStore.load(...)        → LoadError / DimensionMismatchError
    SimilarityRanker(store)
    EmbeddingClient / AnswerGenerator
    RAGManager(...)             → app.state.rag_manager

Any startup error is logged and re-raised so the process never serves
with a missing or partial corpus.

Run:
    pustak-server
    python -m pustak.src.main
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pustak.config.settings import Settings, settings
from pustak.src.api.routes import error_response, router
from pustak.src.core.answer_generator import AnswerGenerator
from pustak.src.core.embedding_client import EmbeddingClient
from pustak.src.core.errors import PustakError
from pustak.src.core.rag_engine import RAGManager
from pustak.src.core.ranker import SimilarityRanker
from pustak.src.database.chunk_store import ChunkStore
from pustak.src.utils.logger import get_logger

logger = get_logger(__name__)


def build_rag_manager(config: Settings) -> RAGManager:
    """Assemble the retrieval and generation stack from *config*."""
    config.api_key()

    store = ChunkStore.load(config.EMBEDDED_CHUNKS_PATH, require_embeddings=True, expected_dimension=config.EMBEDDING_DIMENSION)
    ranker = SimilarityRanker(store)
    embedding_client = EmbeddingClient.from_settings(config)
    answer_generator = AnswerGenerator.from_settings(config)

    return RAGManager(store, ranker, embedding_client, answer_generator, top_k=config.TOP_K, history_limit=config.HISTORY_LIMIT)


def create_app(config: Settings = settings, rag_manager: RAGManager | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Parameters
    ----------
    config
        Settings used to build the stack at startup.
    rag_manager
        Pre-built manager (tests); skips the startup assembly.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "rag_manager", None) is None:
            try:
                app.state.rag_manager = build_rag_manager(config)
            except PustakError:
                logger.critical("Startup aborted.", exc_info=True)
                raise
        logger.info("Application startup complete (%d chunk(s) loaded).", len(app.state.rag_manager.store))
        yield
        logger.info("Application shutdown")

    app = FastAPI(title="Pustak", description="Multilingual question answering over a book corpus", version="0.1.0", lifespan=lifespan)
    app.state.rag_manager = rag_manager

    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=False, allow_methods=["*"], allow_headers=["*"])

    @app.exception_handler(RequestValidationError)
    async def _bad_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("[API] Malformed body for %s: %s", request.url.path, exc.errors())
        return error_response(400, "Invalid request body", str(exc.errors()))

    app.include_router(router)
    return app


def run(**uvicorn_kwargs: Any) -> None:
    """Console-script entry point: serve on ``settings.PORT``."""
    logger.info("Server running on http://localhost:%d", settings.PORT)
    uvicorn.run(create_app(), host="0.0.0.0", port=settings.PORT, **uvicorn_kwargs)


if __name__ == "__main__":
    run()
