"""
Pustak - API Routes
====================
  - GET  /      → plain-text liveness string
  - POST /chat  → answer a question about the book in one of six languages

Each handler is a thin controller: validate the body, delegate to the
``RAGManager`` held on ``app.state``, shape the response.  Validation
happens before any remote call.  Every failure is turned into a JSON
``{error, details}`` body here; no exception reaches the transport.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from pustak.config.prompt_templates import LIVENESS_MESSAGE
from pustak.src.core.errors import InvalidRequestError, PustakError
from pustak.src.core.models import SUPPORTED_LANGUAGES, HistoryMessage, Language
from pustak.src.core.rag_engine import RAGManager
from pustak.src.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


class ChatRequest(BaseModel):
    """``text`` and ``language`` are checked by hand so a missing field is a 400, not a 422."""

    text: str | None = None
    language: str | None = None
    history: list[HistoryMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    success: bool = True
    question: str
    language: Language
    answer: str


def get_rag_manager(request: Request) -> RAGManager:
    """Dependency: the ``RAGManager`` built during app startup."""
    return request.app.state.rag_manager


def error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


def validate_chat_request(body: ChatRequest) -> tuple[str, Language]:
    """
    Return the stripped question and parsed language.

    Raises
    ------
    InvalidRequestError
        ``text`` or ``language`` missing / blank, or language not exactly
        one of the six lowercase tags.
    """
    text = (body.text or "").strip()
    language_tag = body.language or ""

    if not text or not language_tag.strip():
        missing = [name for name, value in (("text", text), ("language", language_tag.strip())) if not value]
        raise InvalidRequestError("Both 'text' and 'language' are required.", details=f"Missing field(s): {', '.join(missing)}")

    language = Language.parse(language_tag)
    if language is None:
        raise InvalidRequestError(f"Unsupported language '{body.language}'. Supported languages: {', '.join(SUPPORTED_LANGUAGES)}", details=f"Valid languages (exact lowercase tags): {', '.join(SUPPORTED_LANGUAGES)}")

    return text, language


@router.get("/", response_class=PlainTextResponse)
async def liveness() -> str:
    return LIVENESS_MESSAGE


@router.post("/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, rag: RAGManager = Depends(get_rag_manager)) -> ChatResponse | JSONResponse:
    """Answer one question from the book corpus."""
    try:
        text, language = validate_chat_request(body)
    except InvalidRequestError as exc:
        logger.info("[API] Rejected /chat request: %s", exc.message)
        return error_response(400, exc.message, exc.details)

    try:
        answer = await rag.generate_response(text, language, body.history)
    except PustakError as exc:
        logger.exception("[API] /chat failed (%s).", type(exc).__name__)
        return error_response(500, "Failed to generate answer", str(exc))
    except Exception as exc:
        logger.exception("[API] /chat failed with an unexpected error.")
        return error_response(500, "Internal server error", str(exc))

    return ChatResponse(question=text, language=language, answer=answer)
