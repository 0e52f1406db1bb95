"""
Pustak - Answer Generator
==========================
Wraps the Gemini chat model (LangChain ``ChatGoogleGenerativeAI``) that
writes the final answer from the retrieved context.

Message layout sent to the model::

    SystemMessage   rules + target language + decline wording
    Human / AI ...  prior conversation turns (client supplied)
    HumanMessage    RAG_PROMPT_TEMPLATE(context, question, language)

Failures (remote error, timeout, empty answer) raise ``GenerationError``;
nothing is retried.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from pustak.config.prompt_templates import LANGUAGE_NAMES, NO_CONTEXT_RESPONSES, RAG_PROMPT_TEMPLATE, SYSTEM_PROMPT
from pustak.src.core.errors import GenerationError
from pustak.src.core.models import HistoryMessage, Language
from pustak.src.utils.logger import get_logger

logger = get_logger(__name__)


class AnswerGenerator:
    """
    Generates an answer for one question from a context string.

    Parameters
    ----------
    llm
        A LangChain chat model exposing ``ainvoke``.
    timeout
        Seconds before the remote call is abandoned (``None`` = no limit).
    """

    __slots__ = ("_llm", "_timeout")

    def __init__(self, llm: Any, timeout: float | None = None) -> None:
        self._llm = llm
        if timeout is not None and timeout <= 0:
            raise ValueError(f"timeout must be > 0 or None, got {timeout}")
        self._timeout = timeout


    @classmethod
    def from_settings(cls, settings: Any) -> AnswerGenerator:
        """Initialise the Gemini LLM via LangChain; raises ``ConfigError`` without an API key."""
        from langchain_google_genai import ChatGoogleGenerativeAI

        llm = ChatGoogleGenerativeAI(model=settings.LLM_MODEL, temperature=settings.LLM_TEMPERATURE, google_api_key=settings.api_key())
        logger.info("LLM initialised: %s (temperature=%.1f)", settings.LLM_MODEL, settings.LLM_TEMPERATURE)
        return cls(llm, timeout=settings.REMOTE_TIMEOUT_SECONDS)


    async def generate(self, context: str, question: str, language: Language, history: Sequence[HistoryMessage] | None = None) -> str:
        """
        Ask the LLM to answer *question* from *context* in *language*.

        Raises
        ------
        GenerationError
            Remote failure, timeout, or an empty answer.
        """
        messages = self.build_messages(context, question, language, history)

        t_llm = time.perf_counter()
        try:
            call = self._llm.ainvoke(messages)
            response = await (call if self._timeout is None else asyncio.wait_for(call, timeout=self._timeout))
        except asyncio.TimeoutError as exc:
            raise GenerationError(f"Answer generation timed out after {self._timeout}s.") from exc
        except Exception as exc:
            raise GenerationError(f"Answer generation failed: {exc}") from exc

        answer = self._extract_text(response).strip()
        if not answer:
            raise GenerationError("Answer generation returned an empty response.")

        logger.info("[LLM] Response: %.1fms (%d chars)", (time.perf_counter() - t_llm) * 1000, len(answer))
        return answer


    @staticmethod
    def build_messages(context: str, question: str, language: Language, history: Sequence[HistoryMessage] | None = None) -> list[BaseMessage]:
        language_name = LANGUAGE_NAMES[language]
        messages: list[BaseMessage] = [SystemMessage(content=SYSTEM_PROMPT.format(language_name=language_name, no_context_reply=NO_CONTEXT_RESPONSES[language]))]

        for turn in history or ():
            if turn.role == "user":
                messages.append(HumanMessage(content=turn.content))
            else:
                messages.append(AIMessage(content=turn.content))

        messages.append(HumanMessage(content=RAG_PROMPT_TEMPLATE.format(context=context, question=question, language_name=language_name)))
        return messages


    @staticmethod
    def _extract_text(response: Any) -> str:
        content = response.content if hasattr(response, "content") else response
        if isinstance(content, str):
            return content
        # Content-block lists: [{"type": "text", "text": ...}, ...]
        if isinstance(content, list):
            parts = [block if isinstance(block, str) else str(block.get("text", "")) for block in content if isinstance(block, (str, dict))]
            return "".join(parts)
        return str(content)
