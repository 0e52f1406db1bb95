"""
Shared test fixtures.

Provides: dummy API key, corpus files in tmp_path, fake Gemini embedding
client, fake LangChain chat model.
No test touches the network.
"""

import json
import os

os.environ.setdefault("GOOGLE_API_KEY", "test-key-0000")
os.environ.setdefault("ENV", "dev")

from pathlib import Path  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from langchain_core.messages import AIMessage  # noqa: E402

from pustak.src.core.models import Chunk, Language  # noqa: E402


class FakeGenaiClient:
    """
    Stands in for ``google.genai.Client``.

    ``vectors`` maps input text → vector; unknown text falls back to
    ``default``.  Responses use shape A unless ``shape="B"``.
    """

    def __init__(self, vectors=None, default=None, shape="A", fail_on=None, response=None):
        self.vectors = vectors or {}
        self.default = default
        self.shape = shape
        self.fail_on = set(fail_on or ())
        self.response = response
        self.calls = []
        self.aio = SimpleNamespace(models=SimpleNamespace(embed_content=self._embed_content))

    async def _embed_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if contents in self.fail_on:
            raise RuntimeError(f"remote failure for {contents!r}")
        if self.response is not None:
            return self.response
        values = self.vectors.get(contents, self.default)
        if self.shape == "B":
            return {"embedding": {"values": values}}
        return {"embeddings": [{"values": values}]}


class FakeChatModel:
    """Stands in for ``ChatGoogleGenerativeAI``; records the messages it receives."""

    def __init__(self, answer="The answer.", error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.answer)


class RecordingSleep:
    """Awaitable sleep replacement that records the requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def write_corpus(tmp_path: Path):
    """Write a list of records as a corpus JSON file and return its path."""

    def _write(records, name="chunks.json"):
        path = tmp_path / name
        path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def ranking_records():
    """Three English chunks from the ranking example plus one Tamil chunk."""
    return [
        {"id": 1, "text": "east", "language": "english", "embedding": [1.0, 0.0]},
        {"id": 2, "text": "north", "language": "english", "embedding": [0.0, 1.0]},
        {"id": 3, "text": "mostly east", "language": "english", "embedding": [0.9, 0.1]},
        {"id": 4, "text": "கிழக்கு", "language": "tamil", "embedding": [1.0, 0.0]},
    ]


@pytest.fixture
def ranking_chunks(ranking_records):
    return [Chunk(id=r["id"], text=r["text"], language=Language(r["language"]), embedding=tuple(r["embedding"])) for r in ranking_records]


@pytest.fixture
def recording_sleep():
    return RecordingSleep()
