# FILE: tests/conftest.py
"""
Pytest configuration for the FAQ assistant test suite.

Configures:
- pytest-asyncio for async test support
- fake completer / embedder / corpus so no provider is called
- in-memory SQLite shared across threads (StaticPool)
"""
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import json
from typing import Any, Dict, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

pytest_plugins = ["pytest_asyncio"]


# =============================================================================
# FAKES
# =============================================================================

class FakeCompleter:
    """
    Scripted completer.

    json_responses are consumed in order by complete_json (the last one
    repeats). stream_tokens are replayed by every stream() call; stream_error
    makes stream() emit an error event after the tokens.
    """

    def __init__(
        self,
        json_responses: Optional[List[Any]] = None,
        stream_tokens: Optional[List[str]] = None,
        stream_error: Optional[str] = None,
        json_error: Optional[Exception] = None,
    ):
        self.json_responses = list(json_responses or ["{}"])
        self.stream_tokens = list(stream_tokens if stream_tokens is not None else ["Hello", " there."])
        self.stream_error = stream_error
        self.json_error = json_error
        self.json_calls: List[Dict[str, Any]] = []
        self.stream_calls: List[Dict[str, Any]] = []
        self.closed_streams = 0

    async def complete_json(self, system_prompt: str, user_content: str, temperature: float = 0.0) -> str:
        self.json_calls.append({"system": system_prompt, "user": user_content})
        if self.json_error is not None:
            raise self.json_error
        raw = self.json_responses.pop(0) if len(self.json_responses) > 1 else self.json_responses[0]
        return raw if isinstance(raw, str) else json.dumps(raw)

    async def stream(self, system_prompt, messages, max_tokens=None, temperature=0.0):
        self.stream_calls.append({
            "system": system_prompt,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        try:
            yield {"type": "metadata", "provider": "fake", "model": "fake"}
            for token in self.stream_tokens:
                yield {"type": "token", "text": token}
            if self.stream_error:
                yield {"type": "error", "message": self.stream_error}
                return
            yield {"type": "done", "provider": "fake", "model": "fake"}
        finally:
            self.closed_streams += 1


class FakeEmbedder:
    """Returns a fixed vector, or one chosen by a substring of the input."""

    def __init__(self, vector: Optional[List[float]] = None, by_text: Optional[Dict[str, List[float]]] = None, error=None):
        self.vector = vector or [1.0, 0.0, 0.0]
        self.by_text = by_text or {}
        self.error = error
        self.inputs: List[str] = []

    async def embed(self, text: str) -> List[float]:
        self.inputs.append(text)
        if self.error is not None:
            raise self.error
        for needle, vec in self.by_text.items():
            if needle in text:
                return vec
        return self.vector


class FakeCorpus:
    def __init__(self, docs=None):
        self.docs = list(docs or [])

    def load(self):
        return list(self.docs)


def extraction_json(**fields) -> str:
    payload = {
        "keywords": [],
        "corrected_question": "",
        "updated_json": {},
    }
    payload.update(fields)
    return json.dumps(payload)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def db_engine():
    from faqbot.db import init_db

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def faq_docs():
    from faqbot.chat.retriever import FAQDocument

    return [
        FAQDocument(
            id=1,
            question="Can children join the tours?",
            answer="Children of all ages are welcome; under 5s travel free.",
            embedding=[1.0, 0.0, 0.0],
        ),
        FAQDocument(
            id=2,
            question="What is the cancellation policy?",
            answer="Cancel up to 48 hours before departure for a full refund.",
            embedding=[0.0, 1.0, 0.0],
        ),
        FAQDocument(id=3, question="Draft without vector", answer="-", embedding=None),
    ]


@pytest.fixture
def make_engine(faq_docs):
    """Factory for a ChatEngine wired to fakes."""
    from faqbot.chat.engine import ChatEngine
    from faqbot.chat.extractor import ContextExtractor
    from faqbot.chat.retriever import Retriever
    from faqbot.chat.streamer import AnswerStreamer
    from faqbot.session import SessionStore

    def _make(completer=None, embedder=None, corpus=None, sessions=None, realtime=None, **retriever_kwargs):
        completer = completer or FakeCompleter()
        retriever_kwargs.setdefault("mode", "similarity")
        retriever_kwargs.setdefault("min_similarity", None)
        return ChatEngine(
            extractor=ContextExtractor(completer, collections=["tours", "bookings"]),
            retriever=Retriever(embedder or FakeEmbedder(), **retriever_kwargs),
            streamer=AnswerStreamer(completer),
            corpus=corpus if corpus is not None else FakeCorpus(faq_docs),
            sessions=sessions or SessionStore(idle_ttl_seconds=0),
            realtime=realtime,
        )

    return _make


@pytest.fixture
def client_factory(db_session_factory):
    """TestClient with the chat engine and DB dependencies overridden."""
    from fastapi.testclient import TestClient
    from faqbot.chat.engine import get_chat_engine
    from faqbot.db import get_db
    from main import app

    def _override_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    def _make(engine):
        app.dependency_overrides[get_chat_engine] = lambda: engine
        app.dependency_overrides[get_db] = _override_db
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


def parse_sse(body: str) -> List[Dict[str, Any]]:
    """Split an SSE body into frames: {"event": str|None, "data": str}."""
    frames = []
    for block in body.split("\n\n"):
        if not block.strip():
            continue
        event = None
        data_lines = []
        for line in block.split("\n"):
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: "):
                data_lines.append(line[len("data: "):])
        frames.append({"event": event, "data": "\n".join(data_lines)})
    return frames
