# FILE: tests/conftest.py
"""
Pytest configuration for the ragchat test suite.

Configures:
- an in-memory SQLite database shared across threads (StaticPool)
- a deterministic fake OpenAI client (no network)
- a FastAPI TestClient wired to both
"""
import os
import re
import tempfile
import zlib
from types import SimpleNamespace

# must be set before ragchat.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="ragchat-uploads-")
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENAI_BASE_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ragchat.core.config import settings
from ragchat.core.dependencies import get_db
from ragchat.db.base import Base
from ragchat.db.init_db import init_db
from ragchat.main import app
from ragchat.services import openai_client
from ragchat.services.title_service import TITLE_SYSTEM_PROMPT

pytest_plugins = ["pytest_asyncio"]


def fake_embedding(text: str, dim: int = None) -> list:
    """Hashed bag-of-words vector: texts sharing words point the same way."""
    dim = dim or settings.EMBEDDING_DIMENSIONS
    vec = [0.0] * dim
    for word in re.findall(r"\w+", text.lower()):
        vec[zlib.crc32(word.encode()) % dim] += 1.0
    return vec


class FakeOpenAI:
    """Stands in for ``openai.OpenAI`` with canned completions."""

    def __init__(self):
        self.reply_text = "Fake answer from the model."
        self.title_text = "Fake Title"
        self.embedding_calls = []
        self.chat_calls = []
        self.embeddings = SimpleNamespace(create=self._create_embeddings)
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create_completion))

    def _create_embeddings(self, model, input, dimensions=None, **kwargs):
        self.embedding_calls.append(list(input))
        return SimpleNamespace(data=[
            SimpleNamespace(index=i, embedding=fake_embedding(text, dimensions))
            for i, text in enumerate(input)
        ])

    def _create_completion(self, model, messages, stream=False, **kwargs):
        self.chat_calls.append({"model": model, "messages": messages, "stream": stream})
        is_title = messages and messages[0].get("content") == TITLE_SYSTEM_PROMPT
        text = self.title_text if is_title else self.reply_text
        if not stream:
            return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])
        pieces = re.findall(r"\S+\s*", text)
        return iter(
            [SimpleNamespace(choices=[])]
            + [SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=p))]) for p in pieces]
            + [SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=None))])]
        )

    @property
    def reply_calls(self):
        return [c for c in self.chat_calls if c["messages"][0].get("content") != TITLE_SYSTEM_PROMPT]


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_openai(monkeypatch):
    fake = FakeOpenAI()
    monkeypatch.setattr(openai_client, "get_client", lambda: fake)
    return fake


@pytest.fixture
def client(engine, fake_openai):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = Session()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def upload(client):
    """Post a file to the upload endpoint."""

    def _upload(filename, content, chat_id=None, content_type="text/plain"):
        data = {"chat_id": str(chat_id)} if chat_id is not None else {}
        if isinstance(content, str):
            content = content.encode("utf-8")
        return client.post(
            "/api/v1/documents/upload",
            files={"file": (filename, content, content_type)},
            data=data,
        )

    return _upload
