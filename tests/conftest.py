"""Shared test fixtures — async SQLite in-memory DB, in-memory Qdrant, test client."""

import hashlib
import os
from collections.abc import AsyncGenerator

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("QDRANT_URL", ":memory:")
# Use litellm's bundled model cost map instead of fetching it at import time
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest
from httpx import ASGITransport, AsyncClient
from qdrant_client import AsyncQdrantClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

# Import all models so metadata is populated
import filerag.models  # noqa: F401
from filerag.core.database import get_session
from filerag.main import app
from filerag.models.file import File
from filerag.models.workspace import Workspace
from filerag.services import ingest, retrieval, vector_store

EMBED_DIM = 8


class FakeEmbedder:
    """Deterministic embedder: vectors derived from a SHA-256 of the text.

    ``vectors`` pins explicit vectors for given texts.
    """

    def __init__(self, model_name: str = "fake-embedding-v1", vectors: dict | None = None):
        self._model_name = model_name
        self.vectors = vectors or {}
        self.calls: list[list[str]] = []

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimensions(self) -> int:
        return EMBED_DIM

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        return [self.vectors.get(t) or hash_vector(t) for t in texts]


def hash_vector(text: str) -> list[float]:
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [(b + 1) / 256 for b in digest[:EMBED_DIM]]


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def test_session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as sess:
        yield sess
        await sess.rollback()


@pytest.fixture(autouse=True)
async def qdrant() -> AsyncGenerator[AsyncQdrantClient, None]:
    """Fresh in-memory Qdrant for every test."""
    client = AsyncQdrantClient(location=":memory:")
    vector_store._client = client
    yield client
    vector_store._client = None
    await client.close()


@pytest.fixture
def embedder(monkeypatch) -> FakeEmbedder:
    """Replace the configured embedding strategy with a FakeEmbedder."""
    fake = FakeEmbedder()
    monkeypatch.setattr(ingest, "get_embedder", lambda provider=None: fake)
    monkeypatch.setattr(retrieval, "get_embedder", lambda provider=None: fake)
    return fake


@pytest.fixture
async def workspace(session) -> Workspace:
    ws = Workspace(name="Research")
    session.add(ws)
    await session.commit()
    await session.refresh(ws)
    return ws


@pytest.fixture
def make_file(session):
    """Factory creating a pending File row in a workspace."""

    async def _make(workspace: Workspace, name: str = "notes.txt", file_type: str = "txt") -> File:
        file = File(workspace_id=workspace.id, name=name, file_type=file_type)
        session.add(file)
        await session.commit()
        await session.refresh(file)
        return file

    return _make


@pytest.fixture
async def client(session) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client with DB session override."""

    async def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
