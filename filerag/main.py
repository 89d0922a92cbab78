"""FastAPI application entrypoint."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from filerag.api.v1 import v1_router
from filerag.core.database import close_db, init_db
from filerag.core.logging import configure_logging
from filerag.services.vector_store import close_qdrant_client


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    configure_logging()
    # Startup: ensure tables exist (use Alembic in production)
    await init_db()
    yield
    await close_qdrant_client()
    await close_db()


app = FastAPI(
    title="filerag",
    version="0.1.0",
    description="Workspace-scoped file ingestion and retrieval for RAG chat",
    lifespan=lifespan,
)

app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}
