"""Workspace model — the isolation boundary for files, chunks and queries."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel

from filerag.models.base import TimestampMixin, new_uuid


class EmbeddingsProvider(StrEnum):
    OPENAI = "openai"
    LOCAL = "local"


class Workspace(TimestampMixin, SQLModel, table=True):
    __tablename__ = "workspaces"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    description: str = Field(default="", max_length=1000)

    # Every chunk ingested into this workspace is embedded with this provider,
    # so all of its vectors share one embedding space.
    embeddings_provider: EmbeddingsProvider = Field(default=EmbeddingsProvider.OPENAI)


# ── Pydantic schemas ─────────────────────────────────────────

class WorkspaceCreate(SQLModel):
    name: str = Field(max_length=255)
    description: str = Field(default="", max_length=1000)
    embeddings_provider: EmbeddingsProvider | None = None


class WorkspaceRead(SQLModel):
    id: uuid.UUID
    name: str
    description: str
    embeddings_provider: EmbeddingsProvider
    created_at: datetime
    updated_at: datetime
