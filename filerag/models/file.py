"""File model — an uploaded document owned by one workspace."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel

from filerag.models.base import TimestampMixin, new_uuid


class FileStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class File(TimestampMixin, SQLModel, table=True):
    __tablename__ = "files"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", nullable=False, index=True)

    name: str = Field(max_length=255, nullable=False)
    description: str = Field(default="", max_length=1000)
    file_type: str = Field(max_length=20, nullable=False)
    # Location of the original upload in object storage (opaque here)
    storage_path: str = Field(default="", max_length=1000)
    size: int = Field(default=0)

    status: FileStatus = Field(default=FileStatus.PENDING)
    error_message: str | None = Field(default=None, max_length=2000)

    # Describes the committed chunk set
    chunk_count: int = Field(default=0)
    embedding_model: str | None = Field(default=None, max_length=255)


# ── Pydantic schemas ─────────────────────────────────────────

class FileUpdate(SQLModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = Field(default=None, max_length=1000)


class FileRead(SQLModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    name: str
    description: str
    file_type: str
    storage_path: str
    size: int
    status: FileStatus
    error_message: str | None
    chunk_count: int
    embedding_model: str | None
    created_at: datetime
    updated_at: datetime
