"""FileItem model — one chunk of a file; its vector lives in Qdrant."""

import uuid
from datetime import datetime

from sqlalchemy import Text, UniqueConstraint
from sqlmodel import Column, Field, SQLModel

from filerag.models.base import new_uuid, utcnow


class FileItem(SQLModel, table=True):
    __tablename__ = "file_items"
    __table_args__ = (UniqueConstraint("file_id", "chunk_index"),)

    # Also the Qdrant point id
    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    file_id: uuid.UUID = Field(foreign_key="files.id", nullable=False, index=True)
    workspace_id: uuid.UUID = Field(foreign_key="workspaces.id", nullable=False, index=True)

    chunk_index: int = Field(nullable=False)
    content: str = Field(sa_column=Column(Text, nullable=False))
    char_count: int = Field(default=0)

    embedding_model: str = Field(max_length=255, nullable=False)

    # Rows are never updated, so there is no updated_at
    created_at: datetime = Field(default_factory=utcnow, nullable=False)


# ── Pydantic schemas ─────────────────────────────────────────

class FileItemRead(SQLModel):
    id: uuid.UUID
    file_id: uuid.UUID
    workspace_id: uuid.UUID
    chunk_index: int
    content: str
    char_count: int
    embedding_model: str
    created_at: datetime
