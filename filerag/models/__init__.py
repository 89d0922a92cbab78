"""Import all models so SQLModel.metadata picks them up."""

from filerag.models.file import File, FileRead, FileStatus, FileUpdate
from filerag.models.file_item import FileItem, FileItemRead
from filerag.models.workspace import (
    EmbeddingsProvider,
    Workspace,
    WorkspaceCreate,
    WorkspaceRead,
)

__all__ = [
    "EmbeddingsProvider",
    "File",
    "FileItem",
    "FileItemRead",
    "FileRead",
    "FileStatus",
    "FileUpdate",
    "Workspace",
    "WorkspaceCreate",
    "WorkspaceRead",
]
