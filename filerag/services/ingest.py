"""File ingestion — extract, chunk, embed and store one file as a unit of work."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from filerag.core.config import get_settings
from filerag.core.errors import CorruptFileError, IngestionError
from filerag.models.file import File, FileStatus
from filerag.models.workspace import Workspace
from filerag.services.chunking import chunk_text
from filerag.services.embedding import Embedder, get_embedder
from filerag.services.extract import extract_text, resolve_file_type
from filerag.services.file_store import replace_file_items

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    file_id: uuid.UUID
    chunk_count: int
    char_count: int
    embedding_model: str


async def create_file(
    session: AsyncSession,
    workspace: Workspace,
    filename: str,
    content: bytes,
    declared_type: str | None = None,
    storage_path: str = "",
) -> File:
    """Register an uploaded file in ``pending`` state.

    Raises:
        UnsupportedFormatError: If the type cannot be resolved.
    """
    file_type = resolve_file_type(filename, declared_type)
    file = File(
        workspace_id=workspace.id,
        name=filename,
        file_type=file_type.value,
        storage_path=storage_path,
        size=len(content),
    )
    session.add(file)
    await session.commit()
    await session.refresh(file)
    return file


async def process_file(
    session: AsyncSession,
    file: File,
    content: bytes,
    embedder: Embedder | None = None,
    chunk_size: int | None = None,
    chunk_overlap: int | None = None,
) -> IngestResult:
    """Run a file through the whole pipeline and replace its chunk set.

    On success the file is ``ready`` and its previous chunks are gone. On
    failure the file is marked ``error``, its previous chunks stay in place,
    and the typed error is re-raised to the caller.
    """
    settings = get_settings()
    chunk_size = chunk_size or settings.chunk_size
    chunk_overlap = settings.chunk_overlap if chunk_overlap is None else chunk_overlap
    file_id = file.id

    file.status = FileStatus.PROCESSING
    file.error_message = None
    session.add(file)
    await session.commit()

    try:
        if embedder is None:
            workspace = await session.get(Workspace, file.workspace_id)
            if workspace is None:
                raise ValueError(f"Workspace {file.workspace_id} not found")
            embedder = get_embedder(workspace.embeddings_provider)

        # 1. Extract
        text = extract_text(file.file_type, content)
        if not text:
            raise CorruptFileError("No extractable text")

        # 2. Chunk
        chunks = chunk_text(text, chunk_size=chunk_size, chunk_overlap=chunk_overlap)

        # 3. Embed
        vectors = await embedder.embed([c.content for c in chunks])

        # 4. Store (commits the status change together with the rows)
        file.status = FileStatus.READY
        file.error_message = None
        file.size = len(content)
        await replace_file_items(session, file, chunks, vectors, embedder.model_name)

    except IngestionError as exc:
        logger.warning("Ingestion failed for file %s: %s", file_id, exc)
        await _mark_error(session, file, f"{exc.code}: {exc.message}")
        raise
    except Exception as exc:
        logger.exception("Ingestion failed for file %s", file_id)
        await _mark_error(session, file, str(exc))
        raise

    logger.info("Ingested file %s: %d chunks, %d chars", file_id, len(chunks), len(text))
    return IngestResult(
        file_id=file_id,
        chunk_count=len(chunks),
        char_count=len(text),
        embedding_model=embedder.model_name,
    )


async def _mark_error(session: AsyncSession, file: File, message: str) -> None:
    await session.rollback()
    await session.refresh(file)
    file.status = FileStatus.ERROR
    file.error_message = message[:2000]
    session.add(file)
    await session.commit()
