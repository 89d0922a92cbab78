"""Chunk store — all-or-nothing persistence of a file's chunk set.

Rows in ``file_items`` are the source of truth; Qdrant holds the vectors under
the same ids. Readers only trust a vector whose row is committed, so the
order of operations below makes a replacement atomic from their side:

1. delete the old rows and insert the new ones (uncommitted)
2. upsert the new vectors under fresh ids
3. commit
4. drop every other vector of the file

A failure before step 3 rolls back the rows and removes the vectors from
step 2, leaving the previous set untouched.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from filerag.core.errors import StorageWriteError
from filerag.models.base import utcnow
from filerag.models.file import File
from filerag.models.file_item import FileItem
from filerag.services.chunking import TextChunk
from filerag.services.vector_store import (
    delete_by_file,
    delete_points,
    ensure_collection,
    upsert_chunks,
)

logger = logging.getLogger(__name__)


async def replace_file_items(
    session: AsyncSession,
    file: File,
    chunks: Sequence[TextChunk],
    vectors: Sequence[Sequence[float]],
    embedding_model: str,
) -> list[FileItem]:
    """Replace every chunk of ``file`` with ``chunks`` and their ``vectors``.

    Any pending changes to ``file`` in the session are committed together
    with the new rows.

    Raises:
        StorageWriteError: If the input is inconsistent or any write fails.
            The previous chunk set is then still in place.
    """
    file_id = file.id
    workspace_id = file.workspace_id

    if len(chunks) != len(vectors):
        raise StorageWriteError(
            f"Got {len(chunks)} chunks but {len(vectors)} vectors for file {file_id}"
        )
    dims = {len(v) for v in vectors}
    if len(dims) > 1 or 0 in dims:
        raise StorageWriteError(f"Vectors for file {file_id} have inconsistent dimensions")

    created_at = utcnow()
    items = [
        FileItem(
            id=uuid.uuid4(),
            file_id=file_id,
            workspace_id=workspace_id,
            chunk_index=tc.index,
            content=tc.content,
            char_count=tc.char_count,
            embedding_model=embedding_model,
            created_at=created_at,
        )
        for tc in chunks
    ]
    new_ids = [str(item.id) for item in items]
    points = [
        {
            "id": str(item.id),
            "vector": list(vector),
            "payload": {
                "workspace_id": str(workspace_id),
                "file_id": str(file_id),
                "chunk_index": item.chunk_index,
                "content": item.content,
            },
        }
        for item, vector in zip(items, vectors)
    ]

    collection: str | None = None
    try:
        await session.execute(delete(FileItem).where(FileItem.file_id == file_id))
        session.add_all(items)
        file.chunk_count = len(items)
        file.embedding_model = embedding_model if items else None
        file.touch()
        session.add(file)
        await session.flush()

        if points:
            collection = await ensure_collection(embedding_model, dims.pop())
            await upsert_chunks(collection, points)

        await session.commit()
    except Exception as exc:
        logger.exception("Writing %d chunks for file %s failed", len(items), file_id)
        await session.rollback()
        if collection is not None:
            try:
                await delete_points(collection, new_ids)
            except Exception:
                # Orphaned vectors have no committed row and are never returned
                logger.exception("Could not remove uncommitted vectors of file %s", file_id)
        raise StorageWriteError(f"Could not store chunks for file {file_id}: {exc}") from exc

    try:
        await delete_by_file(str(file_id), keep_ids=new_ids, keep_in=collection)
    except Exception:
        logger.exception("Could not remove stale vectors of file %s", file_id)

    logger.info("Stored %d chunks for file %s (%s)", len(items), file_id, embedding_model)
    return items


async def list_file_items(session: AsyncSession, file_id: uuid.UUID) -> list[FileItem]:
    """Committed chunks of a file in ordinal order."""
    stmt = (
        select(FileItem)
        .where(FileItem.file_id == file_id)
        .order_by(FileItem.chunk_index)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_file(session: AsyncSession, file: File) -> None:
    """Delete a file together with its chunks and vectors."""
    file_id = file.id
    try:
        await session.execute(delete(FileItem).where(FileItem.file_id == file_id))
        await session.delete(file)
        await session.commit()
    except Exception as exc:
        await session.rollback()
        raise StorageWriteError(f"Could not delete file {file_id}: {exc}") from exc

    try:
        await delete_by_file(str(file_id))
    except Exception:
        # Vectors without a committed row are never returned
        logger.exception("Could not remove vectors of deleted file %s", file_id)
    logger.info("Deleted file %s", file_id)
