"""Workspace-scoped nearest-chunk retrieval."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from filerag.core.config import get_settings
from filerag.models.file_item import FileItem
from filerag.models.workspace import Workspace
from filerag.services.embedding import Embedder, embed_query, get_embedder
from filerag.services.vector_store import collection_name, search_chunks

logger = logging.getLogger(__name__)

# Vectors written by an in-flight replacement have no committed row yet and
# are dropped after the search, so ask the index for more than k.
_OVERFETCH_FACTOR = 2
_OVERFETCH_EXTRA = 10
_MAX_FETCH = 1000
# Distances equal to this many decimals are ties
_TIE_DECIMALS = 6


@dataclass(frozen=True)
class RetrievedChunk:
    """One ranked result. ``distance`` is cosine distance (0 = identical)."""
    id: uuid.UUID
    file_id: uuid.UUID
    chunk_index: int
    content: str
    distance: float
    created_at: datetime


async def retrieve(
    session: AsyncSession,
    workspace_id: uuid.UUID,
    query_vector: list[float],
    k: int,
    embedding_model: str,
) -> list[RetrievedChunk]:
    """Return up to ``k`` committed chunks of a workspace nearest to ``query_vector``.

    Results are ordered by ascending cosine distance; equal distances keep
    insertion order (older chunk first, then lower chunk index). Only chunks
    embedded with ``embedding_model`` are considered.
    """
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")

    collection = collection_name(embedding_model)
    limit = min(k * _OVERFETCH_FACTOR + _OVERFETCH_EXTRA, _MAX_FETCH)

    while True:
        hits = await search_chunks(collection, query_vector, str(workspace_id), limit=limit)
        results = await _join_committed(session, workspace_id, embedding_model, hits)
        results.sort(key=_rank_key)
        if len(hits) < limit or limit >= _MAX_FETCH:
            break
        # Qdrant cuts equal scores off in arbitrary order, so a tie reaching
        # the end of the page may hide older chunks beyond it.
        if len(results) >= k and _distance_key(hits[-1]["score"]) > _rank_key(results[k - 1])[0]:
            break
        limit = min(limit * 2, _MAX_FETCH)

    logger.debug(
        "Retrieved %d/%d chunks for workspace %s", min(k, len(results)), k, workspace_id
    )
    return results[:k]


def _distance(score: float) -> float:
    return max(0.0, 1.0 - float(score))


def _distance_key(score: float) -> float:
    return round(_distance(score), _TIE_DECIMALS)


def _rank_key(chunk: RetrievedChunk) -> tuple:
    return (round(chunk.distance, _TIE_DECIMALS), chunk.created_at, chunk.chunk_index)


async def _join_committed(
    session: AsyncSession,
    workspace_id: uuid.UUID,
    embedding_model: str,
    hits: list[dict],
) -> list[RetrievedChunk]:
    if not hits:
        return []

    ids = [uuid.UUID(h["id"]) for h in hits]
    stmt = select(FileItem).where(
        FileItem.id.in_(ids),  # type: ignore[attr-defined]
        FileItem.workspace_id == workspace_id,
        FileItem.embedding_model == embedding_model,
    )
    result = await session.execute(stmt)
    rows = {item.id: item for item in result.scalars().all()}

    results = []
    for hit, point_id in zip(hits, ids):
        item = rows.get(point_id)
        if item is None:
            continue
        results.append(
            RetrievedChunk(
                id=item.id,
                file_id=item.file_id,
                chunk_index=item.chunk_index,
                content=item.content,
                distance=_distance(hit["score"]),
                created_at=item.created_at,
            )
        )
    return results


async def search_workspace(
    session: AsyncSession,
    workspace: Workspace,
    query: str,
    k: int | None = None,
    embedder: Embedder | None = None,
) -> list[RetrievedChunk]:
    """Embed ``query`` in the workspace's embedding space and retrieve chunks."""
    embedder = embedder or get_embedder(workspace.embeddings_provider)
    k = k or get_settings().retrieval_limit
    query_vector = await embed_query(embedder, query)
    return await retrieve(session, workspace.id, query_vector, k, embedder.model_name)
