"""Qdrant vector store service — collection management, upsert, search, delete.

One collection per embedding model keeps each embedding space separate;
workspaces share a collection and are isolated by payload filtering.
"""

from __future__ import annotations

import re

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    HasIdCondition,
    MatchValue,
    PayloadSchemaType,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from filerag.core.config import get_settings

COLLECTION_PREFIX = "file_items__"

_client: AsyncQdrantClient | None = None


async def get_qdrant_client() -> AsyncQdrantClient:
    """Lazy-init a shared async Qdrant client."""
    global _client
    if _client is None:
        settings = get_settings()
        if settings.qdrant_url == ":memory:":
            _client = AsyncQdrantClient(location=":memory:")
        else:
            _client = AsyncQdrantClient(url=settings.qdrant_url, check_compatibility=False)
    return _client


async def close_qdrant_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None


def collection_name(embedding_model: str) -> str:
    """Collection holding vectors of ``embedding_model``."""
    slug = re.sub(r"[^a-z0-9]+", "-", embedding_model.lower()).strip("-")
    return f"{COLLECTION_PREFIX}{slug}"


async def _existing_collections(client: AsyncQdrantClient) -> set[str]:
    collections = await client.get_collections()
    return {c.name for c in collections.collections}


async def ensure_collection(embedding_model: str, dimensions: int) -> str:
    """Create the model's collection if it doesn't exist and return its name."""
    client = await get_qdrant_client()
    name = collection_name(embedding_model)
    if name not in await _existing_collections(client):
        await client.create_collection(
            collection_name=name,
            vectors_config=VectorParams(size=dimensions, distance=Distance.COSINE),
        )
        for key in ("workspace_id", "file_id"):
            await client.create_payload_index(
                collection_name=name,
                field_name=key,
                field_schema=PayloadSchemaType.KEYWORD,
            )
    return name


async def upsert_chunks(collection: str, points: list[dict]) -> None:
    """Upsert chunk vectors into Qdrant.

    Each point dict must have:
        id: str (UUID, same as the file_items row)
        vector: list[float]
        payload: dict with workspace_id, file_id, chunk_index, content
    """
    client = await get_qdrant_client()
    qdrant_points = [
        PointStruct(
            id=p["id"],
            vector=p["vector"],
            payload=p["payload"],
        )
        for p in points
    ]
    await client.upsert(collection_name=collection, points=qdrant_points, wait=True)


async def search_chunks(
    collection: str,
    query_vector: list[float],
    workspace_id: str,
    limit: int = 5,
) -> list[dict]:
    """Search for similar chunks within one workspace.

    Returns list of dicts with id, score (cosine similarity) and payload.
    A missing collection yields an empty list.
    """
    client = await get_qdrant_client()
    if collection not in await _existing_collections(client):
        return []

    query_filter = Filter(
        must=[
            FieldCondition(key="workspace_id", match=MatchValue(value=workspace_id)),
        ]
    )
    response = await client.query_points(
        collection_name=collection,
        query=query_vector,
        query_filter=query_filter,
        limit=limit,
        with_payload=True,
    )
    return [
        {
            "id": str(hit.id),
            "score": hit.score,
            "payload": hit.payload,
        }
        for hit in response.points
    ]


async def delete_points(collection: str, point_ids: list[str]) -> None:
    """Delete specific points by id."""
    if not point_ids:
        return
    client = await get_qdrant_client()
    if collection not in await _existing_collections(client):
        return
    await client.delete(
        collection_name=collection,
        points_selector=PointIdsList(points=point_ids),
        wait=True,
    )


async def delete_by_file(
    file_id: str,
    keep_ids: list[str] | None = None,
    keep_in: str | None = None,
) -> None:
    """Delete every vector of a file across all model collections.

    Points whose id is in ``keep_ids`` are spared in collection ``keep_in``.
    """
    client = await get_qdrant_client()
    for name in await _existing_collections(client):
        if not name.startswith(COLLECTION_PREFIX):
            continue
        must_not = []
        if keep_ids and name == keep_in:
            must_not.append(HasIdCondition(has_id=keep_ids))
        await client.delete(
            collection_name=name,
            points_selector=FilterSelector(
                filter=Filter(
                    must=[FieldCondition(key="file_id", match=MatchValue(value=file_id))],
                    must_not=must_not or None,
                )
            ),
            wait=True,
        )
