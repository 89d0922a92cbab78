"""Retrieval endpoint — nearest chunks for a query within one workspace."""

import uuid

from fastapi import APIRouter
from pydantic import BaseModel, Field

from filerag.api.deps import Session, http_error
from filerag.api.v1.workspaces import get_workspace_or_404
from filerag.core.errors import IngestionError
from filerag.services.retrieval import search_workspace

router = APIRouter(prefix="/workspaces", tags=["retrieval"])


class RetrieveRequest(BaseModel):
    query: str = Field(min_length=1)
    k: int | None = Field(default=None, ge=1, le=100)


class RetrievedChunkRead(BaseModel):
    id: uuid.UUID
    file_id: uuid.UUID
    chunk_index: int
    content: str
    distance: float


class RetrieveResponse(BaseModel):
    results: list[RetrievedChunkRead]


@router.post("/{workspace_id}/retrieve", response_model=RetrieveResponse)
async def retrieve_chunks(
    workspace_id: uuid.UUID,
    body: RetrieveRequest,
    session: Session,
) -> RetrieveResponse:
    workspace = await get_workspace_or_404(workspace_id, session)
    try:
        results = await search_workspace(session, workspace, body.query, k=body.k)
    except IngestionError as exc:
        raise http_error(exc) from exc
    return RetrieveResponse(
        results=[
            RetrievedChunkRead(
                id=r.id,
                file_id=r.file_id,
                chunk_index=r.chunk_index,
                content=r.content,
                distance=r.distance,
            )
            for r in results
        ]
    )
