"""Workspace endpoints."""

import uuid

from fastapi import APIRouter, HTTPException, status
from sqlmodel import select

from filerag.api.deps import Session
from filerag.core.config import get_settings
from filerag.models.workspace import (
    EmbeddingsProvider,
    Workspace,
    WorkspaceCreate,
    WorkspaceRead,
)

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


async def get_workspace_or_404(workspace_id: uuid.UUID, session) -> Workspace:
    workspace = await session.get(Workspace, workspace_id)
    if workspace is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workspace not found")
    return workspace


@router.post("", response_model=WorkspaceRead, status_code=status.HTTP_201_CREATED)
async def create_workspace(body: WorkspaceCreate, session: Session) -> Workspace:
    provider = body.embeddings_provider or EmbeddingsProvider(
        get_settings().default_embeddings_provider
    )
    workspace = Workspace(
        name=body.name,
        description=body.description,
        embeddings_provider=provider,
    )
    session.add(workspace)
    await session.commit()
    await session.refresh(workspace)
    return workspace


@router.get("", response_model=list[WorkspaceRead])
async def list_workspaces(session: Session) -> list[Workspace]:
    result = await session.execute(select(Workspace).order_by(Workspace.created_at))
    return list(result.scalars().all())


@router.get("/{workspace_id}", response_model=WorkspaceRead)
async def get_workspace(workspace_id: uuid.UUID, session: Session) -> Workspace:
    return await get_workspace_or_404(workspace_id, session)
