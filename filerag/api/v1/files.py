"""File upload, processing and chunk inspection endpoints."""

import uuid

from fastapi import APIRouter, Form, HTTPException, Response, UploadFile, status
from sqlmodel import select

from filerag.api.deps import Session, http_error
from filerag.api.v1.workspaces import get_workspace_or_404
from filerag.core.config import get_settings
from filerag.core.errors import IngestionError
from filerag.models.file import File, FileRead, FileUpdate
from filerag.models.file_item import FileItem, FileItemRead
from filerag.services.file_store import delete_file, list_file_items
from filerag.services.ingest import create_file, process_file

router = APIRouter(tags=["files"])


async def _get_or_404(file_id: uuid.UUID, session) -> File:
    file = await session.get(File, file_id)
    if file is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return file


async def _read_upload(upload: UploadFile) -> bytes:
    content = await upload.read()
    max_size = get_settings().max_file_size
    if len(content) > max_size:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"File too large. Maximum size is {max_size // (1024 * 1024)} MB.",
        )
    return content


@router.post(
    "/workspaces/{workspace_id}/files",
    response_model=FileRead,
    status_code=status.HTTP_201_CREATED,
)
async def upload_file(
    workspace_id: uuid.UUID,
    file: UploadFile,
    session: Session,
    file_type: str | None = Form(None),
    description: str = Form(""),
    storage_path: str = Form(""),
) -> File:
    """Upload a file and ingest it. Returns once ingestion has finished."""
    workspace = await get_workspace_or_404(workspace_id, session)
    content = await _read_upload(file)

    try:
        record = await create_file(
            session,
            workspace,
            file.filename or "upload",
            content,
            declared_type=file_type or file.content_type,
            storage_path=storage_path,
        )
        if description:
            record.description = description
            session.add(record)
            await session.commit()
        await process_file(session, record, content)
    except IngestionError as exc:
        raise http_error(exc) from exc

    await session.refresh(record)
    return record


@router.get("/workspaces/{workspace_id}/files", response_model=list[FileRead])
async def list_files(workspace_id: uuid.UUID, session: Session) -> list[File]:
    await get_workspace_or_404(workspace_id, session)
    stmt = (
        select(File)
        .where(File.workspace_id == workspace_id)
        .order_by(File.created_at.desc())  # type: ignore[union-attr]
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


@router.get("/files/{file_id}", response_model=FileRead)
async def get_file(file_id: uuid.UUID, session: Session) -> File:
    return await _get_or_404(file_id, session)


@router.patch("/files/{file_id}", response_model=FileRead)
async def update_file(file_id: uuid.UUID, body: FileUpdate, session: Session) -> File:
    file = await _get_or_404(file_id, session)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(file, key, value)
    file.touch()
    session.add(file)
    await session.commit()
    await session.refresh(file)
    return file


@router.put("/files/{file_id}/content", response_model=FileRead)
async def reprocess_file(file_id: uuid.UUID, file: UploadFile, session: Session) -> File:
    """Re-ingest a file from new bytes, replacing its chunk set."""
    record = await _get_or_404(file_id, session)
    content = await _read_upload(file)
    try:
        await process_file(session, record, content)
    except IngestionError as exc:
        raise http_error(exc) from exc
    await session.refresh(record)
    return record


@router.delete("/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_file(file_id: uuid.UUID, session: Session) -> Response:
    file = await _get_or_404(file_id, session)
    try:
        await delete_file(session, file)
    except IngestionError as exc:
        raise http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/files/{file_id}/items", response_model=list[FileItemRead])
async def get_file_items(file_id: uuid.UUID, session: Session) -> list[FileItem]:
    await _get_or_404(file_id, session)
    return await list_file_items(session, file_id)
