"""V1 API router aggregation."""

from fastapi import APIRouter

from filerag.api.v1.files import router as files_router
from filerag.api.v1.retrieval import router as retrieval_router
from filerag.api.v1.workspaces import router as workspaces_router

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(workspaces_router)
v1_router.include_router(files_router)
v1_router.include_router(retrieval_router)
