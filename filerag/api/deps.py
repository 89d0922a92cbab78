"""FastAPI dependencies and error translation shared by the v1 routers."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from filerag.core.database import get_session
from filerag.core.errors import (
    CorruptFileError,
    EmbeddingProviderError,
    IngestionError,
    StorageWriteError,
    UnsupportedFormatError,
)

_STATUS_BY_ERROR: list[tuple[type[IngestionError], int]] = [
    (UnsupportedFormatError, status.HTTP_415_UNSUPPORTED_MEDIA_TYPE),
    (CorruptFileError, status.HTTP_422_UNPROCESSABLE_CONTENT),
    (EmbeddingProviderError, status.HTTP_502_BAD_GATEWAY),
    (StorageWriteError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def http_error(exc: IngestionError) -> HTTPException:
    """Translate a pipeline failure into an HTTP error response."""
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = {"code": exc.code, "message": exc.message}
    if isinstance(exc, EmbeddingProviderError):
        detail["retryable"] = exc.retryable
    return HTTPException(status_code=code, detail=detail)


# Typed shorthand for use in route signatures
Session = Annotated[AsyncSession, Depends(get_session)]
