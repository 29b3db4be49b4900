"""
Mapping of SQLShift errors to HTTP responses.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from sqlshift.exceptions import (
    AuthRequiredError,
    InvalidTransitionError,
    NotFoundError,
    SQLShiftError,
    StaleWriteError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first: subclasses must precede their bases
STATUS_CODES: list[tuple[type[SQLShiftError], int]] = [
    (AuthRequiredError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (ValidationError, 422),
    (StaleWriteError, status.HTTP_409_CONFLICT),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(error: SQLShiftError) -> int:
    for error_cls, code in STATUS_CODES:
        if isinstance(error, error_cls):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def sqlshift_error_handler(request: Request, exc: SQLShiftError) -> JSONResponse:
    code = status_code_for(exc)
    if code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    content: dict = {"detail": str(exc)}
    if isinstance(exc, StorageError):
        content["retryable"] = exc.retryable
    return JSONResponse(status_code=code, content=content)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SQLShiftError, sqlshift_error_handler)
