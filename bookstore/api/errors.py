"""
Error Handlers
API exception types and the JSON error envelope:
``{"error": {"message": ..., "type": ..., "details": ...}}``.
"""

import logging
from typing import Any, Optional, Union

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..ml.errors import RunAlreadyInProgress

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[dict] = None, status_code: Optional[int] = None):
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ResourceNotFoundError(APIError):
    """A catalog resource does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, resource_id: Union[int, str]):
        super().__init__(
            f"{resource} not found: {resource_id}",
            details={"resource": resource, "id": resource_id},
        )


class InvalidRequestError(APIError):
    """The request is well-formed but cannot be served."""

    status_code = status.HTTP_400_BAD_REQUEST


class IndexingConflictError(APIError):
    """An indexing pass is already active; the trigger was a no-op."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, holder: Optional[str] = None):
        super().__init__(
            "An indexing run is already in progress",
            details={"holder": holder} if holder else None,
        )


def error_envelope(status_code: int, message: str, error_type: str, details: Any = None) -> JSONResponse:
    body = {"message": message, "type": error_type}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content={"error": body})


def setup_error_handlers(app: FastAPI) -> None:
    """
    Register the error handlers on the app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return error_envelope(exc.status_code, exc.message, exc.__class__.__name__, exc.details)

    @app.exception_handler(RunAlreadyInProgress)
    async def run_in_progress_handler(request: Request, exc: RunAlreadyInProgress):
        conflict = IndexingConflictError(exc.holder)
        logger.warning(f"Indexing trigger rejected on {request.url.path}: held by {exc.holder}")
        return error_envelope(conflict.status_code, conflict.message, "IndexingConflictError", conflict.details)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Invalid request to {request.url.path}: {exc}")
        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": error.get("type", ""),
            }
            for error in exc.errors()
        ]
        return error_envelope(
            status.HTTP_422_UNPROCESSABLE_ENTITY, "Request validation failed", "ValidationError", errors
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        logger.warning(f"Rejected value on {request.url.path}: {exc}")
        return error_envelope(status.HTTP_400_BAD_REQUEST, str(exc), "ValueError")

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
        return error_envelope(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred", "InternalServerError"
        )
