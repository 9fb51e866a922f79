"""Error taxonomy and the handlers that render failures as response envelopes.

Route handlers raise the ``ApiError`` subclasses below the same way they would
raise ``HTTPException``. The handlers registered by ``register_exception_handlers``
turn every failure into::

    {"success": false, "error": "<CODE>", "message": "<human readable text>"}

Unexpected exceptions are logged with their traceback and answered with a
generic message; exception text never reaches the client.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTPException carrying a machine-readable error code."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, headers: dict[str, str] | None = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=message or self.default_message,
            headers=headers,
        )


class ValidationError(ApiError):
    status_code_default = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"
    default_message = "Invalid input data"


class AuthError(ApiError):
    status_code_default = status.HTTP_401_UNAUTHORIZED
    code = "AUTH_ERROR"
    default_message = "Authentication required"

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(ApiError):
    status_code_default = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN_ERROR"
    default_message = "You don't have permission to access this resource"


class NotFoundError(ApiError):
    status_code_default = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND_ERROR"
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code_default = status.HTTP_409_CONFLICT
    code = "CONFLICT_ERROR"
    default_message = "Resource already exists"


class InternalError(ApiError):
    pass


_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: ValidationError.code,
    status.HTTP_401_UNAUTHORIZED: AuthError.code,
    status.HTTP_403_FORBIDDEN: ForbiddenError.code,
    status.HTTP_404_NOT_FOUND: NotFoundError.code,
    status.HTTP_409_CONFLICT: ConflictError.code,
}


def error_code_for(exc: StarletteHTTPException) -> str:
    if isinstance(exc, ApiError):
        return exc.code
    if exc.status_code >= 500:
        return InternalError.code
    return _STATUS_CODES.get(exc.status_code, "HTTP_ERROR")


def error_body(code: str, message: str, **extra: Any) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": code, "message": message}
    body.update(extra)
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(error_code_for(exc), message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(ValidationError.code, ValidationError.default_message, details=details),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(InternalError.code, InternalError.default_message),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(InternalError.code, InternalError.default_message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
