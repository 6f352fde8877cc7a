"""Error handling middleware."""

import traceback
from typing import Any

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.core.db_errors import classify_database_error
from app.core.exceptions import AppException, DatabaseException
from app.schemas.common import ErrorResponse

logger = structlog.get_logger(__name__)

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "AUTHENTICATION_ERROR",
    403: "AUTHORIZATION_ERROR",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    415: "UNSUPPORTED_MEDIA_TYPE",
    429: "RATE_LIMIT_EXCEEDED",
}


def _field_path(loc: tuple | list) -> str:
    """Render an error location without the body/query prefix."""
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or "request"


def format_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic errors into {field, message, type} entries."""
    return [
        {
            "field": _field_path(error.get("loc", ())),
            "message": error.get("msg", "Invalid value"),
            "type": error.get("type", "value_error"),
        }
        for error in errors
    ]


def error_response(
    status_code: int,
    code: str,
    message: str,
    exc: Exception | None = None,
    details: list[dict[str, str]] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """
    Build the error envelope.

    Args:
        status_code: HTTP status
        code: Machine-readable error code
        message: Human-readable message
        exc: Exception whose traceback is attached outside production
        details: Per-field validation failures
        headers: Extra response headers (WWW-Authenticate, Retry-After)

    Returns:
        JSON error response
    """
    body = ErrorResponse(
        error=code,
        code=code,
        message=message,
        status_code=status_code,
        details=details or None,
        stack=(
            "".join(traceback.format_exception(exc))
            if exc is not None and not settings.is_production
            else None
        ),
    )

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def _log_error(request: Request, status_code: int, code: str, exc: Exception) -> None:
    """Warn on client errors, log server errors with their traceback."""
    if status_code >= 500:
        logger.error(
            "request_error",
            path=request.url.path,
            method=request.method,
            status_code=status_code,
            code=code,
            error=str(exc),
            exc_info=exc,
        )
    else:
        logger.warning(
            "request_error",
            path=request.url.path,
            method=request.method,
            status_code=status_code,
            code=code,
            error=str(exc),
        )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Handle custom application exceptions.

    Args:
        request: Request object
        exc: Application exception

    Returns:
        JSON error response
    """
    _log_error(request, exc.status_code, exc.code, exc)
    return error_response(
        exc.status_code,
        exc.code,
        exc.message,
        exc=exc if exc.status_code >= 500 else None,
        headers=exc.headers,
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """
    Handle HTTP exceptions raised by the framework (unknown routes, bad methods).

    Args:
        request: Request object
        exc: HTTP exception

    Returns:
        JSON error response
    """
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == 404 and message == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"

    _log_error(request, exc.status_code, code, exc)
    return error_response(exc.status_code, code, message, headers=getattr(exc, "headers", None))


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError | ValidationError,
) -> JSONResponse:
    """
    Handle validation errors.

    Every failing field is reported, not just the first.

    Args:
        request: Request object
        exc: Validation exception

    Returns:
        JSON error response with validation details
    """
    details = format_validation_errors(list(exc.errors()))
    logger.warning(
        "validation_failed",
        path=request.url.path,
        method=request.method,
        fields=[detail["field"] for detail in details],
    )
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Request validation failed",
        details=details,
    )


async def database_exception_handler(request: Request, exc: DBAPIError) -> JSONResponse:
    """
    Map driver errors to client-facing codes by SQLSTATE.

    Args:
        request: Request object
        exc: Wrapped driver exception

    Returns:
        JSON error response
    """
    status_code, code, message = classify_database_error(exc)
    _log_error(request, status_code, code, exc)
    return error_response(status_code, code, message, exc=exc if status_code >= 500 else None)


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle store failures without a driver error (pool timeout, closed connection)."""
    error = DatabaseException()
    _log_error(request, error.status_code, error.code, exc)
    return error_response(error.status_code, error.code, error.message, exc=exc)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Args:
        request: Request object
        exc: Exception

    Returns:
        JSON error response
    """
    _log_error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_ERROR",
        "An unexpected error occurred",
        exc=exc,
    )
