"""
Error handling with sanitized failure envelopes.

Every failure leaves the API as ``{"success": false, "message", "code"}``;
``error`` carries the raw exception text only when DEBUG is on.
"""

import logging
import re
import traceback
from typing import Any, Callable, Optional

from fastapi import Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError, ConnectionError as RedisConnectionError
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import ServiceError

logger = logging.getLogger(__name__)

# Patterns for sensitive data that should never be logged
SENSITIVE_PATTERNS = [
    re.compile(r'password["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'token["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'secret["\s:=]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'authorization["\s:]+[^"\s,}]+', re.IGNORECASE),
    re.compile(r'\b\d{3}-\d{2}-\d{4}\b'),  # SSN
    re.compile(r'\b\d{16}\b'),  # Credit card
]

HTTP_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHENTICATED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


def sanitize_error_message(message: str) -> str:
    """
    Remove sensitive information from error messages.

    Args:
        message: Original error message

    Returns:
        Sanitized error message
    """
    sanitized = str(message)
    for pattern in SENSITIVE_PATTERNS:
        sanitized = pattern.sub('[REDACTED]', sanitized)
    return sanitized


def error_body(
    message: str,
    code: str,
    exc: Optional[Exception] = None,
    debug: bool = False,
    **extra: Any,
) -> dict[str, Any]:
    """Build the failure envelope."""
    body: dict[str, Any] = {"success": False, "message": message, "code": code}
    if debug and exc is not None:
        body["error"] = sanitize_error_message(f"{type(exc).__name__}: {exc}")
    body.update(extra)
    return body


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors to ``{field, message, type}`` items."""
    return [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def classify_exception(exc: Exception) -> tuple[int, str, str]:
    """
    Map infrastructure exceptions to (status, code, client message).

    Domain errors are handled by their own handler and never reach here.
    """
    if isinstance(exc, IntegrityError):
        return status.HTTP_409_CONFLICT, "INTEGRITY_ERROR", "Database integrity constraint violated"
    if isinstance(exc, OperationalError):
        return (
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "DATABASE_ERROR",
            "Database service temporarily unavailable",
        )
    if isinstance(exc, SQLAlchemyError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR", "A database error occurred"
    if isinstance(exc, RedisConnectionError):
        return (
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "CACHE_ERROR",
            "Cache service temporarily unavailable",
        )
    if isinstance(exc, RedisError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR, "CACHE_ERROR", "A cache error occurred"
    if isinstance(exc, TimeoutError):
        return status.HTTP_504_GATEWAY_TIMEOUT, "TIMEOUT", "The request timed out"
    return (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred",
    )


class ErrorHandlingMiddleware:
    """
    Outermost ASGI guard.

    Catches whatever escapes the FastAPI exception handlers and turns it into
    the failure envelope without leaking internals.
    """

    def __init__(self, app: Callable, debug: bool = False):
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = self._handle_exception(exc, scope)
            await response(scope, receive, send)

    def _handle_exception(self, exc: Exception, scope: dict) -> Response:
        request_path = scope.get("path", "unknown")
        request_method = scope.get("method", "unknown")

        if isinstance(exc, ServiceError):
            logger.info(
                f"{type(exc).__name__}: {request_method} {request_path} - {exc.message}"
            )
            return JSONResponse(
                status_code=exc.status_code,
                content=error_body(exc.message, exc.code),
            )

        status_code, code, message = classify_exception(exc)
        logger.error(
            f"{type(exc).__name__}: {request_method} {request_path} - "
            f"{sanitize_error_message(str(exc))}",
            exc_info=status_code >= 500,
        )

        extra: dict[str, Any] = {}
        for key, value in scope.get("headers", []):
            if key == b"x-request-id":
                extra["requestId"] = value.decode()
        if self.debug and status_code >= 500:
            extra["traceback"] = traceback.format_exc()

        return JSONResponse(
            status_code=status_code,
            content=error_body(message, code, exc, self.debug, **extra),
        )


def setup_error_handlers(app, debug: bool = False):
    """
    Set up exception handlers for FastAPI application.

    Args:
        app: FastAPI application instance
        debug: Whether to include the raw error text in responses
    """

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        """Domain errors carry their own status and code."""
        log = logger.warning if exc.status_code in (401, 403) else logger.info
        log(
            f"{type(exc).__name__}: {request.method} {request.url.path} - "
            f"{exc.message}"
        )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.message, exc.code),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(
                sanitize_error_message(exc.detail),
                HTTP_CODES.get(exc.status_code, "HTTP_EXCEPTION"),
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = format_validation_errors(exc)
        logger.warning(
            f"Validation error: {request.method} {request.url.path} - {errors}"
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(
                "Request validation failed", "VALIDATION_ERROR", errors=errors
            ),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        status_code, code, message = classify_exception(exc)
        logger.error(
            f"Unhandled exception: {request.method} {request.url.path} - "
            f"{type(exc).__name__}: {sanitize_error_message(str(exc))}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status_code,
            content=error_body(message, code, exc, debug),
        )
