"""
Error responses for the marketplace API.

Every error leaves the API in one shape:

    {"error": <message for the UI>, "code": <machine code>,
     "correlation_id": <request id>, "details": {...}}   # details only when present

Service-layer errors derive from AppException and carry their own code and
HTTP status; framework errors (validation, routing, auth guards) are mapped
onto the same shape here.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.lib.logging import get_logger

logger = get_logger(__name__)

# Codes for errors raised as plain HTTPException (auth guards, unknown routes)
HTTP_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
}


# Custom exception classes
class AppException(Exception):
    """Base application exception."""

    code = "app_error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found. `message` replaces the generated text."""

    code = "not_found"

    def __init__(
        self,
        resource: str,
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"{resource} not found"
            if resource_id:
                message = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "resource_id": resource_id},
        )


class UnauthorizedException(AppException):
    code = "unauthorized"

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message=message, status_code=status.HTTP_401_UNAUTHORIZED)


class ForbiddenException(AppException):
    code = "forbidden"

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class BadRequestException(AppException):
    code = "bad_request"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class ConflictException(AppException):
    """Request clashes with the current state of a record (status, uniqueness, concurrent write)."""

    code = "conflict"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, status_code=status.HTTP_409_CONFLICT, details=details)


class ValidationException(AppException):
    """Field-level problems; `errors` maps field name to message."""

    code = "validation_error"

    def __init__(self, message: str, errors: Optional[Any] = None):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"errors": errors or {}},
        )


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


def error_response(
    request: Request,
    status_code: int,
    message: str,
    code: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build the JSON error body shared by every handler."""
    content: Dict[str, Any] = {
        "error": message,
        "code": code,
        "correlation_id": _correlation_id(request),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


# Exception handlers
async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Service-layer errors; 5xx are logged as errors, everything else as warnings."""
    log_level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        log_level,
        f"Application error: {exc.message}",
        extra={
            "correlation_id": _correlation_id(request),
            "status_code": exc.status_code,
            "error_code": exc.code,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
    )
    return error_response(request, exc.status_code, exc.message, exc.code, exc.details)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Request bodies and parameters that fail schema validation."""
    errors = [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error",
        extra={
            "correlation_id": _correlation_id(request),
            "path": request.url.path,
            "method": request.method,
            "errors": errors,
        },
    )
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Validation error",
        ValidationException.code,
        {"errors": errors},
    )


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    """HTTPException from auth guards and routing; keeps headers such as WWW-Authenticate."""
    logger.warning(
        f"HTTP exception: {exc.detail}",
        extra={
            "correlation_id": _correlation_id(request),
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return error_response(
        request,
        exc.status_code,
        str(exc.detail),
        HTTP_STATUS_CODES.get(exc.status_code, "http_error"),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything else: full stack trace in the log, generic message to the client."""
    logger.error(
        f"Unhandled exception: {exc}",
        extra={
            "correlation_id": _correlation_id(request),
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )
    return error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "internal_error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
