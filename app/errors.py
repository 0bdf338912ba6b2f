"""Application error taxonomy and FastAPI exception handlers.

Usage:
    from app.errors import NotFoundError, ValidationError

    course = repo.get_by_id(course_id)
    if not course:
        raise NotFoundError("Course")

Every ``AppError`` renders as::

    {"success": false, "error": {"code": "...", "message": "..."}}

with the ``context`` dict added only in development.
"""
import logging
import sqlite3
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for all platform errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: str = "INTERNAL_ERROR",
        is_operational: bool = True,
        context: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.is_operational = is_operational
        self.context = context or {}
        # Rendered to clients in every environment, unlike context
        self.details: Optional[Any] = None
        super().__init__(message)

    def to_dict(self, include_context: bool = False) -> Dict[str, Any]:
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        if include_context and self.context:
            error["context"] = self.context
        return {"success": False, "error": error}


class ValidationError(AppError):
    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        details: Optional[Any] = None
    ):
        super().__init__(message, 400, "VALIDATION_ERROR", context=context)
        self.details = details


class AuthenticationError(AppError):
    def __init__(self, message: str = "Authentication required", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 401, "AUTHENTICATION_ERROR", context=context)


class AuthorizationError(AppError):
    def __init__(self, message: str = "Insufficient permissions", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 403, "AUTHORIZATION_ERROR", context=context)


class NotFoundError(AppError):
    def __init__(self, resource: str = "Resource", context: Optional[Dict[str, Any]] = None):
        super().__init__(f"{resource} not found", 404, "NOT_FOUND", context=context)


class ConflictError(AppError):
    def __init__(self, message: str = "Resource already exists", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 409, "CONFLICT", context=context)


class PaymentError(AppError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 402, "PAYMENT_ERROR", context=context)


class BusinessLogicError(AppError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 422, "BUSINESS_LOGIC_ERROR", context=context)


class RateLimitError(AppError):
    """Too many requests; carries the seconds until the window frees up."""

    def __init__(
        self,
        message: str = "Too many requests. Please try again later.",
        retry_after: int = 60,
        reset_at: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, 429, "RATE_LIMIT_EXCEEDED", context=context)
        self.retry_after = max(1, int(retry_after))
        self.reset_at = reset_at

    def to_dict(self, include_context: bool = False) -> Dict[str, Any]:
        body = super().to_dict(include_context)
        body["retryAfter"] = self.retry_after
        if self.reset_at is not None:
            body["resetAt"] = self.reset_at
        return body


class DatabaseError(AppError):
    def __init__(self, message: str = "Database operation failed", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 500, "DATABASE_ERROR", is_operational=False, context=context)


class ExternalServiceError(AppError):
    def __init__(self, service: str, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(f"{service} error: {message}", 502, "EXTERNAL_SERVICE_ERROR", context=context)
        self.service = service


class FileUploadError(AppError):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "FILE_UPLOAD_ERROR",
        context: Optional[Dict[str, Any]] = None,
        details: Optional[Any] = None,
        detected_type: Optional[str] = None
    ):
        super().__init__(message, status_code, code, context=context)
        self.details = details
        self.detected_type = detected_type

    def to_dict(self, include_context: bool = False) -> Dict[str, Any]:
        body = super().to_dict(include_context)
        if self.detected_type:
            body["error"]["detectedType"] = self.detected_type
        return body


class InvalidFileTypeError(FileUploadError):
    def __init__(self, message: str = "Invalid file type", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 400, "INVALID_FILE_TYPE", context=context)


class FileTooLargeError(FileUploadError):
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 413, "FILE_TOO_LARGE", context=context)


class InternalServerError(AppError):
    def __init__(self, message: str = "Internal server error", context: Optional[Dict[str, Any]] = None):
        super().__init__(message, 500, "INTERNAL_ERROR", is_operational=False, context=context)


def ensure(condition: Any, message: str, context: Optional[Dict[str, Any]] = None) -> None:
    """Raise ValidationError with ``message`` unless ``condition`` holds."""
    if not condition:
        raise ValidationError(message, context)


def map_database_error(exc: Exception) -> AppError:
    """Translate a sqlite3 exception into an AppError.

    Args:
        exc: Exception raised by the database driver

    Returns:
        Matching AppError (never raises)
    """
    if isinstance(exc, AppError):
        return exc

    text = str(exc)
    if isinstance(exc, sqlite3.IntegrityError):
        if "UNIQUE" in text:
            return ConflictError("Resource already exists", {"detail": text})
        if "FOREIGN KEY" in text:
            return ValidationError("Referenced resource does not exist", {"detail": text})
        if "NOT NULL" in text:
            return ValidationError("Required field is missing", {"detail": text})
        if "CHECK" in text:
            return ValidationError("Invalid field value", {"detail": text})

    return DatabaseError(context={"detail": text})


def error_response(error: AppError) -> JSONResponse:
    """Render an AppError as a JSON response."""
    from .config import IS_DEVELOPMENT

    headers = None
    if isinstance(error, RateLimitError):
        headers = {"Retry-After": str(error.retry_after)}

    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict(include_context=IS_DEVELOPMENT),
        headers=headers
    )


def log_error(error: AppError, request: Request) -> None:
    extra = {"code": error.code, "path": request.url.path, "method": request.method}
    if error.status_code >= 500:
        logger.error(error.message, extra=extra, exc_info=error)
    elif error.status_code >= 400:
        logger.warning(error.message, extra=extra)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log_error(exc, request)
    return error_response(exc)


async def sqlite_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    error = map_database_error(exc)
    log_error(error, request)
    return error_response(error)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [
        {"field": ".".join(str(part) for part in err["loc"][1:]), "message": err["msg"]}
        for err in exc.errors()
    ]
    error = ValidationError("Invalid request", {"fields": fields})
    log_error(error, request)
    body = error.to_dict()
    body["error"]["fields"] = fields
    return JSONResponse(status_code=400, content=body)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        extra={"path": request.url.path, "method": request.method},
        exc_info=exc
    )
    return error_response(InternalServerError())


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the platform's exception handlers to ``app``."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(sqlite3.Error, sqlite_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
