"""Custom exceptions and handlers for consistent error responses.

Every error leaves the API in one envelope:

    {"error": {"code": "ERROR_CODE", "message": "...", "details": {...}}}

Services raise the RiceWeighException subclasses below; the handlers
registered here turn them (and framework/database errors) into JSON.
"""

import logging
import traceback
from typing import Union

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class RiceWeighException(Exception):
    """Base exception for RiceWeigh application errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
        details: dict | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class ValidationError(RiceWeighException):
    """A required field is missing or invalid.  ``field`` lets the UI show it inline."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else None,
        )


class PersistenceError(RiceWeighException):
    """A database read/write failed.  Surfaced to the user, never retried."""

    def __init__(self, message: str = "Could not save changes. Please try again."):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="PERSISTENCE_ERROR",
        )


class InvalidStateError(RiceWeighException):
    """Operation not allowed in the entity's current lifecycle state."""

    def __init__(self, message: str, error_code: str = "INVALID_STATE"):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
        )


class ResourceNotFoundError(RiceWeighException):
    """Exception for resources not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND",
        )


class ConfirmationRequiredError(RiceWeighException):
    """A destructive action was attempted without the required confirmation."""

    def __init__(
        self,
        message: str = "This action must be confirmed",
        status_code: int = status.HTTP_428_PRECONDITION_REQUIRED,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            error_code="CONFIRMATION_REQUIRED",
        )


class SessionContextError(RiceWeighException):
    """Endpoint needs a client session but the request carried none."""

    def __init__(self, message: str = "X-Session-ID header required"):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="SESSION_REQUIRED",
        )


# ── Handlers ─────────────────────────────────────────────────

def error_envelope(
    status_code: int,
    code: str,
    message: str,
    details: Union[dict, list, None] = None,
) -> JSONResponse:
    body = {"error": {"code": code, "message": message}}
    if details:
        body["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def _where(request: Request) -> dict:
    return {"path": request.url.path, "method": request.method}


def _field_path(loc) -> str:
    """('body', 'batches', 0, 'unit_price') → 'batches.0.unit_price'."""
    parts = [str(p) for p in loc]
    if parts and parts[0] in ("body", "query", "path", "header"):
        parts = parts[1:]
    return ".".join(parts)


async def app_error_handler(request: Request, exc: RiceWeighException) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        level,
        f"{request.method} {request.url.path} rejected with {exc.error_code}: {exc.message}",
        extra={"error_code": exc.error_code, **_where(request)},
    )
    return error_envelope(exc.status_code, exc.error_code, exc.message, exc.details)


async def http_error_handler(
    request: Request,
    exc: Union[HTTPException, StarletteHTTPException],
) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code} {exc.detail}", extra=_where(request))
    return error_envelope(exc.status_code, f"HTTP_{exc.status_code}", str(exc.detail))


async def request_validation_handler(
    request: Request,
    exc: Union[RequestValidationError, PydanticValidationError],
) -> JSONResponse:
    """Malformed input: the offending fields use the same dotted paths as service errors."""
    problems = [
        {"field": _field_path(err["loc"]), "message": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    logger.warning(
        f"Invalid input for {request.method} {request.url.path}: "
        + ", ".join(p["field"] for p in problems),
        extra=_where(request),
    )
    return error_envelope(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Some fields are missing or invalid",
        {"errors": problems},
    )


# substring of the driver message → (error code, message)
_INTEGRITY_KINDS = [
    ("unique", "DUPLICATE_RECORD", "This entry already exists"),
    ("foreign key", "FOREIGN_KEY_VIOLATION", "A linked record no longer exists"),
    ("not null", "NULL_VALUE_NOT_ALLOWED", "A required value was not provided"),
]


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    reason = str(getattr(exc, "orig", None) or exc)
    logger.error(f"Constraint violation on {request.method} {request.url.path}: {reason}", extra=_where(request))

    lowered = reason.lower()
    for needle, code, message in _INTEGRITY_KINDS:
        if needle in lowered:
            break
    else:
        code, message = "INTEGRITY_ERROR", "The change conflicts with stored data"
    return error_envelope(status.HTTP_422_UNPROCESSABLE_ENTITY, code, message)


async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error(f"Database unreachable during {request.method} {request.url.path}: {exc}", extra=_where(request))
    return error_envelope(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "PERSISTENCE_ERROR",
        "Could not reach the database; nothing was saved",
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unexpected failure in {request.method} {request.url.path}: {exc!r}",
        extra={**_where(request), "traceback": traceback.format_exc()},
        exc_info=True,
    )
    return error_envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "Something went wrong on the server",
    )


def register_exception_handlers(app):
    app.add_exception_handler(RiceWeighException, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PydanticValidationError, request_validation_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
