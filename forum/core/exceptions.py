"""
Application error taxonomy and global exception handlers.

Every error body has the shape ``{"error": <message>}`` where the message is
either a string or a ``{field: message}`` mapping for validation failures.
Server-side failures are logged with request method and URL; clients get an
opaque message so internals never leak.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "the server encountered a problem and could not process your request"
BAD_JSON_MESSAGE = "body contains badly-formed JSON"


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    message: Any = SERVER_ERROR_MESSAGE
    headers: dict[str, str] | None = None

    def __init__(self, message: Any = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


# ── 400 ─────────────────────────────────────────────────────────────
class BadRequestError(AppError):
    status_code = 400
    message = "bad request"


class MalformedTokenError(BadRequestError):
    message = "malformed token"


# ── 401 ─────────────────────────────────────────────────────────────
class InvalidCredentialsError(AppError):
    status_code = 401
    message = "invalid authentication credentials"


class InvalidAuthenticationTokenError(AppError):
    status_code = 401
    message = "invalid or missing authentication token"
    headers = {"WWW-Authenticate": "Bearer"}


class AuthenticationRequiredError(AppError):
    status_code = 401
    message = "you must be authenticated to access this resource"


# ── 403 ─────────────────────────────────────────────────────────────
class InactiveAccountError(AppError):
    status_code = 403
    message = "your user account must be activated to access this resource"


class NotPermittedError(AppError):
    status_code = 403
    message = "your user account doesn't have the necessary permissions to access this resource"


# ── 404 / 422 / 429 ─────────────────────────────────────────────────
class RecordNotFoundError(AppError):
    status_code = 404
    message = "the requested resource could not be found"


class FailedValidationError(AppError):
    """Semantic field violations, carried as a ``{field: message}`` mapping."""

    status_code = 422

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        super().__init__(errors)


class EditConflictError(AppError):
    status_code = 422
    message = "unable to update the record due to an edit conflict, please try again"


class DuplicateEmailError(FailedValidationError):
    def __init__(self) -> None:
        super().__init__({"email": "a user with this email address already exists"})


class RateLimitExceededError(AppError):
    status_code = 429
    message = "rate limit exceeded"


# ── 500 ─────────────────────────────────────────────────────────────
class InternalServerError(AppError):
    status_code = 500


class StorageTimeoutError(InternalServerError):
    """A storage round-trip exceeded the configured query timeout."""


def error_response(status_code: int, message: Any, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _log_server_error(request: Request, exc: BaseException) -> None:
    logger.error(
        "%s %s failed: %s",
        request.method,
        request.url,
        exc,
        exc_info=(type(exc), exc, exc.__traceback__),
    )


async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        _log_server_error(request, exc)
        return error_response(exc.status_code, SERVER_ERROR_MESSAGE)
    return error_response(exc.status_code, exc.message, exc.headers)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        message = RecordNotFoundError.message
    elif exc.status_code == 405:
        message = f"the {request.method} method is not supported for this resource"
    elif exc.status_code == 429:
        message = RateLimitExceededError.message
    else:
        message = exc.detail
    return error_response(exc.status_code, message, getattr(exc, "headers", None))


def field_errors(errors: Sequence[Any]) -> dict[str, str]:
    """Flatten pydantic error entries into a ``{field: message}`` mapping."""
    fields: dict[str, str] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
        field = ".".join(loc) or "body"
        message = str(err.get("msg", "is invalid"))
        # pydantic prefixes messages from custom validators
        fields.setdefault(field, message.removeprefix("Value error, "))
    return fields


async def _validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    for err in errors:
        if err.get("type") == "json_invalid":
            return error_response(400, BAD_JSON_MESSAGE)
        # an id that does not parse cannot name a record
        if tuple(err.get("loc", ()))[:1] == ("path",):
            return error_response(404, RecordNotFoundError.message)
    return error_response(422, field_errors(errors))


async def _sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    _log_server_error(request, exc)
    return error_response(500, SERVER_ERROR_MESSAGE)


async def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    _log_server_error(request, exc)
    return error_response(500, SERVER_ERROR_MESSAGE, {"Connection": "close"})


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
