"""Error translation: every failure leaves the API as one ``ErrorResponse``."""

import re
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from cloudwise.core.errors import (
    AppError,
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from cloudwise.runtime.context import get_config

GENERIC_INTERNAL_MESSAGE = "An unexpected error occurred"

# sqlite: "UNIQUE constraint failed: usertable.auth0_id"
_SQLITE_CONSTRAINT = re.compile(r"constraint failed: (?:\w+\.)?(\w+)")
# postgres: "Key (auth0_id)=(abc) already exists."
_POSTGRES_KEY = re.compile(r"Key \(([^)]+)\)=")


def _field_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    fields = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        fields.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return fields


def _integrity_field(exc: IntegrityError) -> str:
    text = str(exc.orig) if exc.orig is not None else str(exc)
    match = _SQLITE_CONSTRAINT.search(text) or _POSTGRES_KEY.search(text)
    return match.group(1) if match else ""


def _from_http_exception(exc: StarletteHTTPException) -> AppError:
    detail = exc.detail if isinstance(exc.detail, str) else None
    match exc.status_code:
        case 401:
            return AuthenticationError(detail)
        case 403:
            return AuthorizationError(detail)
        case 404:
            return NotFoundError(detail)
        case 400:
            return BadRequestError(detail)
        case status if status < 500:
            error = BadRequestError(detail)
            error.status_code = status
            return error
        case _:
            return InternalError(detail)


def translate_exception(exc: Exception) -> AppError:
    """Map any exception onto the error taxonomy."""
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, RequestValidationError):
        return ValidationError.from_fields(
            _field_errors(list(exc.errors())), "Request validation failed"
        )
    if isinstance(exc, PydanticValidationError):
        return ValidationError.from_fields(_field_errors(exc.errors()))
    if isinstance(exc, IntegrityError):
        return ValidationError.from_fields(
            [
                {
                    "field": _integrity_field(exc),
                    "message": "Value violates a database constraint",
                }
            ]
        )
    if isinstance(exc, StarletteHTTPException):
        return _from_http_exception(exc)
    if isinstance(exc, SQLAlchemyError):
        return InternalError(f"Database error: {exc}")
    return InternalError(str(exc) or type(exc).__name__)


def client_ip(request: Request) -> str:
    """Caller address for logs.

    ``X-Forwarded-For`` is only read when proxies are configured, and then the
    entry appended by the outermost trusted proxy is used; anything to its left
    is caller-supplied.
    """
    peer = request.client.host if request.client else "unknown"
    hops = get_config().app.trusted_proxies
    if not hops:
        return peer
    header = request.headers.get("x-forwarded-for", "")
    forwarded = [hop.strip() for hop in header.split(",") if hop.strip()]
    if len(forwarded) < hops:
        return forwarded[0] if forwarded else peer
    return forwarded[-hops]


def _log_once(request: Request, exc: Exception, error: AppError) -> None:
    if getattr(request.state, "error_logged", False):
        return
    request.state.error_logged = True

    user = getattr(request.state, "user", None)
    log = logger.bind(
        method=request.method,
        path=request.url.path,
        client_ip=client_ip(request),
        user_id=getattr(user, "id", None),
        status_code=error.status_code,
        error_type=type(exc).__name__,
    )
    if error.status_code >= 500:
        log.opt(exception=exc).error("request.failed: {}", error.message)
    else:
        log.warning("request.rejected: {}", error.message)


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Log ``exc`` once and render it as an ``ErrorResponse``."""
    error = translate_exception(exc)
    _log_once(request, exc, error)

    message = None
    if error.status_code >= 500 and not get_config().app.is_development:
        message = GENERIC_INTERNAL_MESSAGE

    body = error.to_response(message).model_dump(exclude_none=True)
    headers = getattr(exc, "headers", None) if isinstance(exc, StarletteHTTPException) else None
    return JSONResponse(status_code=error.status_code, content=body, headers=headers)


async def _handle(request: Request, exc: Exception) -> JSONResponse:
    return error_response(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the translator for every error category the API can raise.

    Unexpected exceptions are caught by the request logging middleware, which
    calls :func:`error_response` directly.
    """
    for exc_class in (
        AppError,
        RequestValidationError,
        PydanticValidationError,
        StarletteHTTPException,
        SQLAlchemyError,
    ):
        app.add_exception_handler(exc_class, _handle)
