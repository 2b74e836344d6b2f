"""Error taxonomy shared by the trust boundary and the route handlers.

Every failure that reaches a client is one of these kinds. Gates raise them
and never recover; the HTTP error translator is the only place that turns
them into responses.
"""

from typing import Any

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """A single field-level validation failure."""

    field: str
    message: str


class ErrorResponse(BaseModel):
    """Uniform rejection body."""

    error: str = Field(description="Stable error category")
    message: str = Field(description="Human readable message")
    details: list[FieldError] | None = Field(
        default=None, description="Per-field sub-errors for validation failures"
    )


class AppError(Exception):
    """Base class for failures that map onto a response."""

    kind: str = "Internal Server Error"
    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, details: list[FieldError] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_response(self, message: str | None = None) -> ErrorResponse:
        return ErrorResponse(
            error=self.kind,
            message=message or self.message,
            details=self.details,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class AuthenticationError(AppError):
    """Missing, malformed, expired or unverifiable credential."""

    kind = "Unauthorized"
    status_code = 401
    default_message = "Invalid or expired token"


class AuthorizationError(AppError):
    """Authenticated, but not allowed to perform this action."""

    kind = "Forbidden"
    status_code = 403
    default_message = "Access denied"


class ValidationError(AppError):
    """Persistence-layer constraint or shape violation."""

    kind = "Validation Error"
    status_code = 400
    default_message = "Validation failed"

    @classmethod
    def from_fields(cls, errors: list[dict[str, Any]], message: str | None = None) -> "ValidationError":
        details = [
            FieldError(field=str(e.get("field", "")), message=str(e.get("message", "")))
            for e in errors
        ]
        return cls(message, details=details)


class NotFoundError(AppError):
    """Resource genuinely absent. Never used where existence would leak."""

    kind = "Not Found"
    status_code = 404
    default_message = "Resource not found"


class BadRequestError(AppError):
    """Malformed webhook signature, missing raw body, invalid upload."""

    kind = "Bad Request"
    status_code = 400
    default_message = "Invalid request"


class InternalError(AppError):
    """Anything else. The message is suppressed outside development."""

    kind = "Internal Server Error"
    status_code = 500
    default_message = "An unexpected error occurred"
