"""
Application error hierarchy and FastAPI exception handlers.

AppError is the base for all typed errors. The global exception handler
converts AppError subclasses to consistent JSON responses.

The four families (validation 400, authentication 401, forbidden 403,
not found 404) carry the HTTP status; the concrete auth errors below them
carry a stable ``code`` the frontend can switch on.

Non-AppError exceptions bubble up as 500s (with Sentry reporting in production).
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared.logging import get_logger

log = get_logger(__name__)


class AppError(Exception):
    """Base application error. All typed errors inherit from this."""

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details

    def to_dict(self) -> dict:
        payload: dict = {"error": self.message, "code": self.error_code}
        if self.field is not None:
            payload["field"] = self.field
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    status_code = 400
    error_code = "validation_error"


class AuthenticationError(AppError):
    status_code = 401
    error_code = "authentication_error"


class ForbiddenError(AppError):
    status_code = 403
    error_code = "forbidden"


class NotFoundError(AppError):
    status_code = 404
    error_code = "not_found"


# ── Concrete auth errors ──────────────────────────────────────────────────────


class DuplicateEmailError(ValidationError):
    error_code = "duplicate_email"

    def __init__(self, message: str = "User already exists", **kwargs: Any) -> None:
        super().__init__(message, field="email", **kwargs)


class InvalidRoleError(ValidationError):
    error_code = "invalid_role"

    def __init__(
        self,
        message: str = "Please select a valid role (buyer or seller)",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, field="role", **kwargs)


class TokenInvalidOrExpiredError(ValidationError):
    error_code = "token_invalid_or_expired"

    def __init__(
        self, message: str = "Invalid or expired token", **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)


class InvalidCredentialsError(AuthenticationError):
    error_code = "invalid_credentials"

    def __init__(
        self, message: str = "Invalid email or password", **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)


class EmailNotVerifiedError(AuthenticationError):
    error_code = "email_not_verified"

    def __init__(
        self,
        message: str = "Please verify your email before logging in",
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)


class InvalidRefreshTokenError(AuthenticationError):
    error_code = "invalid_refresh_token"

    def __init__(
        self, message: str = "Invalid or expired refresh token", **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)


class UnauthenticatedError(AuthenticationError):
    error_code = "unauthenticated"

    def __init__(self, message: str = "Not authorized", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class UserNotFoundError(NotFoundError):
    error_code = "user_not_found"

    def __init__(
        self, message: str = "User not found with this email", **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)


class InvalidTokenError(Exception):
    """Raised by the token codec; callers translate it into an AppError."""


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        field = None
        if errors:
            loc = [str(part) for part in errors[0].get("loc", ()) if part != "body"]
            field = ".".join(loc) or None
        err = ValidationError(
            errors[0]["msg"] if errors else "invalid request",
            field=field,
        )
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Sentry integration: if sentry_sdk is initialized it will auto-capture
        # unhandled exceptions before this handler fires.
        log.error(
            "unhandled_exception",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        return JSONResponse(
            status_code=500,
            content={"error": "An internal server error occurred.", "code": "internal_error"},
        )
