"""
Request DTOs for authentication endpoints.

RegisterRequest            — POST /auth/register
LoginRequest               — POST /auth/login
RefreshTokenRequest        — POST /auth/refresh-token
ForgotPasswordRequest      — POST /auth/forgot-password
ResendVerificationRequest  — POST /auth/resend-verification
ResetPasswordRequest       — PUT  /auth/reset-password/{token}
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register.

    ``role`` is left as a plain string so an unknown role surfaces as
    InvalidRoleError from the service rather than a generic schema error.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str
    role: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str


class RefreshTokenRequest(BaseModel):
    """Request body for POST /auth/refresh-token.

    The token may also arrive in the ``refreshToken`` cookie, so the body
    field is optional.
    """

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /auth/forgot-password."""

    model_config = ConfigDict(populate_by_name=True)

    email: str


class ResendVerificationRequest(BaseModel):
    """Request body for POST /auth/resend-verification."""

    model_config = ConfigDict(populate_by_name=True)

    email: str


class ResetPasswordRequest(BaseModel):
    """Request body for PUT /auth/reset-password/{token}."""

    model_config = ConfigDict(populate_by_name=True)

    password: str
