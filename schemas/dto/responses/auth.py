"""
Response DTOs for authentication endpoints.

The browser client reads camelCase keys, so every model here serialises by
alias (route handlers call ``model_dump(by_alias=True)``).

UserProfileResponse — public user projection (never includes credentials)
RegisterResponse    — POST /auth/register  (201)
LoginResponse       — POST /auth/login  (200)
RefreshResponse     — POST /auth/refresh-token  (200)
MeResponse          — GET  /auth/me  (200)
DashboardResponse   — GET  /buyer/dashboard, /seller/dashboard  (200)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.user import UserDoc


class UserProfileResponse(BaseModel):
    """Outbound user shape. Password hash, refresh token and one-time token
    hashes are deliberately absent."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    role: str
    is_email_verified: bool = Field(alias="isEmailVerified")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    @classmethod
    def from_user(cls, user: UserDoc) -> "UserProfileResponse":
        return cls(
            id=user.id_str,
            name=user.name,
            email=user.email,
            role=user.role,
            is_email_verified=user.is_email_verified,
            created_at=user.created_at,
        )


class RegisterResponse(BaseModel):
    """Response body for POST /auth/register (201)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    verification_sent: bool = Field(alias="verificationSent")


class LoginResponse(BaseModel):
    """Response body for POST /auth/login (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    user: UserProfileResponse


class RefreshResponse(BaseModel):
    """Response body for POST /auth/refresh-token (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    access_token: str = Field(alias="accessToken")


class MeResponse(BaseModel):
    """Response body for GET /auth/me (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    data: UserProfileResponse


class DashboardResponse(BaseModel):
    """Response body for the role-gated dashboard routes."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    user: UserProfileResponse
