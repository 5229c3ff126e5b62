"""
User document model.

Maps to the `users` MongoDB collection.

Verification and reset tokens live on the user document itself as
(hash, expiry) pairs; only the SHA-256 of the emailed value is stored.
refresh_token is a single slot: a new login overwrites it, logout clears it.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from schemas.models.base import MongoBaseModel


class TokenPurpose(str, Enum):
    """What a one-time token was issued for."""

    VERIFY_EMAIL = "verify-email"
    RESET_PASSWORD = "reset-password"

    @property
    def hash_field(self) -> str:
        if self is TokenPurpose.VERIFY_EMAIL:
            return "email_verification_token_hash"
        return "reset_password_token_hash"

    @property
    def expiry_field(self) -> str:
        if self is TokenPurpose.VERIFY_EMAIL:
            return "email_verification_expires_at"
        return "reset_password_expires_at"


class UserDoc(MongoBaseModel):
    """
    Document model for the `users` collection.

    role values: "buyer", "seller"
    """

    name: str
    email: str
    role: str
    password_hash: str

    is_email_verified: bool = False
    email_verification_token_hash: Optional[str] = None
    email_verification_expires_at: Optional[datetime] = None

    reset_password_token_hash: Optional[str] = None
    reset_password_expires_at: Optional[datetime] = None

    refresh_token: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
