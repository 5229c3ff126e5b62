"""
Session manager — login, refresh, logout and current-user resolution.

A session is the access/refresh pair issued at login. Each user has a single
refresh-token slot: logging in again overwrites it (older sessions can no
longer refresh) and logging out clears it. Refresh compares the presented
token verbatim against the stored one and issues a new access token only;
the refresh token itself is not rotated.
"""

from __future__ import annotations

from dataclasses import dataclass

from errors import (
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    InvalidTokenError,
    UnauthenticatedError,
)
from repositories.user_repository import UserRepository
from schemas.models.user import UserDoc
from services.token_codec import TokenCodec, TokenKind
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class LoginResult:
    access_token: str
    refresh_token: str
    user: UserDoc


class SessionManager:
    def __init__(self, users: UserRepository, codec: TokenCodec) -> None:
        self._users = users
        self._codec = codec

    async def login(self, email: str, password: str) -> LoginResult:
        user = await self._users.find_by_email(email)
        if user is None:
            # Same error as a bad password: do not reveal which check failed
            log.warning("login_failed", reason="invalid_credentials", email_exists=False)
            raise InvalidCredentialsError()

        if not self._users.compare_password(user, password):
            log.warning("login_failed", reason="invalid_password", user_id=user.id_str)
            raise InvalidCredentialsError()

        if not user.is_email_verified:
            log.warning("login_failed", reason="email_not_verified", user_id=user.id_str)
            raise EmailNotVerifiedError()

        access_token = self._codec.issue_access_token(user.id_str)
        refresh_token = self._codec.issue_refresh_token(user.id_str)
        await self._users.record_login(user.id, refresh_token)
        user.refresh_token = refresh_token

        log.info("login_success", user_id=user.id_str, role=user.role)
        return LoginResult(access_token, refresh_token, user)

    async def refresh(self, presented_refresh_token: str) -> str:
        """Exchange a stored refresh token for a new access token.

        Raises:
            InvalidRefreshTokenError: token fails verification, its user is
                gone, or it is not the token currently stored for that user.
        """
        try:
            claims = self._codec.verify(presented_refresh_token, TokenKind.REFRESH)
        except InvalidTokenError as e:
            log.warning("token_refresh_failed", reason="expired_or_invalid", error=str(e))
            raise InvalidRefreshTokenError() from e

        user = await self._users.find_by_id(claims.subject)
        if user is None:
            log.warning("token_refresh_failed", reason="user_missing", user_id=claims.subject)
            raise InvalidRefreshTokenError()

        if user.refresh_token is None or user.refresh_token != presented_refresh_token:
            # Superseded by a later login, or cleared by logout
            log.warning("token_refresh_failed", reason="not_current", user_id=user.id_str)
            raise InvalidRefreshTokenError()

        log.info("token_refreshed", user_id=user.id_str)
        return self._codec.issue_access_token(user.id_str)

    async def logout(self, user_id: str) -> None:
        await self._users.set_refresh_token(user_id, None)
        log.info("logout", user_id=str(user_id))

    async def get_current_user(self, access_token: str) -> UserDoc:
        """Resolve the user behind *access_token*.

        Raises:
            UnauthenticatedError: token invalid/expired or user no longer exists.
        """
        try:
            claims = self._codec.verify(access_token, TokenKind.ACCESS)
        except InvalidTokenError as e:
            raise UnauthenticatedError("Not authorized, token failed") from e

        user = await self._users.find_by_id(claims.subject)
        if user is None:
            raise UnauthenticatedError("Not authorized, token failed")
        return user
