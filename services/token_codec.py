"""
Token codec — issues and verifies signed, expiring JWTs.

Access tokens are short-lived (15 minutes by default) and signed with
JWT_SECRET. Refresh tokens are long-lived (7 days by default) and signed with
JWT_REFRESH_SECRET, falling back to JWT_SECRET when that is unset.

A ``type`` claim keeps the two kinds apart even when both use the same key.
Expiry is checked against the injected clock rather than the wall clock so
lifetimes can be exercised with a simulated clock.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

import jwt

from config import JWTSettings
from errors import InvalidTokenError
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_token_id

_ALGORITHM = "HS256"


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    kind: TokenKind
    issued_at: datetime
    expires_at: datetime
    token_id: Optional[str] = None


class TokenCodec:
    def __init__(self, settings: JWTSettings, clock: Clock = utcnow) -> None:
        if not settings.jwt_secret:
            raise RuntimeError("JWT_SECRET must be set")
        self._settings = settings
        self._clock = clock
        self._keys = {
            TokenKind.ACCESS: settings.jwt_secret,
            TokenKind.REFRESH: settings.refresh_secret,
        }
        self._ttls = {
            TokenKind.ACCESS: timedelta(seconds=settings.access_token_ttl_seconds),
            TokenKind.REFRESH: timedelta(seconds=settings.refresh_token_ttl_seconds),
        }

    def issue_access_token(self, user_id: str) -> str:
        return self._issue(user_id, TokenKind.ACCESS)

    def issue_refresh_token(self, user_id: str) -> str:
        return self._issue(user_id, TokenKind.REFRESH)

    def _issue(self, user_id: str, kind: TokenKind) -> str:
        now = self._clock()
        claims = {
            "iss": self._settings.jwt_issuer,
            "aud": self._settings.jwt_audience,
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttls[kind]).timestamp()),
            "jti": generate_token_id(),
            "type": kind.value,
        }
        return jwt.encode(claims, self._keys[kind], algorithm=_ALGORITHM)

    def verify(self, token: str, kind: TokenKind) -> TokenClaims:
        """Decode *token* as a *kind* token.

        Raises:
            InvalidTokenError: bad signature, malformed token, wrong kind,
                missing subject, or expired relative to the codec's clock.
        """
        if not token:
            raise InvalidTokenError("missing token")
        try:
            claims = jwt.decode(
                token,
                self._keys[kind],
                algorithms=[_ALGORITHM],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                options={
                    "require": ["exp", "iat", "sub"],
                    # exp/iat are checked below against self._clock
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError(str(e)) from e

        if claims.get("type") != kind.value:
            raise InvalidTokenError(f"expected a {kind.value} token")

        expires_at = datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc)
        if expires_at <= self._clock():
            raise InvalidTokenError("token has expired")

        subject = claims.get("sub")
        if not subject:
            raise InvalidTokenError("token has no subject")

        return TokenClaims(
            subject=str(subject),
            kind=kind,
            issued_at=datetime.fromtimestamp(int(claims["iat"]), tz=timezone.utc),
            expires_at=expires_at,
            token_id=claims.get("jti"),
        )
