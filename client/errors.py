"""Errors raised by the client-side session controller."""

from __future__ import annotations

from typing import Any, Optional


class AuthClientError(Exception):
    """The auth API answered with a non-success status."""

    def __init__(self, status_code: int, payload: Optional[Any] = None) -> None:
        self.status_code = status_code
        self.payload = payload or {}
        message = (
            self.payload.get("error") if isinstance(self.payload, dict) else None
        ) or f"request failed with status {status_code}"
        super().__init__(message)
        self.message = message

    @property
    def code(self) -> Optional[str]:
        if isinstance(self.payload, dict):
            return self.payload.get("code")
        return None


class SessionExpiredError(Exception):
    """The session could not be renewed; stored tokens have been cleared."""
