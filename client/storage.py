"""
Token storage for the client session controller.

The browser keeps ``accessToken`` and ``refreshToken`` in local storage;
JsonFileTokenStorage is the on-disk equivalent and MemoryTokenStorage the
throwaway one. Both are cleared wholesale on logout or when a refresh fails.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Optional, Protocol

from shared.logging import get_logger

log = get_logger(__name__)


@dataclass
class TokenPair:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token


class TokenStorage(Protocol):
    def load(self) -> TokenPair: ...

    def save(self, tokens: TokenPair) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStorage:
    def __init__(self, tokens: Optional[TokenPair] = None) -> None:
        self._tokens = tokens or TokenPair()

    def load(self) -> TokenPair:
        return TokenPair(self._tokens.access_token, self._tokens.refresh_token)

    def save(self, tokens: TokenPair) -> None:
        self._tokens = TokenPair(tokens.access_token, tokens.refresh_token)

    def clear(self) -> None:
        self._tokens = TokenPair()


class JsonFileTokenStorage:
    """Persists the pair as ``{"accessToken": ..., "refreshToken": ...}``."""

    def __init__(self, path: str) -> None:
        self._path = path

    def load(self) -> TokenPair:
        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return TokenPair()
        except (OSError, json.JSONDecodeError) as e:
            log.warning("token_storage_unreadable", path=self._path, error=str(e))
            return TokenPair()
        return TokenPair(data.get("accessToken"), data.get("refreshToken"))

    def save(self, tokens: TokenPair) -> None:
        tmp_path = f"{self._path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(
                {
                    "accessToken": tokens.access_token,
                    "refreshToken": tokens.refresh_token,
                },
                fh,
            )
        os.replace(tmp_path, self._path)

    def clear(self) -> None:
        try:
            os.remove(self._path)
        except FileNotFoundError:
            pass
