"""
Client-side session controller.

Holds the token pair, attaches the access token to outgoing requests and
renews it silently when the API answers 401.

Refresh is single-flight per controller instance:
- the first request to see a 401 starts one refresh task; it and every
  other request that sees a 401 while the task runs wait on a future in
  ``_queue``
- the task belongs to the controller, so a cancelled caller only drops
  its own future and the others still get the new token
- on success the queue is resolved in arrival order and each waiter replays
  its request once with the new access token
- on any failure storage is cleared, ``on_session_cleared`` runs once (the
  caller's "go to login" hook) and every waiter gets the error:
  SessionExpiredError when the refresh token is rejected, the original
  exception otherwise (e.g. an OSError from token storage)
- a 401 that arrives after the session was cleared raises
  SessionExpiredError without clearing again
- a replayed request that gets another 401 is handed back as-is

The refresh task lives on the instance, so two controllers (two
processes, two browser tabs) do not coordinate with each other.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import deque
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from client.errors import AuthClientError, SessionExpiredError
from client.storage import (
    JsonFileTokenStorage,
    MemoryTokenStorage,
    TokenPair,
    TokenStorage,
)
from config import ClientSettings
from shared.logging import get_logger

log = get_logger(__name__)

REFRESH_PATH = "/auth/refresh-token"

# A 401 from these means bad input, not an expired access token
_NO_RENEW_PATHS = frozenset(
    {
        "/auth/login",
        "/auth/register",
        REFRESH_PATH,
    }
)

SessionClearedHook = Callable[[], Union[None, Awaitable[None]]]


class SessionController:
    def __init__(
        self,
        base_url: str,
        storage: Optional[TokenStorage] = None,
        *,
        on_session_cleared: Optional[SessionClearedHook] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._storage = storage or MemoryTokenStorage()
        self._on_session_cleared = on_session_cleared
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport
        )
        self._refresh_task: Optional[asyncio.Task] = None
        self._queue: deque[asyncio.Future] = deque()
        self.user: Optional[dict] = None

    @classmethod
    def from_settings(
        cls, settings: ClientSettings, storage: Optional[TokenStorage] = None, **kwargs: Any
    ) -> "SessionController":
        """Build a controller from env config; tokens persist to ``auth_token_file`` by default."""
        return cls(
            settings.auth_api_url,
            storage or JsonFileTokenStorage(settings.auth_token_file),
            timeout=settings.auth_client_timeout,
            **kwargs,
        )

    # ── Properties ───────────────────────────────────────────────────────────

    @property
    def tokens(self) -> TokenPair:
        return self._storage.load()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_refreshing(self) -> bool:
        return self._refresh_task is not None

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    # ── Transport ────────────────────────────────────────────────────────────

    async def _send(
        self, method: str, url: str, access_token: Optional[str], **kwargs: Any
    ) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return await self._client.request(method, url, headers=headers, **kwargs)

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send an authenticated request, renewing the access token on 401.

        Raises:
            SessionExpiredError: the access token expired and the refresh
                token was rejected (or missing); the session is cleared.
            OSError: token storage failed while saving the renewed token;
                the session is cleared as well.
        """
        sent_token = self._storage.load().access_token
        response = await self._send(method, url, sent_token, **kwargs)
        if response.status_code != 401 or httpx.URL(url).path in _NO_RENEW_PATHS:
            return response

        current = self._storage.load()
        if current.is_empty:
            # A failed refresh already cleared the session and ran the hook
            raise SessionExpiredError("session already cleared")
        if current.access_token and current.access_token != sent_token:
            # Another request already renewed the token while this one was out
            new_token = current.access_token
        else:
            new_token = await self._renew_access_token()

        # Replayed once; a second 401 goes back to the caller
        return await self._send(method, url, new_token, **kwargs)

    async def _renew_access_token(self) -> str:
        waiter = asyncio.get_running_loop().create_future()
        self._queue.append(waiter)
        if self._refresh_task is None:
            # Runs on its own so cancelling any one caller leaves it running
            self._refresh_task = asyncio.create_task(self._run_refresh())
        return await waiter

    async def _run_refresh(self) -> None:
        token: Optional[str] = None
        error: BaseException = SessionExpiredError("refresh cancelled")
        try:
            token = await self._call_refresh()
        except SessionExpiredError as e:
            error = e
            await self.clear_session()
        except Exception as e:
            log.error(
                "session_refresh_failed",
                reason="unexpected",
                error=str(e),
                error_type=type(e).__name__,
            )
            error = e
            await self.clear_session()
        finally:
            self._refresh_task = None
            self._drain_queue(token=token, error=None if token else error)

    async def _call_refresh(self) -> str:
        tokens = self._storage.load()
        if not tokens.refresh_token:
            log.info("session_refresh_skipped", reason="no_refresh_token")
            raise SessionExpiredError("no refresh token")

        try:
            response = await self._client.post(
                REFRESH_PATH, json={"refreshToken": tokens.refresh_token}
            )
        except httpx.HTTPError as e:
            log.warning("session_refresh_failed", reason="transport", error=str(e))
            raise SessionExpiredError(str(e)) from e

        if response.status_code != 200:
            log.warning(
                "session_refresh_failed",
                reason="rejected",
                status_code=response.status_code,
            )
            raise SessionExpiredError("refresh token rejected")

        access_token = self._payload(response).get("accessToken")
        if not access_token:
            raise SessionExpiredError("refresh response carried no access token")

        self._storage.save(TokenPair(access_token, tokens.refresh_token))
        log.info("session_refreshed", queued=len(self._queue))
        return access_token

    def _drain_queue(
        self,
        *,
        token: Optional[str] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        while self._queue:
            waiter = self._queue.popleft()
            if waiter.done():
                # Caller was cancelled while waiting
                continue
            if error is not None:
                waiter.set_exception(error)
            else:
                waiter.set_result(token)

    async def clear_session(self) -> None:
        """Drop tokens and user, then run the session-cleared hook."""
        self._storage.clear()
        self.user = None
        if self._on_session_cleared is not None:
            result = self._on_session_cleared()
            if inspect.isawaitable(result):
                await result

    # ── Auth API ─────────────────────────────────────────────────────────────

    @staticmethod
    def _payload(response: httpx.Response) -> dict:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _check(self, response: httpx.Response) -> dict:
        payload = self._payload(response)
        if response.is_error:
            raise AuthClientError(response.status_code, payload)
        return payload

    async def register(self, name: str, email: str, password: str, role: str) -> dict:
        response = await self._client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": password, "role": role},
        )
        return self._check(response)

    async def login(self, email: str, password: str) -> dict:
        response = await self._client.post(
            "/auth/login", json={"email": email, "password": password}
        )
        payload = self._check(response)
        self._storage.save(TokenPair(payload["accessToken"], payload["refreshToken"]))
        self.user = payload.get("user")
        log.info("client_login_success", role=(self.user or {}).get("role"))
        return payload

    async def verify_email(self, token: str) -> dict:
        return self._check(await self._client.get(f"/auth/verify-email/{token}"))

    async def forgot_password(self, email: str) -> dict:
        response = await self._client.post(
            "/auth/forgot-password", json={"email": email}
        )
        return self._check(response)

    async def reset_password(self, token: str, password: str) -> dict:
        response = await self._client.put(
            f"/auth/reset-password/{token}", json={"password": password}
        )
        return self._check(response)

    async def me(self) -> dict:
        payload = self._check(await self.request("GET", "/auth/me"))
        self.user = payload.get("data")
        return self.user

    async def restore(self) -> Optional[dict]:
        """Re-establish the session from stored tokens (app start-up).

        Returns the user, or None when there is no usable session.
        """
        if self._storage.load().is_empty:
            return None
        try:
            return await self.me()
        except SessionExpiredError:
            return None
        except AuthClientError as e:
            log.warning("session_restore_failed", status_code=e.status_code)
            await self.clear_session()
            return None

    async def logout(self) -> None:
        """Tell the server, then clear local state whatever the outcome."""
        try:
            response = await self.request("POST", "/auth/logout")
            if response.is_error:
                log.warning("client_logout_failed", status_code=response.status_code)
        except (httpx.HTTPError, SessionExpiredError) as e:
            log.warning("client_logout_failed", error=str(e))
        finally:
            # A failed refresh during the call has already cleared everything
            if not (self._storage.load().is_empty and self.user is None):
                await self.clear_session()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "SessionController":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
