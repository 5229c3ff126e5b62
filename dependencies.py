"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Long-lived collaborators (repository, token
codec, email provider) are built once in the app lifespan and stored on
app.state; services are cheap and built per request.

Authentication reads the access token from the ``token`` cookie first and
falls back to an ``Authorization: Bearer`` header. require_roles() layers a
role check on top of that gate.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from fastapi import Depends, Request

from config import AppSettings
from errors import ForbiddenError, UnauthenticatedError
from infrastructure.email.protocol import EmailProvider
from repositories.user_repository import UserRepository
from schemas.models.user import UserDoc
from services.account_service import AccountService
from services.session_manager import SessionManager
from services.token_codec import TokenCodec
from shared.logging import get_logger

log = get_logger(__name__)

ACCESS_TOKEN_COOKIE = "token"
REFRESH_TOKEN_COOKIE = "refreshToken"


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.users


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_email_provider(request: Request) -> EmailProvider:
    return request.app.state.email_provider


def get_session_manager(
    users: UserRepository = Depends(get_user_repository),
    codec: TokenCodec = Depends(get_token_codec),
) -> SessionManager:
    return SessionManager(users, codec)


def get_account_service(
    users: UserRepository = Depends(get_user_repository),
    email_provider: EmailProvider = Depends(get_email_provider),
    settings: AppSettings = Depends(get_settings),
) -> AccountService:
    return AccountService(
        users,
        email_provider,
        api_url=settings.api_url,
        frontend_url=settings.frontend_url,
    )


def extract_access_token(request: Request) -> Optional[str]:
    """Return the access token from the cookie, else from the bearer header."""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


async def get_current_user(
    request: Request,
    sessions: SessionManager = Depends(get_session_manager),
) -> UserDoc:
    token = extract_access_token(request)
    if not token:
        raise UnauthenticatedError("Not authorized, no token")
    return await sessions.get_current_user(token)


def require_roles(*roles: str) -> Callable:
    """Build a dependency that admits only users whose role is in *roles*.

    Authentication runs first, so a missing or invalid token is a 401 before
    any role is looked at.

    Usage:
        @router.get("/seller/dashboard")
        async def dash(user: UserDoc = Depends(require_roles("seller"))): ...
    """
    allowed = frozenset(roles)

    async def _role_gate(user: UserDoc = Depends(get_current_user)) -> UserDoc:
        if user.role not in allowed:
            log.warning(
                "authorization_denied",
                user_id=user.id_str,
                role=user.role,
                allowed=sorted(allowed),
            )
            raise ForbiddenError(
                f"User role {user.role} is not authorized to access this route"
            )
        return user

    return _role_gate


def route_guards(mapping: dict[str, Iterable[str]]) -> dict[str, Callable]:
    """Build one role gate per guarded operation name.

    ``mapping`` maps an operation name to the roles allowed to run it, e.g.
    ``{"list_products": ["buyer", "seller"], "create_product": ["seller"]}``.
    """
    return {name: require_roles(*roles) for name, roles in mapping.items()}
