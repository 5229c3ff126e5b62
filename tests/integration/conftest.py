"""
Integration test fixtures.

The app is assembled the way create_app() does it, but the lifespan puts
in-memory collaborators on app.state so no MongoDB or SMTP server is needed.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from config import AppSettings, DatabaseSettings
from errors import register_error_handlers
from routes.auth_routes import router as auth_router
from routes.dashboard_routes import router as dashboard_router
from routes.health_routes import router as health_router
from tests.fakes import PASSWORD


def build_test_app(settings, users, codec, email_provider, mongo_ok=True) -> FastAPI:
    mock_db = MagicMock()
    if mongo_ok:
        mock_db.client.admin.command = AsyncMock(return_value={"ok": 1})
    else:
        mock_db.client.admin.command = AsyncMock(
            side_effect=Exception("connection refused")
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.db = mock_db
        app.state.settings = settings
        app.state.users = users
        app.state.token_codec = codec
        app.state.email_provider = email_provider
        yield

    app = FastAPI(lifespan=lifespan)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(dashboard_router)
    return app


@pytest.fixture
def settings(jwt_settings):
    return AppSettings(
        env="development",
        api_url="http://api.test",
        frontend_url="http://app.test",
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        jwt=jwt_settings,
    )


@pytest.fixture
def make_app(settings, users, codec, email_provider):
    def _make(**kwargs):
        return build_test_app(settings, users, codec, email_provider, **kwargs)

    return _make


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def signup(client, email_provider):
    """Register and verify an account over HTTP, then return its email."""

    def _signup(email="alice@example.com", role="buyer", name="Alice"):
        resp = client.post(
            "/auth/register",
            json={"name": name, "email": email, "password": PASSWORD, "role": role},
        )
        assert resp.status_code == 201, resp.text
        token = email_provider.last("verify").token
        assert client.get(f"/auth/verify-email/{token}").status_code == 200
        return email

    return _signup


@pytest.fixture
def login(client):
    """Log in and return the JSON body."""

    def _login(email="alice@example.com", password=PASSWORD):
        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _login
