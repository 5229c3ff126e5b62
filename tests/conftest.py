import os

import pytest

from config import JWTSettings
from repositories.user_repository import UserRepository
from services.account_service import AccountService
from services.session_manager import SessionManager
from services.token_codec import TokenCodec
from tests.fakes import PASSWORD, CapturingEmailProvider, FakeClock, FakeUsersCollection

# Ensure a MONGODB_URI is present so AppSettings can be instantiated
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def jwt_settings():
    return JWTSettings(jwt_secret="access-secret", jwt_refresh_secret="refresh-secret")


@pytest.fixture
def codec(jwt_settings, clock):
    return TokenCodec(jwt_settings, clock=clock)


@pytest.fixture
def users_collection():
    return FakeUsersCollection()


@pytest.fixture
def users(users_collection, clock):
    return UserRepository(users_collection, clock=clock)


@pytest.fixture
def email_provider():
    return CapturingEmailProvider()


@pytest.fixture
def sessions(users, codec):
    return SessionManager(users, codec)


@pytest.fixture
def accounts(users, email_provider):
    return AccountService(
        users,
        email_provider,
        api_url="http://api.test",
        frontend_url="http://app.test",
    )


@pytest.fixture
def make_user(users):
    """Create a user directly through the repository."""

    async def _make(
        email="alice@example.com",
        password=PASSWORD,
        role="buyer",
        name="Alice",
        verified=True,
    ):
        user = await users.create(name=name, email=email, password=password, role=role)
        if verified:
            await users._col.update_one(
                {"_id": user.id}, {"$set": {"is_email_verified": True}}
            )
            user.is_email_verified = True
        return user

    return _make
