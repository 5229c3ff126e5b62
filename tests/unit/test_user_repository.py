"""Unit tests for repositories.user_repository."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from bson import ObjectId
from pymongo import ReturnDocument

from errors import DuplicateEmailError, TokenInvalidOrExpiredError
from repositories.user_repository import UserRepository
from schemas.models.user import TokenPurpose
from shared.crypto import hash_token


class TestCreateAndFind:
    async def test_create_hashes_password_and_normalises_email(self, users, users_collection):
        user = await users.create(
            name="Alice", email="  Alice@Example.COM ", password="Aa1!aaaa", role="buyer"
        )
        raw = users_collection.raw("alice@example.com")
        assert raw["password_hash"] != "Aa1!aaaa"
        assert raw["password_hash"].startswith("$argon2")
        assert raw["is_email_verified"] is False
        assert user.id == raw["_id"]

    async def test_duplicate_email(self, users):
        await users.create(name="A", email="a@x.com", password="p", role="buyer")
        with pytest.raises(DuplicateEmailError):
            await users.create(name="B", email="A@x.com", password="p", role="seller")

    async def test_find_by_email_is_case_insensitive(self, users, make_user):
        await make_user(email="bob@example.com")
        assert (await users.find_by_email("BOB@example.com")).email == "bob@example.com"

    async def test_find_by_id(self, users, make_user):
        user = await make_user()
        assert (await users.find_by_id(str(user.id))).email == user.email

    @pytest.mark.parametrize("user_id", ["not-an-id", None, ""], ids=["garbage", "none", "empty"])
    async def test_find_by_invalid_id(self, users, user_id):
        assert await users.find_by_id(user_id) is None

    async def test_compare_password(self, users, make_user):
        user = await make_user(password="Aa1!aaaa")
        assert users.compare_password(user, "Aa1!aaaa") is True
        assert users.compare_password(user, "wrong") is False


class TestOneTimeTokens:
    async def test_only_hash_is_stored(self, users, users_collection, make_user, clock):
        user = await make_user(verified=False)
        raw = await users.issue_one_time_token(user.id, TokenPurpose.VERIFY_EMAIL)
        doc = users_collection.raw(user.email)
        assert raw not in doc.values()
        assert doc["email_verification_token_hash"] == hash_token(raw)
        assert doc["email_verification_expires_at"] == clock() + timedelta(hours=24)

    async def test_reset_token_lives_ten_minutes(self, users, users_collection, make_user, clock):
        user = await make_user()
        await users.issue_one_time_token(user.id, TokenPurpose.RESET_PASSWORD)
        doc = users_collection.raw(user.email)
        assert doc["reset_password_expires_at"] == clock() + timedelta(minutes=10)

    async def test_consume_applies_fields_and_clears_token(self, users, users_collection, make_user):
        user = await make_user(verified=False)
        raw = await users.issue_one_time_token(user.id, TokenPurpose.VERIFY_EMAIL)
        consumed = await users.consume_one_time_token(
            raw, TokenPurpose.VERIFY_EMAIL, set_fields={"is_email_verified": True}
        )
        assert consumed.is_email_verified is True
        assert consumed.email_verification_token_hash is None
        assert consumed.email_verification_expires_at is None

    async def test_consume_twice_fails(self, users, make_user):
        user = await make_user()
        raw = await users.issue_one_time_token(user.id, TokenPurpose.RESET_PASSWORD)
        await users.consume_one_time_token(raw, TokenPurpose.RESET_PASSWORD)
        with pytest.raises(TokenInvalidOrExpiredError):
            await users.consume_one_time_token(raw, TokenPurpose.RESET_PASSWORD)

    async def test_expired_token_rejected_without_mutation(
        self, users, users_collection, make_user, clock
    ):
        user = await make_user(verified=False)
        raw = await users.issue_one_time_token(user.id, TokenPurpose.VERIFY_EMAIL)
        before = dict(users_collection.raw(user.email))
        clock.advance(hours=24, seconds=1)
        with pytest.raises(TokenInvalidOrExpiredError):
            await users.consume_one_time_token(
                raw, TokenPurpose.VERIFY_EMAIL, set_fields={"is_email_verified": True}
            )
        assert users_collection.raw(user.email) == before

    async def test_purposes_do_not_cross(self, users, make_user):
        user = await make_user()
        raw = await users.issue_one_time_token(user.id, TokenPurpose.VERIFY_EMAIL)
        with pytest.raises(TokenInvalidOrExpiredError):
            await users.consume_one_time_token(raw, TokenPurpose.RESET_PASSWORD)

    async def test_newer_token_supersedes_older(self, users, make_user):
        user = await make_user()
        first = await users.issue_one_time_token(user.id, TokenPurpose.RESET_PASSWORD)
        second = await users.issue_one_time_token(user.id, TokenPurpose.RESET_PASSWORD)
        with pytest.raises(TokenInvalidOrExpiredError):
            await users.consume_one_time_token(first, TokenPurpose.RESET_PASSWORD)
        assert (await users.consume_one_time_token(second, TokenPurpose.RESET_PASSWORD)).id == user.id

    async def test_empty_token_rejected(self, users):
        with pytest.raises(TokenInvalidOrExpiredError):
            await users.consume_one_time_token("", TokenPurpose.VERIFY_EMAIL)

    async def test_consume_is_a_single_atomic_update(self, clock):
        col = AsyncMock()
        col.find_one_and_update.return_value = {
            "_id": ObjectId(),
            "name": "A",
            "email": "a@x.com",
            "role": "buyer",
            "password_hash": "h",
        }
        repo = UserRepository(col, clock=clock)
        await repo.consume_one_time_token(
            "raw", TokenPurpose.RESET_PASSWORD, set_fields={"password_hash": "new"}
        )
        col.find_one_and_update.assert_awaited_once()
        query, update = col.find_one_and_update.call_args[0]
        assert query == {
            "reset_password_token_hash": hash_token("raw"),
            "reset_password_expires_at": {"$gt": clock()},
        }
        assert update["$set"]["password_hash"] == "new"
        assert update["$set"]["reset_password_token_hash"] is None
        assert col.find_one_and_update.call_args.kwargs["return_document"] is ReturnDocument.AFTER
        col.update_one.assert_not_called()


class TestRefreshSlot:
    async def test_set_and_clear(self, users, make_user):
        user = await make_user()
        await users.set_refresh_token(user.id, "rt-1")
        assert (await users.find_by_id(user.id)).refresh_token == "rt-1"
        await users.set_refresh_token(user.id, None)
        assert (await users.find_by_id(user.id)).refresh_token is None

    async def test_record_login_overwrites(self, users, make_user, clock):
        user = await make_user()
        await users.record_login(user.id, "rt-1")
        await users.record_login(user.id, "rt-2")
        stored = await users.find_by_id(user.id)
        assert stored.refresh_token == "rt-2"
        assert stored.last_login_at == clock()


async def test_ensure_indexes(users, users_collection):
    await users.ensure_indexes()
    keys = [(keys, kwargs) for keys, kwargs in users_collection.indexes]
    assert ([("email", 1)], {"unique": True}) in keys
    assert len(keys) == 3
