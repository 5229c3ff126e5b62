"""
User repository — the only module that talks to the `users` collection.

One-time tokens (email verification, password reset) are stored on the user
document as a SHA-256 hash plus an expiry. Consuming a token is a single
``find_one_and_update``: the filter matches hash + unexpired, and the same
update clears the token fields and applies the caller's change, so a token
cannot be replayed between the two steps.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from errors import DuplicateEmailError, TokenInvalidOrExpiredError
from schemas.models.base import to_object_id
from schemas.models.user import TokenPurpose, UserDoc
from shared.crypto import hash_password, hash_token, verify_password
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_one_time_token
from shared.logging import get_logger
from shared.validators import normalize_email

log = get_logger(__name__)

USERS_COLLECTION = "users"

ONE_TIME_TOKEN_TTLS: dict[TokenPurpose, timedelta] = {
    TokenPurpose.VERIFY_EMAIL: timedelta(hours=24),
    TokenPurpose.RESET_PASSWORD: timedelta(minutes=10),
}


class UserRepository:
    def __init__(self, collection: Any, clock: Clock = utcnow) -> None:
        self._col = collection
        self._clock = clock

    async def ensure_indexes(self) -> None:
        await self._col.create_index([("email", ASCENDING)], unique=True)
        for purpose in TokenPurpose:
            await self._col.create_index(
                [(purpose.hash_field, ASCENDING)], sparse=True
            )

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"email": normalize_email(email)})
        return UserDoc.from_mongo(doc)

    async def find_by_id(self, user_id: Any) -> Optional[UserDoc]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        doc = await self._col.find_one({"_id": oid})
        return UserDoc.from_mongo(doc)

    async def create(
        self, *, name: str, email: str, password: str, role: str
    ) -> UserDoc:
        """Insert a new, unverified user.

        Raises:
            DuplicateEmailError: the unique email index rejected the insert.
        """
        now = self._clock()
        user = UserDoc(
            name=name,
            email=normalize_email(email),
            role=role,
            password_hash=hash_password(password),
            is_email_verified=False,
            created_at=now,
            updated_at=now,
        )
        try:
            result = await self._col.insert_one(user.to_mongo())
        except DuplicateKeyError as e:
            # Race: email was registered between the caller's check and insert
            log.warning("user_insert_failed", reason="duplicate_email")
            raise DuplicateEmailError() from e
        user.id = result.inserted_id
        return user

    async def issue_one_time_token(self, user_id: Any, purpose: TokenPurpose) -> str:
        """Store hash + expiry for a fresh token on the user and return the raw value.

        Any earlier token for the same purpose is overwritten.
        """
        raw = generate_one_time_token()
        now = self._clock()
        await self._col.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {
                    purpose.hash_field: hash_token(raw),
                    purpose.expiry_field: now + ONE_TIME_TOKEN_TTLS[purpose],
                    "updated_at": now,
                }
            },
        )
        log.info(
            "one_time_token_issued",
            user_id=str(user_id),
            purpose=purpose.value,
        )
        return raw

    async def consume_one_time_token(
        self,
        raw_token: str,
        purpose: TokenPurpose,
        *,
        set_fields: Optional[dict[str, Any]] = None,
    ) -> UserDoc:
        """Atomically match an unexpired token, clear it and apply *set_fields*.

        Raises:
            TokenInvalidOrExpiredError: no user holds this unexpired token.
                Nothing is modified in that case.
        """
        if not raw_token:
            raise TokenInvalidOrExpiredError()
        now = self._clock()
        update = {
            purpose.hash_field: None,
            purpose.expiry_field: None,
            "updated_at": now,
        }
        if set_fields:
            update.update(set_fields)

        doc = await self._col.find_one_and_update(
            {
                purpose.hash_field: hash_token(raw_token),
                purpose.expiry_field: {"$gt": now},
            },
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            log.warning("one_time_token_rejected", purpose=purpose.value)
            raise TokenInvalidOrExpiredError()
        return UserDoc.from_mongo(doc)

    async def set_refresh_token(self, user_id: Any, token: Optional[str]) -> None:
        """Overwrite the user's single refresh-token slot (None clears it)."""
        oid = to_object_id(user_id)
        if oid is None:
            return
        await self._col.update_one(
            {"_id": oid},
            {"$set": {"refresh_token": token, "updated_at": self._clock()}},
        )

    async def record_login(self, user_id: Any, refresh_token: str) -> None:
        """Store the new refresh token and stamp last_login_at in one update."""
        now = self._clock()
        await self._col.update_one(
            {"_id": to_object_id(user_id)},
            {
                "$set": {
                    "refresh_token": refresh_token,
                    "last_login_at": now,
                    "updated_at": now,
                }
            },
        )

    def compare_password(self, user: UserDoc, candidate: str) -> bool:
        return verify_password(candidate, user.password_hash)
