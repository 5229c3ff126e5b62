"""
Account flows — registration, email verification and password reset.

Links carry the raw one-time token; only its hash is stored (see
UserRepository). Registration never opens a session: the user has to verify
the email address before the first login.

forgot_password answers 404 for an unknown email while login answers a
generic 401. The two are inconsistent (forgot-password reveals whether an
account exists) and both are kept as they are for client compatibility.
"""

from __future__ import annotations

from dataclasses import dataclass

from errors import (
    DuplicateEmailError,
    InvalidRoleError,
    UserNotFoundError,
    ValidationError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.user_repository import UserRepository
from schemas.models.user import TokenPurpose, UserDoc
from shared.crypto import hash_password
from shared.logging import get_logger
from shared.validators import normalize_email, validate_password, validate_role

log = get_logger(__name__)


@dataclass(frozen=True)
class RegistrationResult:
    user: UserDoc
    verification_sent: bool


def _check_password(password: str) -> None:
    is_valid, missing_requirements = validate_password(password)
    if not is_valid:
        raise ValidationError(
            "Password does not meet requirements",
            field="password",
            details={"missing_requirements": missing_requirements},
        )


class AccountService:
    def __init__(
        self,
        users: UserRepository,
        email_provider: EmailProvider,
        *,
        api_url: str,
        frontend_url: str,
    ) -> None:
        self._users = users
        self._email = email_provider
        self._api_url = api_url.rstrip("/")
        self._frontend_url = frontend_url.rstrip("/")

    def verification_url(self, raw_token: str) -> str:
        return f"{self._api_url}/auth/verify-email/{raw_token}"

    def reset_url(self, raw_token: str) -> str:
        return f"{self._frontend_url}/reset-password/{raw_token}"

    async def register(
        self, name: str, email: str, password: str, role: str
    ) -> RegistrationResult:
        email = normalize_email(email)

        if await self._users.find_by_email(email) is not None:
            log.warning("registration_failed", reason="email_exists")
            raise DuplicateEmailError()

        if not validate_role(role):
            log.warning("registration_failed", reason="invalid_role", role=role)
            raise InvalidRoleError()

        _check_password(password)

        user = await self._users.create(
            name=name, email=email, password=password, role=role
        )
        log.info("user_registered", user_id=user.id_str, role=role)

        verification_sent = await self._send_verification(user)
        return RegistrationResult(user=user, verification_sent=verification_sent)

    async def _send_verification(self, user: UserDoc) -> bool:
        raw_token = await self._users.issue_one_time_token(
            user.id, TokenPurpose.VERIFY_EMAIL
        )
        sent = await self._email.send_verification_email(
            user.email, user.name, self.verification_url(raw_token)
        )
        if sent:
            log.info("verification_email_sent", user_id=user.id_str)
        else:
            # User stays unverified; resend_verification issues a fresh link
            log.error("verification_email_send_failed", user_id=user.id_str)
        return sent

    async def resend_verification(self, email: str) -> bool:
        user = await self._users.find_by_email(email)
        if user is None:
            raise UserNotFoundError()
        if user.is_email_verified:
            raise ValidationError("Email already verified", field="email")
        return await self._send_verification(user)

    async def verify_email(self, raw_token: str) -> UserDoc:
        user = await self._users.consume_one_time_token(
            raw_token,
            TokenPurpose.VERIFY_EMAIL,
            set_fields={"is_email_verified": True},
        )
        log.info("email_verified_success", user_id=user.id_str)
        return user

    async def forgot_password(self, email: str) -> bool:
        user = await self._users.find_by_email(email)
        if user is None:
            log.warning("password_reset_requested_nonexistent")
            raise UserNotFoundError()

        raw_token = await self._users.issue_one_time_token(
            user.id, TokenPurpose.RESET_PASSWORD
        )
        sent = await self._email.send_password_reset_email(
            user.email, user.name, self.reset_url(raw_token)
        )
        if sent:
            log.info("password_reset_email_sent", user_id=user.id_str)
        else:
            log.error("password_reset_email_send_failed", user_id=user.id_str)
        return sent

    async def reset_password(self, raw_token: str, new_password: str) -> UserDoc:
        _check_password(new_password)
        user = await self._users.consume_one_time_token(
            raw_token,
            TokenPurpose.RESET_PASSWORD,
            set_fields={"password_hash": hash_password(new_password)},
        )
        log.info("password_reset_success", user_id=user.id_str)
        return user
