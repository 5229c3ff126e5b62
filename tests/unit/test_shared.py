"""
Unit tests for the shared/ utility modules.

Covers:
- shared.validators      (normalize_email, validate_role, validate_password)
- shared.generators      (generate_one_time_token, generate_token_id)
- shared.crypto          (hash_password, verify_password, hash_token)
- shared.datetime_utils  (utcnow)
- shared.logging         (redact_sensitive_fields)
"""

from __future__ import annotations

import hashlib
import re
from datetime import timezone

import pytest

from shared.crypto import hash_password, hash_token, verify_password
from shared.datetime_utils import utcnow
from shared.generators import generate_one_time_token, generate_token_id
from shared.logging import redact_sensitive_fields
from shared.validators import (
    normalize_email,
    validate_password,
    validate_role,
)


# ---------------------------------------------------------------------------
# shared.validators
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Alice@Example.COM", "alice@example.com"),
        ("  bob@example.com\t", "bob@example.com"),
        (None, ""),
    ],
    ids=["mixed_case", "whitespace", "none"],
)
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


@pytest.mark.parametrize(
    "role, valid",
    [
        ("buyer", True),
        ("seller", True),
        ("admin", False),
        ("BUYER", False),
        ("", False),
        (None, False),
    ],
)
def test_validate_role(role, valid):
    assert validate_role(role) is valid


@pytest.mark.parametrize(
    "password, valid",
    [
        ("Aa1!aaaa", True),
        ("Correct Horse 9!", True),  # spaces allowed
        ("Aa1!aaa", False),  # too short
        ("aa1!aaaa", False),  # no uppercase
        ("AA1!AAAA", False),  # no lowercase
        ("Aaa!aaaa", False),  # no digit
        ("Aa1aaaaa", False),  # no special char
        ("Aa1!aaaaé", False),  # outside safe charset
        ("Aa1!" + "a" * 125, False),  # 129 chars
    ],
    ids=[
        "valid",
        "valid_spaces",
        "too_short",
        "no_upper",
        "no_lower",
        "no_digit",
        "no_special",
        "unsafe_char",
        "too_long",
    ],
)
def test_validate_password(password, valid):
    ok, missing = validate_password(password)
    assert ok is valid
    assert (missing == []) is valid


def test_validate_password_lists_every_gap():
    ok, missing = validate_password("abc")
    assert not ok
    assert missing == [
        "At least 8 characters",
        "At least one uppercase letter",
        "At least one number",
        "At least one special character",
    ]


def test_validate_password_empty():
    assert validate_password("") == (False, ["Password is required"])


# ---------------------------------------------------------------------------
# shared.generators
# ---------------------------------------------------------------------------


def test_one_time_token_is_hex_and_sized():
    token = generate_one_time_token()
    assert re.fullmatch(r"[0-9a-f]{40}", token)
    assert len(generate_one_time_token(32)) == 64


def test_one_time_tokens_are_unique():
    assert len({generate_one_time_token() for _ in range(200)}) == 200


def test_token_id_is_url_safe():
    assert re.fullmatch(r"[A-Za-z0-9_-]+", generate_token_id())
    assert generate_token_id() != generate_token_id()


# ---------------------------------------------------------------------------
# shared.crypto
# ---------------------------------------------------------------------------


class TestPasswordHashing:
    def test_roundtrip(self):
        hashed = hash_password("Aa1!aaaa")
        assert hashed.startswith("$argon2id$")
        assert verify_password("Aa1!aaaa", hashed) is True

    def test_wrong_password(self):
        assert verify_password("nope", hash_password("Aa1!aaaa")) is False

    def test_salted(self):
        assert hash_password("Aa1!aaaa") != hash_password("Aa1!aaaa")

    def test_malformed_hash_is_a_mismatch(self):
        assert verify_password("Aa1!aaaa", "not-a-hash") is False


def test_hash_token_is_sha256_hex():
    assert hash_token("abc") == hashlib.sha256(b"abc").hexdigest()
    assert hash_token("abc") != hash_token("abd")


# ---------------------------------------------------------------------------
# shared.datetime_utils
# ---------------------------------------------------------------------------


def test_utcnow_is_aware():
    assert utcnow().tzinfo is timezone.utc


# ---------------------------------------------------------------------------
# shared.logging
# ---------------------------------------------------------------------------


def test_redacts_credentials_but_keeps_event_fields():
    event = {
        "event": "login_success",
        "level": "info",
        "user_id": "u1",
        "password": "Aa1!aaaa",
        "refresh_token": "eyJ...",
        "Authorization": "Bearer x",
        "jwt_secret": "s3cret",
    }
    out = redact_sensitive_fields(None, "info", event)
    assert out["event"] == "login_success"
    assert out["user_id"] == "u1"
    for key in ("password", "refresh_token", "Authorization", "jwt_secret"):
        assert out[key] == "***REDACTED***"
