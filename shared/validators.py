"""
Input validators — framework-agnostic, pure functions.
"""

from __future__ import annotations

import re
from typing import Optional

ROLE_BUYER = "buyer"
ROLE_SELLER = "seller"
VALID_ROLES = frozenset({ROLE_BUYER, ROLE_SELLER})

_SPECIAL_CHARS = r'[!@#$%^&*()_+\-=\[\]{};\':"\\|,.<>\/?~`]'
_SAFE_CHARSET = r'^[a-zA-Z0-9!@#$%^&*()_+\-=\[\]{};\':"\\|,.<>\/?~`\s]+$'


def normalize_email(email: Optional[str]) -> str:
    """Return *email* stripped and lower-cased (``""`` for ``None``)."""
    return (email or "").strip().lower()


def validate_role(role: Optional[str]) -> bool:
    """Return True if *role* is one of the registrable roles."""
    return role in VALID_ROLES


def validate_password(password: str) -> tuple[bool, list[str]]:
    """Validate an account password.

    Rules:
    - 8 to 128 characters
    - At least one uppercase letter, one lowercase letter and one digit
    - At least one special character
    - Only letters, digits, punctuation and whitespace

    Returns:
        ``(is_valid, missing_requirements)``
    """
    if not password:
        return False, ["Password is required"]

    missing = []

    if len(password) < 8:
        missing.append("At least 8 characters")
    if len(password) > 128:
        missing.append("Maximum 128 characters")
    if not re.search(r"[A-Z]", password):
        missing.append("At least one uppercase letter")
    if not re.search(r"[a-z]", password):
        missing.append("At least one lowercase letter")
    if not re.search(r"[0-9]", password):
        missing.append("At least one number")
    if not re.search(_SPECIAL_CHARS, password):
        missing.append("At least one special character")
    if not re.match(_SAFE_CHARSET, password):
        missing.append("Contains invalid characters")

    return len(missing) == 0, missing
