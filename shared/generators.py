"""
Random token generators — pure, side-effect-free functions.

All generators use cryptographically secure sources (``secrets`` module).
"""

from __future__ import annotations

import secrets


def generate_one_time_token(length: int = 20) -> str:
    """Generate a hex token for email verification / password reset links.

    Args:
        length: Number of random bytes (default 20). The result is
            ``2 * length`` hex characters, safe to embed in a URL path.
    """
    return secrets.token_hex(length)


def generate_token_id() -> str:
    """Generate a short random identifier used as a JWT ``jti`` claim."""
    return secrets.token_urlsafe(12)
