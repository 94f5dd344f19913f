"""Helpers for creating test access tokens."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

__all__ = ["create_jwt", "create_token_with_lifetime"]

_TEST_KEY = "test-signing-key-that-is-long-enough-for-hs256"


def create_jwt(claims: dict[str, Any]) -> str:
    """Encode claims as a JWT signed with a key the SDK never sees."""
    return jwt.encode(claims, _TEST_KEY, algorithm="HS256")


def create_token_with_lifetime(lifetime: timedelta) -> str:
    """Create an encoded JWT that expires after the given lifetime."""
    expires = datetime.now(tz=UTC) + lifetime
    return create_jwt({"sub": "someone", "exp": int(expires.timestamp())})
