"""Tests for access token handling."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from httpx import Request

from polaris import AuthenticationError, Token

from ..support.jwt import create_jwt


def test_from_jwt() -> None:
    expires = datetime.now(tz=UTC).replace(microsecond=0)
    expires += timedelta(hours=1)
    encoded = create_jwt({"sub": "someone", "exp": int(expires.timestamp())})

    token = Token.from_jwt(encoded)
    assert token.encoded == encoded
    assert token.claims == {
        "sub": "someone",
        "exp": int(expires.timestamp()),
    }
    assert token.expires == expires
    assert not token.is_expired()


def test_from_jwt_invalid() -> None:
    with pytest.raises(AuthenticationError) as excinfo:
        Token.from_jwt("not-a-token")
    assert str(excinfo.value).startswith("failed to parse JWT token: ")


def test_is_expired() -> None:
    now = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
    exp = int((now + timedelta(minutes=1)).timestamp())
    token = Token.from_jwt(create_jwt({"exp": exp}))
    assert token.is_expired(now)
    assert token.is_expired(now + timedelta(hours=1))
    assert not token.is_expired(now - timedelta(seconds=1))

    exp = int((now + timedelta(hours=1)).timestamp())
    token = Token.from_jwt(create_jwt({"exp": exp}))
    assert not token.is_expired(now)


def test_is_expired_without_expiration() -> None:
    token = Token.from_jwt(create_jwt({"sub": "someone"}))
    assert token.expires is None
    assert token.is_expired()

    token = Token.from_jwt(create_jwt({"sub": "someone", "exp": "soon"}))
    assert token.expires is None
    assert token.is_expired()

    token = Token.from_jwt(create_jwt({"sub": "someone", "exp": True}))
    assert token.expires is None
    assert token.is_expired()

    assert Token(encoded="opaque").is_expired()


def test_apply() -> None:
    token = Token.from_jwt(create_jwt({"sub": "someone"}))
    request = Request("POST", "https://example.com/api/graphql")
    token.apply(request)
    assert request.headers["Authorization"] == f"Bearer {token.encoded}"
