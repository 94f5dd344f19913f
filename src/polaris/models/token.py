"""Representation of a bearer access token."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Self

import jwt
from httpx import Request
from pydantic import BaseModel, ConfigDict, Field

from ..constants import TOKEN_EXPIRY_SKEW
from ..exceptions import AuthenticationError

__all__ = [
    "ApplianceSession",
    "ApplianceTokenResponse",
    "ClientTokenResponse",
    "SessionResponse",
    "Token",
]


class Token(BaseModel):
    """An access token issued by the Polaris platform.

    The signature of the token is not verified. The client has no access to
    the signing key, and the server verifies every token it receives, so the
    claims are only used to decide when to request a new token.
    """

    model_config = ConfigDict(frozen=True)

    encoded: str = Field(..., title="Encoded JWT")

    claims: dict[str, Any] | None = Field(None, title="Unverified claims")

    expires: datetime | None = Field(
        None,
        title="Expiration time",
        description="Derived from the ``exp`` claim, if it is numeric",
    )

    @classmethod
    def from_jwt(cls, encoded: str) -> Self:
        """Create a token from its encoded JWT form.

        Parameters
        ----------
        encoded
            Encoded JWT.

        Returns
        -------
        Token
            Corresponding token.

        Raises
        ------
        AuthenticationError
            Raised if the JWT could not be decoded.
        """
        try:
            claims = jwt.decode(encoded, options={"verify_signature": False})
        except jwt.PyJWTError as e:
            msg = f"failed to parse JWT token: {e!s}"
            raise AuthenticationError(msg) from e

        expires = None
        exp = claims.get("exp")
        if isinstance(exp, int | float) and not isinstance(exp, bool):
            expires = datetime.fromtimestamp(exp, tz=UTC)
        return cls(encoded=encoded, claims=claims, expires=expires)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Whether the token is expired or about to expire.

        A token without claims or without a usable ``exp`` claim is always
        considered expired.

        Parameters
        ----------
        now
            Time to compare against. Defaults to the current time.

        Returns
        -------
        bool
            `True` if the token expires within `TOKEN_EXPIRY_SKEW` of
            ``now``, `False` otherwise.
        """
        if not self.claims or not self.expires:
            return True
        now = now or datetime.now(tz=UTC)
        return self.expires <= now + TOKEN_EXPIRY_SKEW

    def apply(self, request: Request) -> None:
        """Set the bearer authorization header on a request."""
        request.headers["Authorization"] = f"Bearer {self.encoded}"


class SessionResponse(BaseModel):
    """Response from the local user session endpoint."""

    access_token: str = Field("", title="Encoded access token")


class ClientTokenResponse(BaseModel):
    """Response from the service account access token endpoint."""

    client_id: str = Field(
        "",
        title="Client ID",
        description="Echo of the client ID the token was requested for",
    )

    access_token: str = Field("", title="Encoded access token")


class ApplianceSession(BaseModel):
    """Session portion of an appliance token response."""

    token: str = Field("", title="Appliance token")


class ApplianceTokenResponse(BaseModel):
    """Response from the appliance token exchange endpoint."""

    session: ApplianceSession = Field(
        default_factory=ApplianceSession, title="Session"
    )
