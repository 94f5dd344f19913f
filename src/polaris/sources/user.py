"""Access tokens for local user accounts."""

from __future__ import annotations

from httpx import AsyncClient
from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from ..constants import SESSION_ROUTE
from ..exceptions import AuthenticationError
from ..models.token import SessionResponse, Token
from .base import TokenSource

__all__ = ["UserTokenSource"]


class UserTokenSource(TokenSource):
    """Acquire access tokens with the username and password of a local user.

    Parameters
    ----------
    api_url
        Base URL of the account API, such as
        ``https://example.my.rubrik.com/api``.
    username
        Username of the local user.
    password
        Password of the local user.
    http_client
        Existing ``httpx.AsyncClient`` to use for token requests.
    logger
        Logger to use.
    """

    def __init__(
        self,
        api_url: str,
        username: str,
        password: str,
        *,
        http_client: AsyncClient | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        super().__init__(http_client, logger=logger)
        self.token_url = f"{api_url.rstrip('/')}/{SESSION_ROUTE}"
        self._username = username
        self._password = password

    async def acquire(self) -> Token:
        body = {"username": self._username, "password": self._password}
        try:
            payload = await self._request_token(self.token_url, body)
        except AuthenticationError as e:
            msg = f"failed to acquire local user access token: {e!s}"
            raise AuthenticationError(msg) from e

        try:
            response = SessionResponse.model_validate(payload)
        except ValidationError as e:
            raise AuthenticationError("invalid token") from e
        if not response.access_token:
            raise AuthenticationError("invalid token")
        self._logger.debug("Acquired local user access token")
        return Token.from_jwt(response.access_token)
