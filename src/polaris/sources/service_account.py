"""Access tokens for service accounts."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit
from uuid import UUID

from httpx import AsyncClient
from pydantic import ValidationError
from structlog.stdlib import BoundLogger

from ..constants import APPLIANCE_TOKEN_ROUTE
from ..exceptions import AuthenticationError
from ..models.token import ApplianceTokenResponse, ClientTokenResponse, Token
from .base import TokenSource

__all__ = ["ServiceAccountTokenSource"]


def _sibling_url(url: str, route: str) -> str:
    """Replace the last path segment of a URL."""
    parts = urlsplit(url)
    path = parts.path.rstrip("/")
    head, _, _ = path.rpartition("/")
    return urlunsplit(parts._replace(path=f"{head}/{route}"))


class ServiceAccountTokenSource(TokenSource):
    """Acquire access tokens with the credentials of a service account.

    Parameters
    ----------
    token_url
        Access token URI of the service account, as given in its credentials
        file.
    client_id
        Client ID of the service account.
    client_secret
        Client secret of the service account.
    http_client
        Existing ``httpx.AsyncClient`` to use for token requests.
    logger
        Logger to use.
    """

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        *,
        http_client: AsyncClient | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        super().__init__(http_client, logger=logger)
        self.token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret

    async def acquire(self) -> Token:
        body = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
        }
        try:
            payload = await self._request_token(self.token_url, body)
        except AuthenticationError as e:
            msg = f"failed to acquire service account access token: {e!s}"
            raise AuthenticationError(msg) from e

        try:
            response = ClientTokenResponse.model_validate(payload)
        except ValidationError as e:
            raise AuthenticationError("invalid token") from e

        # Guard against credentials for one account being sent to another.
        if response.client_id != self._client_id:
            raise AuthenticationError("invalid client id")
        if not response.access_token:
            raise AuthenticationError("invalid token")
        self._logger.debug(
            "Acquired service account access token", client_id=self._client_id
        )
        return Token.from_jwt(response.access_token)

    async def appliance_token(self, cluster_uuid: str | UUID) -> str:
        """Exchange the service account credentials for an appliance token.

        The resulting token is scoped to a single cluster and is used when
        talking directly to that cluster instead of the platform.

        Parameters
        ----------
        cluster_uuid
            UUID of the cluster.

        Returns
        -------
        str
            Appliance token for the cluster.

        Raises
        ------
        AuthenticationError
            Raised if the token could not be acquired.
        """
        url = _sibling_url(self.token_url, APPLIANCE_TOKEN_ROUTE)
        body = {
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "cluster_uuid": str(cluster_uuid),
        }
        try:
            payload = await self._request_token(url, body)
        except AuthenticationError as e:
            msg = f"failed to acquire appliance token: {e!s}"
            raise AuthenticationError(msg) from e

        try:
            response = ApplianceTokenResponse.model_validate(payload)
        except ValidationError as e:
            raise AuthenticationError("invalid token") from e
        if not response.session.token:
            raise AuthenticationError("invalid token")
        self._logger.debug(
            "Acquired appliance token", cluster_uuid=body["cluster_uuid"]
        )
        return response.session.token
