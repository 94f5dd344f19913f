"""Base class for access token sources."""

from __future__ import annotations

import json
from abc import ABCMeta, abstractmethod
from typing import Any

import structlog
from httpx import AsyncClient, HTTPError, Response, TimeoutException
from structlog.stdlib import BoundLogger

from ..constants import TOKEN_REQUEST_ATTEMPTS, TOKEN_REQUEST_TIMEOUT
from ..exceptions import AuthenticationError, JSONError, PolarisResponseError
from ..models.token import Token
from ..response import parse_response

__all__ = ["TokenSource"]


class TokenSource(metaclass=ABCMeta):
    """Abstract base class for sources of access tokens.

    Parameters
    ----------
    http_client
        Existing ``httpx.AsyncClient`` to use for token requests. This client
        must not add authentication of its own. If not given, a new client is
        created and closed by `aclose`.
    logger
        Logger to use. If not given, the default structlog logger will be
        used.
    """

    def __init__(
        self,
        http_client: AsyncClient | None = None,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._client = http_client or AsyncClient()
        self._logger = logger or structlog.get_logger("polaris")

        # Whether the HTTP client needs to be explicitly closed because we
        # created it.
        self._close_client = http_client is None

    async def aclose(self) -> None:
        """Close the HTTP connection pool, if one wasn't provided."""
        if self._close_client:
            await self._client.aclose()

    @abstractmethod
    async def acquire(self) -> Token:
        """Acquire a new access token.

        Returns
        -------
        Token
            Newly-issued access token.

        Raises
        ------
        AuthenticationError
            Raised if the token could not be acquired.
        """

    async def _request_token(
        self, url: str, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Send a token request and return the parsed response.

        Requests that time out are retried. Any other failure is reported
        immediately.

        Parameters
        ----------
        url
            URL of the token endpoint.
        body
            Body of the request, sent as JSON.

        Returns
        -------
        dict
            Parsed body of the response.

        Raises
        ------
        AuthenticationError
            Raised if the request failed or the response was an error.
        """
        logger = self._logger.bind(token_url=url)
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json; charset=UTF-8",
        }
        content = json.dumps(body).encode()
        timeout = TOKEN_REQUEST_TIMEOUT.total_seconds()
        for attempt in range(1, TOKEN_REQUEST_ATTEMPTS + 1):
            try:
                r = await self._client.post(
                    url, content=content, headers=headers, timeout=timeout
                )
            except TimeoutException:
                logger.warning("Token request timed out", attempt=attempt)
                continue
            except HTTPError as e:
                msg = f"token request failed: {type(e).__name__}: {e!s}"
                raise AuthenticationError(msg) from e
            return self._parse_token_response(r)

        msg = f"failed to acquire access token after {attempt} attempts"
        raise AuthenticationError(msg)

    def _parse_token_response(self, r: Response) -> dict[str, Any]:
        try:
            return parse_response(r, check_graphql_errors=False)
        except JSONError as e:
            msg = (
                f"token response body is an error (status code"
                f" {e.status_code}): {e!s}"
            )
            raise AuthenticationError(msg) from e
        except PolarisResponseError as e:
            raise AuthenticationError(f"token {e!s}") from e
