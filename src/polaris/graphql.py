"""Client for the Polaris GraphQL API."""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any, Self
from urllib.parse import urlsplit, urlunsplit

import structlog
from httpx import AsyncBaseTransport, AsyncClient, HTTPError
from pydantic import BaseModel, Field, ValidationError
from structlog.stdlib import BoundLogger

from .constants import GRAPHQL_ROUTE
from .exceptions import InvalidResponseError, PolarisWebError
from .models.graphql import GraphQLRequest, GraphQLResponse
from .queries import DEPLOYMENT_VERSION_QUERY
from .response import parse_response
from .sources import ServiceAccountTokenSource, TokenSource, UserTokenSource
from .transport import AuthenticatingTransport
from .version import Version

__all__ = [
    "GraphQLClient",
    "extract_operation_name",
]

_GRAPHQL_NAME_REGEX = re.compile(r"[_A-Za-z][_0-9A-Za-z]*")
"""Syntax of a GraphQL name."""

_OPERATION_TYPES = frozenset({"mutation", "query", "subscription"})
"""Keywords that may start an operation with a name."""


def extract_operation_name(query: str) -> str:
    """Extract the name of the operation from the text of a query.

    This is a lexical scan, not a GraphQL parser. The text up to the first
    whitespace must be an operation type and the text between there and the
    first opening brace, minus any variable definitions, must be a name.
    Anything else, including shorthand queries, yields no name.

    Parameters
    ----------
    query
        Text of the query.

    Returns
    -------
    str
        Name of the operation, or the empty string if none could be found.
    """
    match = re.search(r"\s", query)
    if not match:
        return ""
    start = match.start()
    if query[:start] not in _OPERATION_TYPES:
        return ""
    end = query.find("{")
    if end < start:
        return ""
    name = query[start:end].split("(", 1)[0].strip()
    if not _GRAPHQL_NAME_REGEX.fullmatch(name):
        return ""
    return name


def _parent_url(url: str) -> str:
    """Remove the last path segment of a URL."""
    parts = urlsplit(url)
    head, _, _ = parts.path.rstrip("/").rpartition("/")
    return urlunsplit(parts._replace(path=head))


class _DeploymentVersion(BaseModel):
    deployment_version: str = Field(..., alias="deploymentVersion")


class GraphQLClient:
    """Client for the Polaris GraphQL API.

    Every request is authenticated with an access token from the token
    source, which is refreshed as needed. The client may be shared by
    concurrent tasks.

    Parameters
    ----------
    api_url
        Base URL of the account API, such as
        ``https://example.my.rubrik.com/api``.
    source
        Source of access tokens.
    transport
        Transport used to send authenticated requests. If not given, a new
        ``httpx.AsyncHTTPTransport`` is created.
    logger
        Logger to use. If not given, the default structlog logger will be
        used.
    timeout
        Timeout for GraphQL requests. If not given, requests do not time out,
        since some mutations take a long time to complete.
    """

    def __init__(
        self,
        api_url: str,
        source: TokenSource,
        *,
        transport: AsyncBaseTransport | None = None,
        logger: BoundLogger | None = None,
        timeout: timedelta | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.source = source
        self._logger = logger or structlog.get_logger("polaris")
        self._url = f"{self.api_url}/{GRAPHQL_ROUTE}"
        authenticating = AuthenticatingTransport(
            source, transport, logger=self._logger
        )
        self._client = AsyncClient(
            transport=authenticating,
            timeout=timeout.total_seconds() if timeout else None,
        )

    @classmethod
    def from_user(
        cls,
        api_url: str,
        username: str,
        password: str,
        *,
        http_client: AsyncClient | None = None,
        transport: AsyncBaseTransport | None = None,
        logger: BoundLogger | None = None,
        timeout: timedelta | None = None,
    ) -> Self:
        """Create a client authenticated as a local user.

        Parameters
        ----------
        api_url
            Base URL of the account API.
        username
            Username of the local user.
        password
            Password of the local user.
        http_client
            Existing ``httpx.AsyncClient`` to use for token requests.
        transport
            Transport used to send authenticated requests.
        logger
            Logger to use.
        timeout
            Timeout for GraphQL requests.

        Returns
        -------
        GraphQLClient
            New client.
        """
        source = UserTokenSource(
            api_url,
            username,
            password,
            http_client=http_client,
            logger=logger,
        )
        return cls(
            api_url,
            source,
            transport=transport,
            logger=logger,
            timeout=timeout,
        )

    @classmethod
    def from_service_account(
        cls,
        access_token_uri: str,
        client_id: str,
        client_secret: str,
        *,
        api_url: str | None = None,
        http_client: AsyncClient | None = None,
        transport: AsyncBaseTransport | None = None,
        logger: BoundLogger | None = None,
        timeout: timedelta | None = None,
    ) -> Self:
        """Create a client authenticated as a service account.

        Parameters
        ----------
        access_token_uri
            Access token URI from the service account credentials.
        client_id
            Client ID of the service account.
        client_secret
            Client secret of the service account.
        api_url
            Base URL of the account API. Defaults to the access token URI
            with its last path segment removed.
        http_client
            Existing ``httpx.AsyncClient`` to use for token requests.
        transport
            Transport used to send authenticated requests.
        logger
            Logger to use.
        timeout
            Timeout for GraphQL requests.

        Returns
        -------
        GraphQLClient
            New client.
        """
        source = ServiceAccountTokenSource(
            access_token_uri,
            client_id,
            client_secret,
            http_client=http_client,
            logger=logger,
        )
        return cls(
            api_url or _parent_url(access_token_uri),
            source,
            transport=transport,
            logger=logger,
            timeout=timeout,
        )

    async def aclose(self) -> None:
        """Close the client and the token source.

        The object must not be used after calling this method.
        """
        await self._client.aclose()
        await self.source.aclose()

    async def request(
        self,
        query: str,
        variables: dict[str, Any] | BaseModel | None = None,
    ) -> bytes:
        """Send a GraphQL request and return the raw response body.

        Parameters
        ----------
        query
            Text of the query or mutation.
        variables
            Variables of the query, if any.

        Returns
        -------
        bytes
            Body of the successful response, unmodified.

        Raises
        ------
        AuthenticationError
            Raised if no access token could be acquired.
        PolarisResponseError
            Raised if the response was an error or was not usable. The
            subclass identifies which kind of error was returned.
        PolarisWebError
            Raised if the request failed at the transport level.
        """
        operation = extract_operation_name(query)
        logger = self._logger.bind(operation=operation)
        if isinstance(variables, BaseModel):
            variables = variables.model_dump(mode="json", by_alias=True)
        body = GraphQLRequest(
            query=query, variables=variables, operation_name=operation or None
        )
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json; charset=UTF-8",
        }
        try:
            r = await self._client.post(
                self._url, content=body.to_json(), headers=headers
            )
        except HTTPError as e:
            raise PolarisWebError.from_exception(e) from e

        parse_response(r)
        logger.debug("GraphQL request succeeded", status=r.status_code)
        return r.content

    async def query[T](
        self,
        query: str,
        variables: dict[str, Any] | BaseModel | None,
        model: type[T],
    ) -> T:
        """Send a GraphQL request and parse the result data.

        Parameters
        ----------
        query
            Text of the query or mutation.
        variables
            Variables of the query, if any.
        model
            Type of the ``data`` field of the response.

        Returns
        -------
        T
            Parsed result data.

        Raises
        ------
        AuthenticationError
            Raised if no access token could be acquired.
        InvalidResponseError
            Raised if the result data does not have the expected shape.
        PolarisResponseError
            Raised if the response was an error or was not usable.
        PolarisWebError
            Raised if the request failed at the transport level.
        """
        body = await self.request(query, variables)
        try:
            response_model = GraphQLResponse[model]  # type: ignore[valid-type]
            response = response_model.model_validate_json(body)
        except ValidationError as e:
            operation = extract_operation_name(query) or "query"
            msg = f"failed to unmarshal {operation}: {e!s}"
            raise InvalidResponseError(msg, status_code=200) from e
        return response.data

    async def deployment_version(self) -> Version:
        """Return the deployment version of the platform.

        Returns
        -------
        Version
            Deployment version, such as ``v20240101-12``.
        """
        result = await self.query(
            DEPLOYMENT_VERSION_QUERY, None, _DeploymentVersion
        )
        return Version(result.deployment_version)
