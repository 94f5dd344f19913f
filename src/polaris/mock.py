"""Mock of the parts of the Polaris API used by the SDK."""

from __future__ import annotations

import json
import os
from collections.abc import Callable, Iterable
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import jwt
import respx
from httpx import Request, Response

from .constants import APPLIANCE_TOKEN_ROUTE, GRAPHQL_ROUTE, SESSION_ROUTE
from .models.graphql import GraphQLRequest

__all__ = [
    "MockPolaris",
    "MockPolarisAction",
    "OperationHandler",
    "register_mock_polaris",
]

OperationHandler = Callable[[dict[str, Any]], dict[str, Any] | Response]
"""Handler for one GraphQL operation.

Called with the variables of the request. Returns either the ``data`` of a
successful response or a complete response.
"""

_INVALID_CREDENTIALS = {
    "code": 16,
    "message": "JWT validation failed: Missing or invalid credentials",
}

_WRONG_PASSWORD = {
    "code": 401,
    "uri": "/api/session",
    "message": "UNAUTHENTICATED: wrong username or password",
    "traceId": "n2jJpBU8qkEy3k09s9JNkg==",
}


class MockPolarisAction(Enum):
    """Possible actions that could fail."""

    TOKEN = "token"
    GRAPHQL = "graphql"


class MockPolaris:
    """Mock of the parts of the Polaris API used by the SDK.

    Parameters
    ----------
    token_lifetime
        Lifetime of issued access tokens, one hour by default. Tokens with a
        lifetime of less than a minute are treated as expired by the SDK,
        which forces a new token request for every GraphQL request.
    """

    def __init__(self, *, token_lifetime: timedelta | None = None) -> None:
        self.deployment_version = "v20240101-1"
        self.graphql_requests: list[GraphQLRequest] = []
        self.token_requests = 0
        self.token_lifetime = token_lifetime or timedelta(hours=1)
        self._fail: set[MockPolarisAction] = set()
        self._key = os.urandom(32)
        self._operations: dict[str, OperationHandler] = {}
        self._service_accounts: dict[str, str] = {}
        self._tokens: set[str] = set()
        self._users: dict[str, str] = {}
        self.set_operation(
            "SdkPythonCoreDeploymentVersion",
            lambda _: {"deploymentVersion": self.deployment_version},
        )

    def add_service_account(self, client_id: str, client_secret: str) -> None:
        """Allow a service account to request access tokens."""
        self._service_accounts[client_id] = client_secret

    def add_user(self, username: str, password: str) -> None:
        """Allow a local user to request access tokens."""
        self._users[username] = password

    def create_token(
        self, subject: str, *, lifetime: timedelta | None = None
    ) -> str:
        """Create an access token recognized by this mock.

        Parameters
        ----------
        subject
            Subject of the token.
        lifetime
            Lifetime of the token. Defaults to the token lifetime of the mock.

        Returns
        -------
        str
            Encoded access token.
        """
        expires = datetime.now(tz=UTC) + (lifetime or self.token_lifetime)
        claims = {"sub": subject, "exp": int(expires.timestamp())}
        token = jwt.encode(claims, self._key, algorithm="HS256")
        self._tokens.add(token)
        return token

    def fail_on(
        self, actions: MockPolarisAction | Iterable[MockPolarisAction]
    ) -> None:
        """Configure the API to fail requests.

        Parameters
        ----------
        actions
            An action or iterable of actions that should fail with a server
            error. Pass in the empty list to restore regular operations.
        """
        if isinstance(actions, MockPolarisAction):
            self._fail = {actions}
        else:
            self._fail = set(actions)

    def set_operation(self, name: str, handler: OperationHandler) -> None:
        """Set the handler for a GraphQL operation.

        Parameters
        ----------
        name
            Name of the operation.
        handler
            Handler called with the variables of each request.
        """
        self._operations[name] = handler

    def install_routes(self, respx_mock: respx.Router, api_url: str) -> None:
        """Install the mock routes for the Polaris API.

        Parameters
        ----------
        respx_mock
            Mock router to use to install routes.
        api_url
            Base URL of the account API.
        """
        base = api_url.rstrip("/")
        respx_mock.post(f"{base}/{SESSION_ROUTE}").mock(
            side_effect=self._handle_session
        )
        respx_mock.post(f"{base}/client_token").mock(
            side_effect=self._handle_client_token
        )
        respx_mock.post(f"{base}/{APPLIANCE_TOKEN_ROUTE}").mock(
            side_effect=self._handle_appliance_token
        )
        respx_mock.post(f"{base}/{GRAPHQL_ROUTE}").mock(
            side_effect=self._handle_graphql
        )

    def _handle_appliance_token(self, request: Request) -> Response:
        if MockPolarisAction.TOKEN in self._fail:
            return Response(500, text="Internal Server Error")
        body = json.loads(request.content)
        client_id = body.get("client_id")
        secret = self._service_accounts.get(client_id)
        if not secret or secret != body.get("client_secret"):
            return Response(401, json=_INVALID_CREDENTIALS)
        token = f"appliance-{body['cluster_uuid']}"
        return Response(200, json={"session": {"token": token}})

    def _handle_client_token(self, request: Request) -> Response:
        self.token_requests += 1
        if MockPolarisAction.TOKEN in self._fail:
            return Response(500, text="Internal Server Error")
        body = json.loads(request.content)
        client_id = body.get("client_id")
        secret = self._service_accounts.get(client_id)
        if body.get("grant_type") != "client_credentials":
            return Response(400, json={"code": 3, "message": "bad grant"})
        if not secret or secret != body.get("client_secret"):
            return Response(401, json=_INVALID_CREDENTIALS)
        result = {
            "client_id": client_id,
            "access_token": self.create_token(client_id),
            "expires_in": int(self.token_lifetime.total_seconds()),
        }
        return Response(200, json=result)

    def _handle_graphql(self, request: Request) -> Response:
        scheme, _, token = request.headers.get("Authorization", "").partition(
            " "
        )
        if scheme.lower() != "bearer" or token not in self._tokens:
            return Response(401, json=_INVALID_CREDENTIALS)
        if MockPolarisAction.GRAPHQL in self._fail:
            return Response(503, text="Service Unavailable")

        graphql_request = GraphQLRequest.model_validate_json(request.content)
        self.graphql_requests.append(graphql_request)
        handler = self._operations.get(graphql_request.operation_name or "")
        if not handler:
            name = graphql_request.operation_name
            error = {
                "message": f"unknown operation {name}",
                "extensions": {"code": 400},
            }
            return Response(400, json={"data": None, "errors": [error]})
        result = handler(graphql_request.variables or {})
        if isinstance(result, Response):
            return result
        return Response(200, json={"data": result})

    def _handle_session(self, request: Request) -> Response:
        self.token_requests += 1
        if MockPolarisAction.TOKEN in self._fail:
            return Response(500, text="Internal Server Error")
        body = json.loads(request.content)
        username = body.get("username")
        password = self._users.get(username)
        if not password or password != body.get("password"):
            return Response(401, json=_WRONG_PASSWORD)
        token = self.create_token(username)
        return Response(200, json={"access_token": token})


def register_mock_polaris(
    respx_mock: respx.Router,
    api_url: str = "https://example.my.rubrik.com/api",
    *,
    token_lifetime: timedelta | None = None,
) -> MockPolaris:
    """Mock out the Polaris API.

    Parameters
    ----------
    respx_mock
        Mock router.
    api_url
        Base URL of the account API to mock.
    token_lifetime
        Lifetime of issued access tokens.

    Returns
    -------
    MockPolaris
        Mock Polaris API object.
    """
    mock = MockPolaris(token_lifetime=token_lifetime)
    mock.install_routes(respx_mock, api_url)
    return mock
