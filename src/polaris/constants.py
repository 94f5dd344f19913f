"""Constants for the Polaris SDK."""

from __future__ import annotations

from datetime import timedelta

__all__ = [
    "APPLIANCE_TOKEN_ROUTE",
    "BODY_SNIPPET_LENGTH",
    "DEFAULT_API_URL_TEMPLATE",
    "FEATURE_DISABLE_WAIT",
    "GRAPHQL_ROUTE",
    "SESSION_ROUTE",
    "TASK_CHAIN_RBAC_ATTEMPTS",
    "TASK_CHAIN_RBAC_CODES",
    "TASK_CHAIN_WAIT",
    "TOKEN_EXPIRY_SKEW",
    "TOKEN_REQUEST_ATTEMPTS",
    "TOKEN_REQUEST_TIMEOUT",
]

APPLIANCE_TOKEN_ROUTE = "cdm_client_token"
"""Last path segment of the appliance token exchange endpoint.

The endpoint is a sibling of the service account access token endpoint, so
its URL is derived by replacing the last path segment of the token URL.
"""

BODY_SNIPPET_LENGTH = 512
"""Maximum number of characters of an unexpected body kept in an error."""

DEFAULT_API_URL_TEMPLATE = "https://{name}.my.rubrik.com/api"
"""API URL of an account when a user account does not configure one."""

FEATURE_DISABLE_WAIT = timedelta(seconds=10)
"""Default poll interval when waiting for a feature disable task chain."""

GRAPHQL_ROUTE = "graphql"
"""Route of the GraphQL endpoint relative to the API URL."""

SESSION_ROUTE = "session"
"""Route of the local user session endpoint relative to the API URL."""

TASK_CHAIN_RBAC_ATTEMPTS = 50
"""How many times to retry a task chain status query on RBAC errors.

Authorization metadata for a task chain is replicated after the chain is
created, so status queries for a new chain may fail with an authorization
error for a short while.
"""

TASK_CHAIN_RBAC_CODES = frozenset({403, 500})
"""GraphQL extension codes reported while task chain RBAC is not ready."""

TASK_CHAIN_WAIT = timedelta(seconds=10)
"""Default poll interval when waiting for a task chain."""

TOKEN_EXPIRY_SKEW = timedelta(minutes=1)
"""Tokens expiring within this interval are treated as already expired.

This avoids sending a token that expires in transit or is rejected because
of clock skew between the client and the server.
"""

TOKEN_REQUEST_ATTEMPTS = 3
"""Number of attempts for a token request that times out."""

TOKEN_REQUEST_TIMEOUT = timedelta(seconds=15)
"""Timeout of a single token request attempt."""
