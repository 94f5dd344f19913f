"""Iteration over relay-style paginated GraphQL queries."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from typing import Any

from .exceptions import InvalidResponseError, NotFoundError
from .graphql import GraphQLClient
from .models.graphql import Connection

__all__ = [
    "collect",
    "find_one",
    "paginate",
]


async def paginate[T](
    client: GraphQLClient,
    query: str,
    variables: dict[str, Any] | None,
    field: str,
    model: type[T],
) -> AsyncIterator[T]:
    """Iterate over every node of a paginated query.

    The query must accept an ``$after`` cursor variable and return a
    connection with ``edges { node }`` and ``pageInfo { endCursor
    hasNextPage }``. The query is sent again with the end cursor of each
    page until there are no more pages.

    Parameters
    ----------
    client
        GraphQL client to send the queries with.
    query
        Text of the query.
    variables
        Variables of the query, other than ``after``.
    field
        Name, or alias, of the connection in the result data.
    model
        Type of the nodes.

    Yields
    ------
    T
        Each node, in order.

    Raises
    ------
    InvalidResponseError
        Raised if a page does not have the expected shape, or if it reports
        more pages without advancing the end cursor.
    """
    page_variables = dict(variables or {})
    while True:
        page_model = dict[str, Connection[model]]  # type: ignore[valid-type]
        data = await client.query(query, page_variables, page_model)
        if field not in data:
            msg = f"response has no connection named {field}"
            raise InvalidResponseError(msg, status_code=200)
        connection = data[field]
        for node in connection.nodes:
            yield node
        page_info = connection.page_info
        if not page_info.has_next_page:
            break
        cursor = page_info.end_cursor
        if not cursor or cursor == page_variables.get("after"):
            msg = f"connection {field} has more pages but no new end cursor"
            raise InvalidResponseError(msg, status_code=200)
        page_variables["after"] = cursor


async def collect[T](nodes: AsyncIterator[T]) -> list[T]:
    """Gather every node of a paginated query into a list."""
    return [node async for node in nodes]


async def find_one[T](
    nodes: AsyncIterator[T], predicate: Callable[[T], bool] | None = None
) -> T:
    """Return the first node matching a predicate.

    Parameters
    ----------
    nodes
        Nodes to search, usually from `paginate`.
    predicate
        Test applied to each node. If not given, the first node is returned.

    Returns
    -------
    T
        First matching node.

    Raises
    ------
    NotFoundError
        Raised if no node matches.
    """
    async for node in nodes:
        if predicate is None or predicate(node):
            return node
    raise NotFoundError("no matching entity found")
