"""Tests for the GraphQL envelope models."""

from __future__ import annotations

import json

from pydantic import BaseModel

from polaris.models.graphql import Connection, GraphQLRequest

from ..support.data import read_test_json


class Node(BaseModel):
    id: str


def test_request_to_json() -> None:
    request = GraphQLRequest(
        query="query Foo($id: UUID!) { foo(id: $id) }",
        variables={"id": "d2b1a0c4"},
        operation_name="Foo",
    )
    assert json.loads(request.to_json()) == {
        "query": "query Foo($id: UUID!) { foo(id: $id) }",
        "variables": {"id": "d2b1a0c4"},
        "operationName": "Foo",
    }

    request = GraphQLRequest(query="{ deploymentVersion }")
    assert json.loads(request.to_json()) == {"query": "{ deploymentVersion }"}


def test_connection() -> None:
    data = read_test_json("connection")
    connection = Connection[Node].model_validate(data)
    assert connection.count == 2
    assert [n.id for n in connection.nodes] == ["a", "b"]
    assert connection.page_info.end_cursor == "Yg=="
    assert connection.page_info.has_next_page
