"""Tests for the GraphQL client."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
import respx
from httpx import Response
from pydantic import BaseModel, Field

from polaris import (
    AuthenticationError,
    ContentTypeError,
    GraphQLClient,
    GraphQLError,
    InvalidResponseError,
    JSONError,
    MockPolaris,
    NoBodyError,
    PolarisWebError,
    UnexpectedStatusError,
    Version,
    extract_operation_name,
)

from .support.constants import (
    TEST_API_URL,
    TEST_CLIENT_ID,
    TEST_CLIENT_SECRET,
    TEST_GRAPHQL_URL,
    TEST_TOKEN_URL,
    TEST_USERNAME,
)
from .support.data import read_test_json
from .support.sources import CountingTokenSource

NODES_QUERY = """\
query SdkPythonTestNodes($columnFilter: String) {
    result: nodes(columnFilter: $columnFilter) {
        columnFilter
    }
}"""


class NodesFilter(BaseModel):
    column_filter: str = Field(..., serialization_alias="columnFilter")


class NodesResult(BaseModel):
    column_filter: str = Field(..., alias="columnFilter")


class NodesData(BaseModel):
    result: NodesResult


def echo_filter(variables: dict[str, Any]) -> dict[str, Any]:
    return {"result": {"columnFilter": variables["columnFilter"]}}


@pytest.mark.parametrize(
    ("query", "name"),
    [
        ("query Foo { foo }", "Foo"),
        ("query Foo { foo(input: $input){} }", "Foo"),
        (
            "mutation RubrikPolarisSDKRequest($input: String!) {"
            " foo(input: $input){} }",
            "RubrikPolarisSDKRequest",
        ),
        ("query Foo($id: UUID!) { foo(id: $id) }", "Foo"),
        ("mutation AddBar($input: BarInput!) { addBar }", "AddBar"),
        ("subscription Watch { events }", "Watch"),
        ("query\n    SdkPythonCoreFoo\n{\n    foo\n}", "SdkPythonCoreFoo"),
        ("query { foo }", ""),
        ("{ foo }", ""),
        ("fragment Foo on Bar { baz }", ""),
        ("query Foo", ""),
        ("query 1Foo { foo }", ""),
        ("query", ""),
    ],
)
def test_extract_operation_name(query: str, name: str) -> None:
    assert extract_operation_name(query) == name


@pytest.mark.asyncio
async def test_request(
    respx_mock: respx.Router,
    mock_polaris: MockPolaris,
    graphql: GraphQLClient,
) -> None:
    mock_polaris.set_operation("SdkPythonTestNodes", echo_filter)
    body = await graphql.request(NODES_QUERY, {"columnFilter": "vm-1"})
    assert json.loads(body) == {"data": {"result": {"columnFilter": "vm-1"}}}

    request = respx_mock.calls.last.request
    assert str(request.url) == TEST_GRAPHQL_URL
    assert request.headers["Accept"] == "application/json"
    assert request.headers["Content-Type"] == (
        "application/json; charset=UTF-8"
    )
    assert request.headers["Authorization"].startswith("Bearer ")
    assert json.loads(request.content) == {
        "query": NODES_QUERY,
        "variables": {"columnFilter": "vm-1"},
        "operationName": "SdkPythonTestNodes",
    }


@pytest.mark.asyncio
async def test_request_without_name(respx_mock: respx.Router) -> None:
    route = respx_mock.post(TEST_GRAPHQL_URL).respond(
        200, json={"data": {"deploymentVersion": "latest"}}
    )
    client = GraphQLClient(TEST_API_URL, CountingTokenSource())
    await client.request("{ deploymentVersion }")
    await client.aclose()
    assert json.loads(route.calls.last.request.content) == {
        "query": "{ deploymentVersion }"
    }


@pytest.mark.asyncio
async def test_variables_round_trip(
    mock_polaris: MockPolaris, graphql: GraphQLClient
) -> None:
    mock_polaris.set_operation("SdkPythonTestNodes", echo_filter)
    value = 'name == "vm \\u00e9" && tag != \'x\''
    variables = NodesFilter(column_filter=value)

    data = await graphql.query(NODES_QUERY, variables, NodesData)
    assert data.result.column_filter == value
    assert mock_polaris.graphql_requests[-1].variables == {
        "columnFilter": value
    }


@pytest.mark.asyncio
async def test_request_idempotent(
    mock_polaris: MockPolaris, graphql: GraphQLClient
) -> None:
    mock_polaris.set_operation("SdkPythonTestNodes", echo_filter)
    variables = {"columnFilter": "vm-1"}
    first = await graphql.request(NODES_QUERY, variables)
    second = await graphql.request(NODES_QUERY, variables)
    assert first == second
    assert mock_polaris.token_requests == 1


@pytest.mark.asyncio
async def test_deployment_version(
    mock_polaris: MockPolaris, graphql: GraphQLClient
) -> None:
    mock_polaris.deployment_version = "v20240214-7"
    version = await graphql.deployment_version()
    assert version == Version("v20240214-7")
    assert isinstance(version, Version)


@pytest.mark.asyncio
async def test_from_service_account(mock_polaris: MockPolaris) -> None:
    client = GraphQLClient.from_service_account(
        TEST_TOKEN_URL, TEST_CLIENT_ID, TEST_CLIENT_SECRET
    )
    assert client.api_url == TEST_API_URL
    assert await client.deployment_version() == "v20240101-1"
    await client.aclose()


@pytest.mark.asyncio
async def test_authentication_failure(mock_polaris: MockPolaris) -> None:
    client = GraphQLClient.from_user(TEST_API_URL, TEST_USERNAME, "wrong")
    with pytest.raises(AuthenticationError) as excinfo:
        await client.deployment_version()
    await client.aclose()

    assert str(excinfo.value) == (
        "failed to refresh access token: failed to acquire local user access"
        " token: token response body is an error (status code 401):"
        " UNAUTHENTICATED: wrong username or password (code: 401, traceId:"
        " n2jJpBU8qkEy3k09s9JNkg==)"
    )
    assert mock_polaris.graphql_requests == []


@pytest.mark.asyncio
async def test_json_error(respx_mock: respx.Router) -> None:
    respx_mock.post(TEST_GRAPHQL_URL).respond(
        401, json=read_test_json("json-error")
    )
    client = GraphQLClient(TEST_API_URL, CountingTokenSource())
    with pytest.raises(JSONError) as excinfo:
        await client.request("query Foo { foo }")
    await client.aclose()

    assert excinfo.value.status_code == 401
    assert excinfo.value.code == 16
    assert str(excinfo.value) == (
        "JWT validation failed: Missing or invalid credentials (code: 16)"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [200, 500])
async def test_graphql_error(
    respx_mock: respx.Router, status_code: int
) -> None:
    respx_mock.post(TEST_GRAPHQL_URL).respond(
        status_code, json=read_test_json("graphql-error")
    )
    client = GraphQLClient(TEST_API_URL, CountingTokenSource())
    with pytest.raises(GraphQLError) as excinfo:
        await client.request("query Foo { foo }")
    await client.aclose()

    error = excinfo.value
    assert error.status_code == status_code
    assert error.code == 403
    assert error.codes == [403, 500]
    assert error.has_code(500)
    assert not error.has_code(400)
    assert error.errors[0].path == ["getKorgTaskchainStatus"]
    assert str(error) == (
        "FORBIDDEN: objects not authorized (code: 403, traceId:"
        " 0b3c2d5e7f8a9b1c)"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response", "error", "message"),
    [
        (
            Response(200),
            NoBodyError,
            "response has no body (status code 200)",
        ),
        (
            Response(502),
            NoBodyError,
            "response has no body (status code 502)",
        ),
        (
            Response(
                502,
                text="<html>Bad Gateway</html>",
                headers={"Content-Type": "text/html"},
            ),
            ContentTypeError,
            "response has Content-Type text/html (status code 502):"
            " '<html>Bad Gateway</html>'",
        ),
        (
            Response(
                200,
                content=b"{",
                headers={"Content-Type": "application/json"},
            ),
            InvalidResponseError,
            None,
        ),
        (
            Response(200, json=[1, 2]),
            InvalidResponseError,
            "response body is not a JSON object (status code 200)",
        ),
        (
            Response(404, json={"data": None}),
            UnexpectedStatusError,
            "response has status code: 404 Not Found",
        ),
    ],
)
async def test_invalid_response(
    respx_mock: respx.Router,
    response: Response,
    error: type[Exception],
    message: str | None,
) -> None:
    respx_mock.post(TEST_GRAPHQL_URL).mock(return_value=response)
    client = GraphQLClient(TEST_API_URL, CountingTokenSource())
    with pytest.raises(error) as excinfo:
        await client.request("query Foo { foo }")
    await client.aclose()

    if message:
        assert str(excinfo.value) == message
    else:
        assert str(excinfo.value).startswith(
            "failed to parse response body (status code 200): "
        )


@pytest.mark.asyncio
async def test_content_type_snippet(respx_mock: respx.Router) -> None:
    respx_mock.post(TEST_GRAPHQL_URL).respond(503, text="x" * 2000)
    client = GraphQLClient(TEST_API_URL, CountingTokenSource())
    with pytest.raises(ContentTypeError) as excinfo:
        await client.request("query Foo { foo }")
    await client.aclose()

    assert excinfo.value.status_code == 503
    assert excinfo.value.content_type == "text/plain; charset=utf-8"
    assert excinfo.value.snippet == "x" * 512


@pytest.mark.asyncio
async def test_transport_error(respx_mock: respx.Router) -> None:
    respx_mock.post(TEST_GRAPHQL_URL).mock(side_effect=httpx.ConnectError)
    client = GraphQLClient(TEST_API_URL, CountingTokenSource())
    with pytest.raises(PolarisWebError):
        await client.request("query Foo { foo }")
    await client.aclose()


@pytest.mark.asyncio
async def test_unmarshal_error(
    mock_polaris: MockPolaris, graphql: GraphQLClient
) -> None:
    mock_polaris.set_operation(
        "SdkPythonTestNodes", lambda _: {"result": {"other": 1}}
    )
    with pytest.raises(InvalidResponseError) as excinfo:
        await graphql.query(NODES_QUERY, None, NodesData)
    assert str(excinfo.value).startswith(
        "failed to unmarshal SdkPythonTestNodes: "
    )


@pytest.mark.asyncio
async def test_graphql_error_transition(respx_mock: respx.Router) -> None:
    message = (
        "INTERNAL: invalid status transition of feature CLOUDACCOUNTS from"
        " CONNECTED to CONNECTING"
    )
    error = {
        "message": message,
        "extensions": {
            "code": 500,
            "trace": {"traceId": "9D7LJciYbUSaTTaLQuJcMA=="},
        },
    }
    respx_mock.post(TEST_GRAPHQL_URL).respond(500, json={"errors": [error]})
    client = GraphQLClient(TEST_API_URL, CountingTokenSource())
    with pytest.raises(GraphQLError) as excinfo:
        await client.request("mutation Foo { foo }")
    await client.aclose()

    assert str(excinfo.value).endswith(
        f"{message} (code: 500, traceId: 9D7LJciYbUSaTTaLQuJcMA==)"
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "extensions",
    [{"code": 403, "trace": None}, None, {"code": None}],
)
async def test_graphql_error_null_fields(
    respx_mock: respx.Router, extensions: dict[str, Any] | None
) -> None:
    error = {"message": "boom", "extensions": extensions}
    body = {"data": None, "errors": [error]}
    respx_mock.post(TEST_GRAPHQL_URL).respond(200, json=body)
    client = GraphQLClient(TEST_API_URL, CountingTokenSource())
    with pytest.raises(GraphQLError) as excinfo:
        await client.request("query Foo { foo }")
    await client.aclose()

    assert excinfo.value.status_code == 200
    assert excinfo.value.errors[0].message == "boom"
    assert excinfo.value.errors[0].extensions.trace.trace_id is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {
            "data": None,
            "errors": [{"message": "boom", "extensions": {"code": "DENIED"}}],
        },
        {"data": None, "errors": "boom"},
        {"code": "DENIED", "message": "boom"},
        {"code": 7, "message": ["boom"]},
    ],
)
async def test_unparsable_error(
    respx_mock: respx.Router, body: dict[str, Any]
) -> None:
    respx_mock.post(TEST_GRAPHQL_URL).respond(200, json=body)
    client = GraphQLClient(TEST_API_URL, CountingTokenSource())
    with pytest.raises(InvalidResponseError) as excinfo:
        await client.request("query Foo { foo }")
    await client.aclose()

    assert str(excinfo.value).startswith(
        "failed to parse error response body (status code 200): "
    )
