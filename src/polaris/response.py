"""Classification of responses from the Polaris platform."""

from __future__ import annotations

from typing import Any

from httpx import Response
from pydantic import BaseModel, ValidationError

from .constants import BODY_SNIPPET_LENGTH
from .exceptions import (
    ContentTypeError,
    GraphQLError,
    InvalidResponseError,
    JSONError,
    NoBodyError,
    UnexpectedStatusError,
)
from .models.graphql import GraphQLErrorBody, JSONErrorBody

__all__ = ["parse_response"]


def parse_response(
    r: Response, *, check_graphql_errors: bool = True
) -> dict[str, Any]:
    """Check a response against every known error shape.

    The platform reports errors in two incompatible shapes, depending on
    whether the failure happened in the session layer or during GraphQL
    execution. Both are checked before the status code, and a body that is
    not JSON is always an error.

    Parameters
    ----------
    r
        Response to check. Its body must already have been read.
    check_graphql_errors
        Whether to look for a GraphQL error array. Token endpoints are not
        GraphQL endpoints and never return one.

    Returns
    -------
    dict
        Parsed body of a successful response.

    Raises
    ------
    ContentTypeError
        Raised if the response is not JSON.
    GraphQLError
        Raised if the body contains a non-empty GraphQL error array.
    InvalidResponseError
        Raised if the body could not be parsed as a JSON object.
    JSONError
        Raised if the body is a plain JSON error document.
    NoBodyError
        Raised if the response has no body.
    UnexpectedStatusError
        Raised if the status code is not 200 and no other error applies.
    """
    status = r.status_code
    if not r.content:
        msg = f"response has no body (status code {status})"
        raise NoBodyError(msg, status_code=status)

    content_type = r.headers.get("Content-Type", "")
    if not content_type.startswith("application/json"):
        snippet = r.text[:BODY_SNIPPET_LENGTH]
        raise ContentTypeError(content_type, snippet, status_code=status)

    try:
        body = r.json()
    except ValueError as e:
        msg = f"failed to parse response body (status code {status}): {e!s}"
        raise InvalidResponseError(msg, status_code=status) from e
    if not isinstance(body, dict):
        msg = f"response body is not a JSON object (status code {status})"
        raise InvalidResponseError(msg, status_code=status)

    # A body without the fields of an error shape is not an error document,
    # but one that has them and does not parse cannot be trusted as success.
    if "code" in body or "message" in body:
        json_error = _validate(JSONErrorBody, body, status)
        if json_error.is_error():
            raise JSONError(json_error, status_code=status)

    if check_graphql_errors and body.get("errors"):
        graphql_error = _validate(GraphQLErrorBody, body, status)
        if graphql_error.errors:
            raise GraphQLError(graphql_error.errors, status_code=status)

    if status != 200:
        msg = f"response has status code: {status} {r.reason_phrase}"
        raise UnexpectedStatusError(msg, status_code=status)
    return body


def _validate[M: BaseModel](
    model: type[M], body: dict[str, Any], status: int
) -> M:
    try:
        return model.model_validate(body)
    except ValidationError as e:
        msg = (
            f"failed to parse error response body (status code {status}):"
            f" {e!s}"
        )
        raise InvalidResponseError(msg, status_code=status) from e
