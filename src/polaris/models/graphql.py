"""Models for GraphQL requests and the response envelopes around them."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

__all__ = [
    "CamelCaseModel",
    "Connection",
    "Edge",
    "GraphQLErrorBody",
    "GraphQLErrorDetail",
    "GraphQLExtensions",
    "GraphQLLocation",
    "GraphQLRequest",
    "GraphQLResponse",
    "GraphQLTrace",
    "JSONErrorBody",
    "PageInfo",
]


class CamelCaseModel(BaseModel):
    """Base for models whose wire form uses camel-case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GraphQLRequest(CamelCaseModel):
    """Body of a request to the GraphQL endpoint."""

    query: str = Field(..., title="Query text")

    variables: dict[str, Any] | None = Field(
        None,
        title="Query variables",
        description="Omitted from the request if not set",
    )

    operation_name: str | None = Field(
        None,
        title="Operation name",
        description=(
            "Name of the operation, used by the server to group requests"
            " in its metrics. Omitted from the request if not set."
        ),
    )

    def to_json(self) -> bytes:
        """Serialize the request body, omitting unset optional fields.

        Only the envelope fields are omitted. Variable values of `None` are
        still sent as ``null``.
        """
        exclude: set[str] = set()
        if self.variables is None:
            exclude.add("variables")
        if not self.operation_name:
            exclude.add("operation_name")
        return self.model_dump_json(by_alias=True, exclude=exclude).encode()


class JSONErrorBody(CamelCaseModel):
    """A plain JSON error document.

    The session and token endpoints, and the GraphQL endpoint for errors that
    happen before query execution, report errors using this shape instead of
    a GraphQL error array.
    """

    code: int = Field(0, title="Error code")

    uri: str = Field("", title="Request URI")

    message: str = Field("", title="Error message")

    trace_id: str | None = Field(None, title="Trace ID")

    def is_error(self) -> bool:
        """Whether the document actually describes an error.

        A successful response that happens to parse into this model has
        neither a code nor a message.
        """
        return self.code != 0 or self.message != ""


class GraphQLLocation(BaseModel):
    """Location in the query text that an error refers to."""

    line: int = Field(..., title="Line number")

    column: int = Field(..., title="Column number")


class GraphQLTrace(CamelCaseModel):
    """Server-side tracing information attached to an error."""

    operation: str = Field("", title="Operation name")

    trace_id: str | None = Field(None, title="Trace ID")

    span_id: str | None = Field(None, title="Span ID")


class GraphQLExtensions(BaseModel):
    """Vendor extensions attached to a GraphQL error."""

    code: int = Field(
        0,
        title="Error code",
        description="Numeric sub-classification, distinct from HTTP status",
    )

    trace: GraphQLTrace = Field(default_factory=GraphQLTrace, title="Trace")

    # The server sends null for absent extension fields.
    @field_validator("code", mode="before")
    @classmethod
    def _null_code(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("trace", mode="before")
    @classmethod
    def _null_trace(cls, v: Any) -> Any:
        return {} if v is None else v


class GraphQLErrorDetail(BaseModel):
    """One entry of a GraphQL error array."""

    message: str = Field("", title="Error message")

    path: list[str | int] | None = Field(None, title="Path of failed field")

    locations: list[GraphQLLocation] | None = Field(
        None, title="Locations in the query"
    )

    extensions: GraphQLExtensions = Field(
        default_factory=GraphQLExtensions, title="Extensions"
    )

    @field_validator("extensions", mode="before")
    @classmethod
    def _null_extensions(cls, v: Any) -> Any:
        return {} if v is None else v


class GraphQLErrorBody(BaseModel):
    """Envelope of a GraphQL response that may carry errors."""

    data: Any = Field(None, title="Partial result data")

    errors: list[GraphQLErrorDetail] | None = Field(None, title="Errors")


class PageInfo(CamelCaseModel):
    """Pagination state of a relay-style connection."""

    end_cursor: str | None = Field(None, title="Cursor of the last edge")

    has_next_page: bool = Field(False, title="Whether more pages exist")


class Edge[T](BaseModel):
    """An edge of a relay-style connection."""

    node: T = Field(..., title="Node")


class Connection[T](CamelCaseModel):
    """A page of a relay-style connection."""

    count: int | None = Field(None, title="Total number of nodes")

    edges: list[Edge[T]] = Field(default_factory=list, title="Edges")

    page_info: PageInfo = Field(
        default_factory=PageInfo, title="Pagination state"
    )

    @property
    def nodes(self) -> list[T]:
        """Nodes of this page, in order."""
        return [e.node for e in self.edges]


class GraphQLResponse[T](BaseModel):
    """Successful GraphQL response with typed result data."""

    data: T = Field(..., title="Result data")
