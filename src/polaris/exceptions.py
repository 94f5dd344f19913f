"""Exceptions for the Polaris SDK."""

from __future__ import annotations

from safir.slack.blockkit import SlackException, SlackWebException

from .models.graphql import GraphQLErrorDetail, JSONErrorBody

__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "ContentTypeError",
    "GraphQLError",
    "InvalidResponseError",
    "JSONError",
    "NoBodyError",
    "NotFoundError",
    "PolarisError",
    "PolarisResponseError",
    "PolarisWebError",
    "TaskChainError",
    "UnexpectedStatusError",
    "VersionMismatchError",
]


def _summarize(message: str, code: int, trace_id: str | None) -> str:
    """Format an error message with its code and trace ID, if present."""
    details = []
    if code:
        details.append(f"code: {code}")
    if trace_id:
        details.append(f"traceId: {trace_id}")
    if not details:
        return message
    return f"{message} ({', '.join(details)})"


class PolarisError(SlackException):
    """Base class for Polaris SDK exceptions."""


class AuthenticationError(PolarisError):
    """An access token could not be acquired or refreshed."""


class ConfigurationError(PolarisError):
    """Account configuration is missing or invalid."""


class NotFoundError(PolarisError):
    """The requested entity does not exist."""


class TaskChainError(PolarisError):
    """Waiting for a task chain failed."""


class VersionMismatchError(PolarisError):
    """No version tag has the same format as the deployment version."""


class PolarisWebError(SlackWebException, PolarisError):
    """An HTTP request failed at the transport level."""


class PolarisResponseError(PolarisError):
    """The response to a request was an error or could not be used.

    Parameters
    ----------
    message
        Error message.
    status_code
        HTTP status code of the response, if known.
    """

    def __init__(
        self, message: str, *, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class NoBodyError(PolarisResponseError):
    """The response had no body."""


class ContentTypeError(PolarisResponseError):
    """The response body was not JSON.

    Parameters
    ----------
    content_type
        Content type of the response.
    snippet
        Beginning of the response body.
    status_code
        HTTP status code of the response.
    """

    def __init__(
        self, content_type: str, snippet: str, *, status_code: int
    ) -> None:
        msg = (
            f"response has Content-Type {content_type}"
            f" (status code {status_code}): {snippet!r}"
        )
        super().__init__(msg, status_code=status_code)
        self.content_type = content_type
        self.snippet = snippet


class InvalidResponseError(PolarisResponseError):
    """The response body could not be parsed into the expected shape."""


class UnexpectedStatusError(PolarisResponseError):
    """The response had an error status and no recognized error body."""


class JSONError(PolarisResponseError):
    """The response body was a plain JSON error document.

    These errors are usually returned by the authentication and session
    layer rather than by GraphQL execution.

    Parameters
    ----------
    body
        Parsed error document.
    status_code
        HTTP status code of the response.
    """

    def __init__(
        self, body: JSONErrorBody, *, status_code: int | None = None
    ) -> None:
        msg = _summarize(body.message, body.code, body.trace_id)
        super().__init__(msg, status_code=status_code)
        self.code = body.code
        self.uri = body.uri
        self.trace_id = body.trace_id


class GraphQLError(PolarisResponseError):
    """The response body was a GraphQL error document.

    The message summarizes the first reported error. All reported errors are
    available in ``errors`` so that callers can inspect the extension codes.

    Parameters
    ----------
    errors
        Every error reported in the response.
    status_code
        HTTP status code of the response.
    """

    def __init__(
        self,
        errors: list[GraphQLErrorDetail],
        *,
        status_code: int | None = None,
    ) -> None:
        if errors:
            first = errors[0]
            trace_id = first.extensions.trace.trace_id
            msg = _summarize(first.message, first.extensions.code, trace_id)
        else:
            msg = "Unknown GraphQL error"
        super().__init__(msg, status_code=status_code)
        self.errors = errors

    @property
    def code(self) -> int:
        """Extension code of the first error, or 0 if there is none."""
        return self.errors[0].extensions.code if self.errors else 0

    @property
    def codes(self) -> list[int]:
        """Extension codes of all reported errors."""
        return [e.extensions.code for e in self.errors]

    def has_code(self, *codes: int) -> bool:
        """Whether any reported error has one of the given extension codes.

        Parameters
        ----------
        *codes
            Extension codes to look for.

        Returns
        -------
        bool
            `True` if at least one error matches.
        """
        return any(c in codes for c in self.codes)
