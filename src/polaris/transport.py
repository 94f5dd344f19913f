"""HTTPX transport that authenticates requests with a bearer token."""

from __future__ import annotations

import asyncio

import structlog
from httpx import (
    AsyncBaseTransport,
    AsyncByteStream,
    AsyncHTTPTransport,
    Request,
    Response,
)
from structlog.stdlib import BoundLogger

from .exceptions import AuthenticationError
from .models.token import Token
from .sources import TokenSource

__all__ = ["AuthenticatingTransport"]


class AuthenticatingTransport(AsyncBaseTransport):
    """Transport that adds an access token to every request.

    The current token is cached and shared by all requests made through the
    transport. When it is missing or about to expire, a new one is acquired
    from the token source. Concurrent requests that find the token expired
    wait for a single acquisition rather than each acquiring their own. The
    lock is only held while checking and refreshing the token, never while a
    request is being sent.

    Parameters
    ----------
    source
        Source of new access tokens.
    transport
        Transport that sends the authenticated requests. If not given, a new
        ``httpx.AsyncHTTPTransport`` is created.
    logger
        Logger to use. If not given, the default structlog logger will be
        used.
    """

    def __init__(
        self,
        source: TokenSource,
        transport: AsyncBaseTransport | None = None,
        *,
        logger: BoundLogger | None = None,
    ) -> None:
        self._source = source
        self._transport = transport or AsyncHTTPTransport()
        self._logger = logger or structlog.get_logger("polaris")
        self._token: Token | None = None
        self._lock = asyncio.Lock()

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def handle_async_request(self, request: Request) -> Response:
        # The caller's request is never modified.
        authenticated = Request(
            request.method,
            request.url,
            headers=request.headers.copy(),
            stream=request.stream,
            extensions=request.extensions,
        )
        try:
            token = await self._get_token()
        except AuthenticationError as e:
            if isinstance(request.stream, AsyncByteStream):
                await request.stream.aclose()
            msg = f"failed to refresh access token: {e!s}"
            raise AuthenticationError(msg) from e
        token.apply(authenticated)
        return await self._transport.handle_async_request(authenticated)

    async def _get_token(self) -> Token:
        """Return the cached token, acquiring a new one if needed."""
        async with self._lock:
            if self._token is None or self._token.is_expired():
                self._logger.debug("Refreshing access token")
                self._token = await self._source.acquire()
            return self._token
