"""Create Polaris SDK components."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import aclosing, asynccontextmanager
from datetime import timedelta
from typing import Self

import structlog
from httpx import AsyncBaseTransport, AsyncClient
from structlog.stdlib import BoundLogger

from .config import PolarisSettings, ServiceAccount, UserAccount
from .exceptions import ConfigurationError, NotFoundError
from .graphql import GraphQLClient
from .services.core import CoreService

__all__ = ["Factory", "load_account"]


def load_account(name: str = "") -> ServiceAccount | UserAccount:
    """Load the default account.

    A service account is preferred. If no service account is configured, a
    local user account is loaded instead.

    Parameters
    ----------
    name
        Name of the local user account to load if there is no service
        account.

    Returns
    -------
    ServiceAccount or UserAccount
        Loaded account.

    Raises
    ------
    ConfigurationError
        Raised if neither kind of account could be loaded.
    """
    try:
        return ServiceAccount.from_file()
    except ConfigurationError as e:
        service_error = e
    try:
        return UserAccount.from_file(name)
    except (ConfigurationError, NotFoundError) as e:
        msg = f"no account configured: {service_error!s}; {e!s}"
        raise ConfigurationError(msg) from e


class Factory:
    """Build Polaris SDK components for an account.

    Parameters
    ----------
    graphql
        Authenticated GraphQL client for the account.
    logger
        Logger to use.
    """

    @classmethod
    def from_account(
        cls,
        account: ServiceAccount | UserAccount,
        *,
        http_client: AsyncClient | None = None,
        transport: AsyncBaseTransport | None = None,
        logger: BoundLogger | None = None,
        timeout: timedelta | None = None,
    ) -> Self:
        """Create a factory for an account.

        Parameters
        ----------
        account
            Account to authenticate as.
        http_client
            Existing ``httpx.AsyncClient`` to use for token requests.
        transport
            Transport used to send authenticated GraphQL requests.
        logger
            Logger to use. If not given, the ``polaris`` structlog logger
            will be used.
        timeout
            Timeout for GraphQL requests.

        Returns
        -------
        Factory
            Newly-created factory. Must be closed with `aclose`.
        """
        logger = logger or structlog.get_logger("polaris")
        logger = logger.bind(account=account.account_name)
        graphql: GraphQLClient
        if isinstance(account, ServiceAccount):
            graphql = GraphQLClient.from_service_account(
                account.token_url,
                account.client_id,
                account.client_secret.get_secret_value(),
                api_url=account.api_url,
                http_client=http_client,
                transport=transport,
                logger=logger,
                timeout=timeout,
            )
        else:
            graphql = GraphQLClient.from_user(
                account.api_url,
                account.username,
                account.password.get_secret_value(),
                http_client=http_client,
                transport=transport,
                logger=logger,
                timeout=timeout,
            )
        return cls(graphql, logger)

    @classmethod
    @asynccontextmanager
    async def standalone(
        cls,
        settings: PolarisSettings | None = None,
        account: ServiceAccount | UserAccount | None = None,
    ) -> AsyncIterator[Self]:
        """Async context manager for Polaris SDK components.

        Configures logging from the settings and loads the default account
        if none is given.

        Parameters
        ----------
        settings
            Settings of the SDK. If not given, they are read from the
            environment.
        account
            Account to authenticate as. If not given, `load_account` is used.

        Yields
        ------
        Factory
            The factory.

        Examples
        --------
        .. code-block:: python

           async with Factory.standalone() as factory:
               core = factory.create_core_service()
               version = await factory.graphql.deployment_version()
        """
        settings = settings or PolarisSettings()
        settings.configure_logging()
        factory = cls.from_account(account or load_account())
        async with aclosing(factory):
            yield factory

    def __init__(
        self, graphql: GraphQLClient, logger: BoundLogger | None = None
    ) -> None:
        self.graphql = graphql
        self._logger = logger or structlog.get_logger("polaris")

    async def aclose(self) -> None:
        """Shut down the factory.

        After this method is called, the factory object is no longer valid and
        must not be used.
        """
        await self.graphql.aclose()

    def create_core_service(self) -> CoreService:
        """Create a service for the core operations of the platform."""
        return CoreService(self.graphql, self._logger)
