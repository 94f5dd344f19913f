"""Core operations of the platform: task chains, features and flags."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta
from uuid import UUID

import structlog
from pydantic import BaseModel, Field
from structlog.stdlib import BoundLogger

from ..constants import (
    FEATURE_DISABLE_WAIT,
    TASK_CHAIN_RBAC_ATTEMPTS,
    TASK_CHAIN_RBAC_CODES,
    TASK_CHAIN_WAIT,
)
from ..exceptions import GraphQLError, PolarisError, TaskChainError
from ..graphql import GraphQLClient
from ..models.feature import Feature, FeatureFlag
from ..models.taskchain import TaskChain, TaskChainState
from ..queries import (
    ALL_DEPLOYMENT_IP_ADDRESSES_QUERY,
    ALL_ENABLED_FEATURES_FOR_ACCOUNT_QUERY,
    FEATURE_FLAG_ALL_QUERY,
    FEATURE_FLAG_QUERY,
    SINGLE_UNIFIED_FEATURE_FLAG_QUERY,
    TASK_CHAIN_STATUS_QUERY,
)

__all__ = ["CoreService"]


class _TaskChainStatus(BaseModel):
    taskchain: TaskChain | None = None


class _TaskChainStatusData(BaseModel):
    result: _TaskChainStatus | None = Field(
        None, alias="getKorgTaskchainStatus"
    )


class _DeploymentIpAddressesData(BaseModel):
    addresses: list[str] = Field(
        default_factory=list, alias="allDeploymentIpAddresses"
    )


class _EnabledFeatures(BaseModel):
    features: list[Feature] = Field(default_factory=list)


class _EnabledFeaturesData(BaseModel):
    result: _EnabledFeatures


class _Flag(BaseModel):
    name: str = ""
    variant: str = ""


class _Flags(BaseModel):
    flags: list[_Flag] = Field(default_factory=list)


class _FlagsData(BaseModel):
    result: _Flags


class _FlagData(BaseModel):
    result: _Flag


def _is_rbac_lag(error: PolarisError) -> bool:
    """Whether an error means task chain permissions have not propagated."""
    return isinstance(error, GraphQLError) and error.has_code(
        *TASK_CHAIN_RBAC_CODES
    )


def _status_error(task_chain_id: UUID, error: PolarisError) -> TaskChainError:
    msg = f"failed to get task chain status for {task_chain_id}: {error!s}"
    return TaskChainError(msg)


class CoreService:
    """Core operations shared by all cloud providers.

    Parameters
    ----------
    graphql
        Client used to talk to the platform.
    logger
        Logger to use. If not given, the default structlog logger will be
        used.
    """

    def __init__(
        self, graphql: GraphQLClient, logger: BoundLogger | None = None
    ) -> None:
        self._graphql = graphql
        self._logger = logger or structlog.get_logger("polaris")

    async def deployment_ip_addresses(self) -> list[str]:
        """Return the IP addresses the platform connects from."""
        data = await self._graphql.query(
            ALL_DEPLOYMENT_IP_ADDRESSES_QUERY, None, _DeploymentIpAddressesData
        )
        return data.addresses

    async def enabled_features_for_account(self) -> list[Feature]:
        """Return every feature enabled for the account."""
        data = await self._graphql.query(
            ALL_ENABLED_FEATURES_FOR_ACCOUNT_QUERY, None, _EnabledFeaturesData
        )
        return data.result.features

    async def feature_flags(self) -> list[FeatureFlag]:
        """Return the state of every feature flag of the account."""
        data = await self._graphql.query(
            FEATURE_FLAG_ALL_QUERY, None, _FlagsData
        )
        return [
            FeatureFlag(name=f.name, enabled=f.variant == "true")
            for f in data.result.flags
        ]

    async def feature_flag(self, name: str) -> FeatureFlag:
        """Return the state of a single feature flag.

        Flags that have moved to the unified feature flag service report a
        variant other than ``true`` or ``false`` from the original query, in
        which case the unified service is asked instead.

        Parameters
        ----------
        name
            Name of the flag, usually a `FeatureFlagName`.

        Returns
        -------
        FeatureFlag
            Name and state of the flag.
        """
        variables = {"flagName": str(name)}
        data = await self._graphql.query(
            FEATURE_FLAG_QUERY, variables, _FlagData
        )
        flag = data.result
        if flag.variant not in ("true", "false"):
            self._logger.debug("Checking unified feature flag", flag=str(name))
            data = await self._graphql.query(
                SINGLE_UNIFIED_FEATURE_FLAG_QUERY, variables, _FlagData
            )
            flag = data.result
        return FeatureFlag(name=flag.name, enabled=flag.variant == "true")

    async def task_chain_status(self, task_chain_id: UUID) -> TaskChain:
        """Return the current status of a task chain.

        A task chain that was just created may not have a state yet, in which
        case its state is `TaskChainState.INVALID`.

        Parameters
        ----------
        task_chain_id
            UUID of the task chain.

        Returns
        -------
        TaskChain
            Current status of the task chain.

        Raises
        ------
        GraphQLError
            Raised if the platform reported an error, including authorization
            errors for task chains whose permissions have not propagated.
        """
        variables = {"taskchainId": str(task_chain_id)}
        data = await self._graphql.query(
            TASK_CHAIN_STATUS_QUERY, variables, _TaskChainStatusData
        )
        if data.result is None or data.result.taskchain is None:
            return TaskChain(task_chain_id=task_chain_id)
        return data.result.taskchain

    async def wait_for_task_chain(
        self, task_chain_id: UUID, wait: timedelta = TASK_CHAIN_WAIT
    ) -> TaskChainState:
        """Wait for a task chain to finish.

        Authorization errors are expected for a short while after a task
        chain is created and are retried a limited number of times. Any other
        error is raised immediately, wrapped in `TaskChainError`. To bound
        the total wait, run this under `asyncio.timeout`.

        Parameters
        ----------
        task_chain_id
            UUID of the task chain.
        wait
            How long to wait between status queries.

        Returns
        -------
        TaskChainState
            Final state of the task chain, which may be a failure state.

        Raises
        ------
        TaskChainError
            Raised if the task chain status could not be retrieved, either
            because authorization errors persisted or because the status
            query failed for another reason. The underlying error is chained
            as the cause.
        """
        logger = self._logger.bind(task_chain_id=str(task_chain_id))
        attempt = 0
        while True:
            try:
                task_chain = await self.task_chain_status(task_chain_id)
            except PolarisError as e:
                if not _is_rbac_lag(e):
                    raise _status_error(task_chain_id, e) from e
                attempt += 1
                if attempt > TASK_CHAIN_RBAC_ATTEMPTS:
                    msg = (
                        f"failed to get task chain status for {task_chain_id}"
                        f" after {attempt} attempts: {e!s}"
                    )
                    raise TaskChainError(msg) from e
                logger.debug("Task chain RBAC not ready", attempt=attempt)
            else:
                if task_chain.state.is_terminal:
                    return task_chain.state

            logger.debug("Waiting for task chain")
            await asyncio.sleep(wait.total_seconds())

    async def wait_for_feature_disable_task_chain(
        self,
        task_chain_id: UUID,
        is_disabled: Callable[[], Awaitable[bool]],
        wait: timedelta = FEATURE_DISABLE_WAIT,
    ) -> TaskChainState:
        """Wait for a task chain that disables a feature.

        Same as `wait_for_task_chain`, except that while authorization errors
        persist the status of the feature itself is checked with
        ``is_disabled``, and the wait succeeds once the feature is disabled.
        There is no limit on the number of authorization errors.

        Parameters
        ----------
        task_chain_id
            UUID of the task chain.
        is_disabled
            Called to check whether the feature has been disabled.
        wait
            How long to wait between status queries.

        Returns
        -------
        TaskChainState
            Always `TaskChainState.SUCCEEDED`.

        Raises
        ------
        TaskChainError
            Raised if the task chain failed or was canceled, or if the status
            query failed with an error other than an authorization error.
        """
        logger = self._logger.bind(task_chain_id=str(task_chain_id))
        while True:
            try:
                task_chain = await self.task_chain_status(task_chain_id)
            except PolarisError as e:
                if not _is_rbac_lag(e):
                    raise _status_error(task_chain_id, e) from e
                logger.debug("Task chain RBAC not ready, checking feature")
                if await is_disabled():
                    return TaskChainState.SUCCEEDED
            else:
                state = task_chain.state
                if state == TaskChainState.SUCCEEDED:
                    return state
                if state.is_terminal:
                    msg = f"task chain {task_chain_id} ended in state {state}"
                    raise TaskChainError(msg)

            logger.debug("Waiting for feature disable task chain")
            await asyncio.sleep(wait.total_seconds())
