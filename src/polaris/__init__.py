"""Client SDK for the Rubrik Security Cloud (Polaris) GraphQL API."""

from .config import PolarisSettings, ServiceAccount, UserAccount
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ContentTypeError,
    GraphQLError,
    InvalidResponseError,
    JSONError,
    NoBodyError,
    NotFoundError,
    PolarisError,
    PolarisResponseError,
    PolarisWebError,
    TaskChainError,
    UnexpectedStatusError,
    VersionMismatchError,
)
from .factory import Factory, load_account
from .graphql import GraphQLClient, extract_operation_name
from .mock import MockPolaris, MockPolarisAction, register_mock_polaris
from .models.feature import (
    CloudAccountStatus,
    Feature,
    FeatureFlag,
    FeatureFlagName,
    FeatureName,
    PermissionGroup,
)
from .models.taskchain import TaskChain, TaskChainState
from .models.token import Token
from .services.core import CoreService
from .sources import ServiceAccountTokenSource, TokenSource, UserTokenSource
from .transport import AuthenticatingTransport
from .version import Version

__all__ = [
    "AuthenticatingTransport",
    "AuthenticationError",
    "CloudAccountStatus",
    "ConfigurationError",
    "ContentTypeError",
    "CoreService",
    "Factory",
    "Feature",
    "FeatureFlag",
    "FeatureFlagName",
    "FeatureName",
    "GraphQLClient",
    "GraphQLError",
    "InvalidResponseError",
    "JSONError",
    "MockPolaris",
    "MockPolarisAction",
    "NoBodyError",
    "NotFoundError",
    "PermissionGroup",
    "PolarisError",
    "PolarisResponseError",
    "PolarisSettings",
    "PolarisWebError",
    "ServiceAccount",
    "ServiceAccountTokenSource",
    "TaskChain",
    "TaskChainError",
    "TaskChainState",
    "Token",
    "TokenSource",
    "UnexpectedStatusError",
    "UserAccount",
    "UserTokenSource",
    "Version",
    "VersionMismatchError",
    "extract_operation_name",
    "load_account",
    "register_mock_polaris",
]
