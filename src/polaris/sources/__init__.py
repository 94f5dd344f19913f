"""Sources of access tokens."""

from .base import TokenSource
from .service_account import ServiceAccountTokenSource
from .user import UserTokenSource

__all__ = [
    "ServiceAccountTokenSource",
    "TokenSource",
    "UserTokenSource",
]
