"""Models for cloud account features, permission groups and feature flags."""

from __future__ import annotations

from collections.abc import Iterable
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "CloudAccountStatus",
    "Feature",
    "FeatureFlag",
    "FeatureFlagName",
    "FeatureName",
    "PermissionGroup",
    "contains_feature",
    "feature_names",
    "format_feature",
    "format_status",
    "parse_feature",
]


class CloudAccountStatus(StrEnum):
    """Status of a feature of a cloud account."""

    CONNECTED = "CONNECTED"
    CONNECTING = "CONNECTING"
    DISABLED = "DISABLED"
    DISCONNECTED = "DISCONNECTED"
    MISSING_PERMISSIONS = "MISSING_PERMISSIONS"


class FeatureFlagName(StrEnum):
    """Feature flags that change the workflows supported by the SDK."""

    AZURE_SQL_DB_COPY_BACKUP = "CNP_AZURE_SQL_DB_COPY_BACKUP"
    GCP_DISABLE_DELETE_COMBINED = "CNP_GCP_DISABLE_DELETE_COMBINED"


class FeatureName(StrEnum):
    """Names of the cloud account features known to the SDK."""

    ALL = "ALL"
    APP_FLOWS = "APP_FLOWS"
    ARCHIVAL = "ARCHIVAL"
    AZURE_SQL_DB_PROTECTION = "AZURE_SQL_DB_PROTECTION"
    AZURE_SQL_MI_PROTECTION = "AZURE_SQL_MI_PROTECTION"
    CLOUDACCOUNTS = "CLOUDACCOUNTS"
    """Deprecated by the platform, with no replacement."""

    CLOUD_NATIVE_ARCHIVAL = "CLOUD_NATIVE_ARCHIVAL"
    CLOUD_NATIVE_ARCHIVAL_ENCRYPTION = "CLOUD_NATIVE_ARCHIVAL_ENCRYPTION"
    CLOUD_NATIVE_BLOB_PROTECTION = "CLOUD_NATIVE_BLOB_PROTECTION"
    CLOUD_NATIVE_PROTECTION = "CLOUD_NATIVE_PROTECTION"
    CLOUD_NATIVE_S3_PROTECTION = "CLOUD_NATIVE_S3_PROTECTION"
    EXOCOMPUTE = "EXOCOMPUTE"
    GCP_SHARED_VPC_HOST = "GCP_SHARED_VPC_HOST"
    KUBERNETES_PROTECTION = "KUBERNETES_PROTECTION"
    RDS_PROTECTION = "RDS_PROTECTION"
    SERVERS_AND_APPS = "SERVERS_AND_APPS"


class PermissionGroup(StrEnum):
    """Named set of permissions for a feature.

    Not every permission group applies to every feature. The platform may
    report groups not listed here, so features store groups as strings.
    """

    GROUP_UNSPECIFIED = "GROUP_UNSPECIFIED"
    BASIC = "BASIC"
    RSC_MANAGED_CLUSTER = "RSC_MANAGED_CLUSTER"


class Feature(BaseModel):
    """A cloud account feature with an optional set of permission groups.

    A feature without permission groups uses the full set of permissions of
    the feature. Comparison with ``==`` is field-wise and so is sensitive to
    the order of permission groups; use `equals` or `deep_equals` instead.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., title="Feature name", alias="featureType")

    permission_groups: tuple[str, ...] = Field(
        (), title="Permission groups", alias="permissionsGroups"
    )

    @field_validator("permission_groups", mode="before")
    @classmethod
    def _validate_permission_groups(cls, v: Any) -> Any:
        return () if v is None else v

    def __str__(self) -> str:
        if not self.permission_groups:
            return self.name
        groups = ",".join(sorted(self.permission_groups))
        return f"{self.name}({groups})"

    def equals(self, other: Feature) -> bool:
        """Whether the features have the same name.

        Permission groups are not compared.
        """
        return self.name == other.name

    def deep_equals(self, other: Feature) -> bool:
        """Whether the features have the same name and permission groups."""
        return self.equals(other) and set(self.permission_groups) == set(
            other.permission_groups
        )

    def has_permission_group(self, group: str) -> bool:
        """Whether the feature has the given permission group."""
        return group in self.permission_groups

    def with_permission_groups(self, *groups: str) -> Self:
        """Return a copy of the feature with the given groups added.

        Parameters
        ----------
        *groups
            Permission groups to add.

        Returns
        -------
        Feature
            New feature. The original is not modified.
        """
        permission_groups = (*self.permission_groups, *groups)
        return self.model_copy(update={"permission_groups": permission_groups})


class FeatureFlag(BaseModel):
    """Name and state of a single feature flag."""

    name: str = Field(..., title="Flag name")

    enabled: bool = Field(..., title="Whether the flag is enabled")


def contains_feature(features: Iterable[Feature], feature: Feature) -> bool:
    """Whether a feature with the same name is in ``features``."""
    return any(f.equals(feature) for f in features)


def feature_names(features: Iterable[Feature]) -> list[str]:
    """Return the names of the features, in order."""
    return [f.name for f in features]


def format_feature(feature: Feature) -> str:
    """Format a feature name in lower case with hyphens as separators.

    Parameters
    ----------
    feature
        Feature to format. Permission groups are ignored.

    Returns
    -------
    str
        Formatted name, such as ``cloud-native-protection``.
    """
    return feature.name.lower().replace("_", "-")


def format_status(status: CloudAccountStatus) -> str:
    """Format a status in lower case with hyphens as separators."""
    return status.value.lower().replace("_", "-")


def parse_feature(name: str) -> Feature:
    """Parse a feature name, as produced by `format_feature` or the API.

    Parsing is case-insensitive and accepts either hyphens or underscores as
    separators.

    Parameters
    ----------
    name
        Feature name to parse.

    Returns
    -------
    Feature
        Corresponding feature without permission groups.

    Raises
    ------
    ValueError
        Raised if the name is not a known feature.
    """
    normalized = name.replace("-", "_")
    try:
        feature_name = FeatureName(normalized.upper())
    except ValueError:
        raise ValueError(f"invalid feature: {normalized}") from None
    return Feature(name=feature_name.value)
