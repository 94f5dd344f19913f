"""GraphQL queries used by the SDK."""

from __future__ import annotations

__all__ = [
    "ALL_DEPLOYMENT_IP_ADDRESSES_QUERY",
    "ALL_ENABLED_FEATURES_FOR_ACCOUNT_QUERY",
    "DEPLOYMENT_VERSION_QUERY",
    "FEATURE_FLAG_ALL_QUERY",
    "FEATURE_FLAG_QUERY",
    "SINGLE_UNIFIED_FEATURE_FLAG_QUERY",
    "TASK_CHAIN_STATUS_QUERY",
]

ALL_DEPLOYMENT_IP_ADDRESSES_QUERY = """\
query SdkPythonCoreAllDeploymentIpAddresses {
    allDeploymentIpAddresses
}"""

ALL_ENABLED_FEATURES_FOR_ACCOUNT_QUERY = """\
query SdkPythonCoreAllEnabledFeaturesForAccount {
    result: allEnabledFeaturesForAccount {
        features {
            featureType
            permissionsGroups
        }
    }
}"""

DEPLOYMENT_VERSION_QUERY = """\
query SdkPythonCoreDeploymentVersion {
    deploymentVersion
}"""

FEATURE_FLAG_ALL_QUERY = """\
query SdkPythonCoreFeatureFlagAll {
    result: featureFlagAll {
        flags {
            name
            variant
        }
    }
}"""

FEATURE_FLAG_QUERY = """\
query SdkPythonCoreFeatureFlag($flagName: FeatureFlagName!) {
    result: featureFlag(flagName: $flagName) {
        name
        variant
    }
}"""

SINGLE_UNIFIED_FEATURE_FLAG_QUERY = """\
query SdkPythonCoreSingleUnifiedFeatureFlag($flagName: FeatureFlagName!) {
    result: singleUnifiedFeatureFlag(flagName: $flagName) {
        name
        variant
    }
}"""

TASK_CHAIN_STATUS_QUERY = """\
query SdkPythonCoreTaskchainStatus($taskchainId: String!) {
    getKorgTaskchainStatus(taskchainId: $taskchainId) {
        taskchain {
            id
            state
            taskchainUuid
            ... on Taskchain {
                progressedAt
            }
        }
    }
}"""
