"""Tests for the component factory."""

from __future__ import annotations

import json

import pytest

from polaris import (
    ConfigurationError,
    CoreService,
    Factory,
    MockPolaris,
    PolarisSettings,
    ServiceAccount,
    ServiceAccountTokenSource,
    UserAccount,
    UserTokenSource,
    load_account,
)

from .support.constants import (
    TEST_API_URL,
    TEST_CLIENT_ID,
    TEST_CLIENT_SECRET,
    TEST_PASSWORD,
    TEST_TOKEN_URL,
    TEST_USERNAME,
)
from .support.data import data_path, read_test_json


@pytest.mark.asyncio
async def test_from_service_account(mock_polaris: MockPolaris) -> None:
    account = ServiceAccount(
        name="terraform",
        client_id=TEST_CLIENT_ID,
        client_secret=TEST_CLIENT_SECRET,
        access_token_uri=TEST_TOKEN_URL,
    )
    factory = Factory.from_account(account)
    assert isinstance(factory.graphql.source, ServiceAccountTokenSource)
    assert factory.graphql.api_url == TEST_API_URL
    assert await factory.graphql.deployment_version() == "v20240101-1"
    assert isinstance(factory.create_core_service(), CoreService)
    await factory.aclose()


@pytest.mark.asyncio
async def test_from_user_account(mock_polaris: MockPolaris) -> None:
    account = UserAccount(
        name="example", username=TEST_USERNAME, password=TEST_PASSWORD
    )
    factory = Factory.from_account(account)
    assert isinstance(factory.graphql.source, UserTokenSource)
    assert factory.graphql.api_url == TEST_API_URL
    assert await factory.graphql.deployment_version() == "v20240101-1"
    await factory.aclose()


@pytest.mark.asyncio
async def test_standalone(
    mock_polaris: MockPolaris, monkeypatch: pytest.MonkeyPatch
) -> None:
    credentials = read_test_json("service-account")
    monkeypatch.setenv(
        "RUBRIK_POLARIS_SERVICEACCOUNT_CREDENTIALS", json.dumps(credentials)
    )
    async with Factory.standalone(PolarisSettings()) as factory:
        core = factory.create_core_service()
        mock_polaris.set_operation(
            "SdkPythonCoreAllDeploymentIpAddresses",
            lambda _: {"allDeploymentIpAddresses": ["203.0.113.10"]},
        )
        assert await core.deployment_ip_addresses() == ["203.0.113.10"]
    assert mock_polaris.token_requests == 1


def test_load_account(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(
        "RUBRIK_POLARIS_SERVICEACCOUNT_FILE",
        str(data_path("service-account.json")),
    )
    monkeypatch.setenv(
        "RUBRIK_POLARIS_ACCOUNT_FILE", str(data_path("user-accounts.json"))
    )
    assert isinstance(load_account("example"), ServiceAccount)

    monkeypatch.setenv(
        "RUBRIK_POLARIS_SERVICEACCOUNT_FILE", str(data_path("missing.json"))
    )
    account = load_account("example")
    assert isinstance(account, UserAccount)
    assert account.name == "example"

    monkeypatch.setenv(
        "RUBRIK_POLARIS_ACCOUNT_FILE", str(data_path("missing.json"))
    )
    with pytest.raises(ConfigurationError) as excinfo:
        load_account("example")
    assert str(excinfo.value).startswith("no account configured: ")
