"""Test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
import respx

from polaris import (
    CoreService,
    GraphQLClient,
    MockPolaris,
    register_mock_polaris,
)

from .support.constants import (
    TEST_API_URL,
    TEST_CLIENT_ID,
    TEST_CLIENT_SECRET,
    TEST_PASSWORD,
    TEST_USERNAME,
)


@pytest.fixture(autouse=True)
def environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove any Polaris configuration from the environment."""
    for key in list(os.environ):
        if key.startswith("RUBRIK_POLARIS_"):
            monkeypatch.delenv(key)


@pytest.fixture
def mock_polaris(respx_mock: respx.Router) -> MockPolaris:
    mock = register_mock_polaris(respx_mock, TEST_API_URL)
    mock.add_user(TEST_USERNAME, TEST_PASSWORD)
    mock.add_service_account(TEST_CLIENT_ID, TEST_CLIENT_SECRET)
    return mock


@pytest_asyncio.fixture
async def graphql(mock_polaris: MockPolaris) -> AsyncIterator[GraphQLClient]:
    """Return a GraphQL client authenticated as a local user."""
    client = GraphQLClient.from_user(
        TEST_API_URL, TEST_USERNAME, TEST_PASSWORD
    )
    yield client
    await client.aclose()


@pytest.fixture
def core(graphql: GraphQLClient) -> CoreService:
    return CoreService(graphql)
