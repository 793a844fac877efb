"""Pytest configuration for integration tests.

This module provides integration-test-specific fixtures: a mocked Ollama
client for the gateway lifespan, and domain agent apps served over an
in-process ASGI transport so HttpAgent can be exercised without sockets.
"""

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from insurance_mesh import create_agent_app


@pytest.fixture(autouse=True)
def mock_ollama_client():
    """Mock OllamaClient for all integration tests.

    This fixture patches the OllamaClient class before the app is created,
    ensuring the lifespan uses our mock instead of creating a real client.
    """
    with patch("insurance_mesh.app.OllamaClient") as mock_client_class:
        mock_instance = AsyncMock()
        mock_instance.check_connection.return_value = True
        mock_instance.chat_json.return_value = {}

        # Return the mock instance when OllamaClient is instantiated
        mock_client_class.return_value = mock_instance

        yield mock_instance


@pytest.fixture
def policy_app(test_settings):
    """A domain agent app serving the policy registry."""
    return create_agent_app("policy", settings=test_settings)


@pytest_asyncio.fixture
async def policy_client(policy_app):
    """Async HTTP client talking to the policy agent app.

    Yields:
        AsyncClient: Client whose requests are routed to the agent app.
    """
    transport = ASGITransport(app=policy_app)
    async with AsyncClient(transport=transport, base_url="http://policy.test") as client:
        yield client
