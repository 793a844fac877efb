"""Pytest configuration and shared fixtures for insurance-mesh tests.

This module provides common fixtures used across all test modules,
including an in-process catalog of the four domain agents, test app
creation and async client setup.
"""

from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from insurance_mesh import create_app
from insurance_mesh.agents import LocalAgent
from insurance_mesh.config import MeshSettings
from insurance_mesh.domains import DOMAIN_REGISTRIES, IdGenerator, create_domain_registry
from insurance_mesh.mesh import AgentCatalog
from insurance_mesh.resolver import IntentResolver

FIXED_NOW = datetime(2026, 1, 20, 9, 30, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture
def test_settings():
    """Create test settings with the domain agents embedded in-process.

    Returns:
        MeshSettings: Settings instance configured for testing.
    """
    return MeshSettings(
        host="127.0.0.1",
        port=8000,
        agent_endpoints=[],
        embedded_agents=True,
        retry_backoff=0.0,
        invoke_timeout=2.0,
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def test_app(test_settings):
    """Create a FastAPI test application instance.

    Args:
        test_settings: Test settings fixture.

    Returns:
        FastAPI: Configured test application.
    """
    return create_app(settings=test_settings)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Args:
        test_app: Test application fixture.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture
def domain_agents():
    """The four domain registries wrapped as in-process agents."""
    ids = IdGenerator()
    return [
        LocalAgent(name, create_domain_registry(name, ids=ids, clock=fixed_clock))
        for name in DOMAIN_REGISTRIES
    ]


@pytest_asyncio.fixture
async def catalog(domain_agents):
    """A catalog holding every domain agent."""
    catalog = AgentCatalog()
    for agent in domain_agents:
        await catalog.add_agent(agent)
    yield catalog
    await catalog.close()


@pytest.fixture
def resolver(catalog):
    """Keyword-scored resolver over the domain catalog."""
    return IntentResolver(catalog)
