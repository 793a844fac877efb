"""FastAPI application factories and lifespan management.

This module contains the application factories:

- create_app() builds the mesh gateway. Its lifespan creates the agent
  catalog and the MeshService once at startup and stores them in app.state.
- create_agent_app() builds a server for one domain service registry.
- serve_app() picks one of the two from the environment, for uvicorn's
  reloader, which can only import applications by name.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Sequence

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from insurance_mesh import __version__
from insurance_mesh.actions import ActionRegistry
from insurance_mesh.agents import AgentHandle, LocalAgent
from insurance_mesh.config import MeshSettings
from insurance_mesh.domains import DOMAIN_REGISTRIES, IdGenerator, create_domain_registry
from insurance_mesh.errors import MeshError
from insurance_mesh.mesh import AgentCatalog
from insurance_mesh.ollama import OllamaClient
from insurance_mesh.resolver import OllamaScorer, Scorer
from insurance_mesh.routers import agent, health, mesh
from insurance_mesh.services import MeshService

logger = logging.getLogger(__name__)


async def build_mesh_service(
    settings: MeshSettings, agents: Sequence[AgentHandle] = ()
) -> tuple[MeshService, OllamaClient | None]:
    """Create a MeshService and register the configured agents.

    Agents that cannot be reached are logged and skipped; they can be added
    later. The Ollama client is only created for the ollama scorer.

    Args:
        settings: Mesh settings (scorer, endpoints, retry and timeouts)
        agents: Extra agent handles registered before the configured endpoints

    Returns:
        tuple: The service, and the Ollama client to close on shutdown (or None)
    """
    scorer: Scorer | None = None
    ollama_client = None
    if settings.scorer == "ollama":
        ollama_client = OllamaClient(host=settings.ollama_host)
        if await ollama_client.check_connection():
            logger.info("Successfully connected to Ollama")
        else:
            logger.warning("Could not connect to Ollama - check if server is running")
        scorer = OllamaScorer(ollama_client, settings.ollama_model)

    catalog = AgentCatalog(timeout=settings.invoke_timeout, describe_ttl=settings.describe_ttl)
    service = MeshService(
        catalog,
        scorer=scorer,
        min_confidence=settings.min_confidence,
        invoke_timeout=settings.invoke_timeout,
        retry_attempts=settings.retry_attempts,
        retry_backoff=settings.retry_backoff,
        max_concurrency=settings.max_concurrency,
    )

    bootstrap: list[str | AgentHandle] = list(agents)
    if settings.embedded_agents:
        ids = IdGenerator()
        bootstrap.extend(
            LocalAgent(name, create_domain_registry(name, ids=ids)) for name in DOMAIN_REGISTRIES
        )
    bootstrap.extend(settings.agent_endpoints)

    for endpoint in bootstrap:
        try:
            await service.add_agent(endpoint)
        except MeshError as e:
            logger.warning(f"Skipping agent {endpoint!r} at startup: {e.message}")

    return service, ollama_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for the gateway.

    Builds the catalog from the configured agent endpoints and any handles
    passed to create_app(), and stores the MeshService in app.state.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: MeshSettings = app.state.settings
    service, app.state.ollama_client = await build_mesh_service(
        settings, app.state.agent_handles
    )
    app.state.mesh = service

    logger.info(
        f"Mesh gateway ready: {len(service.list_agents())} agents, "
        f"{len(service.list_actions())} actions"
    )

    yield

    await service.close()
    if app.state.ollama_client is not None:
        await app.state.ollama_client.close()
        logger.info("Ollama client closed")


def _add_cors(app: FastAPI, settings: MeshSettings) -> None:
    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def create_app(
    settings: MeshSettings | None = None,
    agents: Sequence[AgentHandle] = (),
) -> FastAPI:
    """Create and configure the mesh gateway application.

    Args:
        settings: Optional MeshSettings instance. If not provided, settings
                  are loaded from environment variables.
        agents: Extra agent handles registered at startup, before the
                configured endpoints (used to embed agents in-process).

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from insurance_mesh.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="insurance-mesh",
        description="Gateway routing free-form insurance requests across domain agents",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.role = "gateway"
    app.state.agent_handles = list(agents)

    _add_cors(app, settings)

    app.include_router(health.router)
    app.include_router(mesh.router)

    return app


def create_agent_app(
    agent_name: str,
    settings: MeshSettings | None = None,
    registry: ActionRegistry | None = None,
) -> FastAPI:
    """Create an application serving one domain service registry.

    Args:
        agent_name: The agent name reported to the gateway (e.g. "claims")
        settings: Optional MeshSettings instance
        registry: Registry to serve; defaults to the named domain's registry

    Returns:
        FastAPI: Configured FastAPI application instance.

    Raises:
        KeyError: If no registry is given and the name is not a known domain
    """
    if settings is None:
        from insurance_mesh.dependencies import get_settings

        settings = get_settings()

    if registry is None:
        registry = create_domain_registry(agent_name)

    app = FastAPI(
        title=f"insurance-mesh {agent_name} agent",
        description=f"Domain agent serving the {agent_name} actions",
        version=__version__,
    )

    app.state.settings = settings
    app.state.role = agent_name
    app.state.agent = LocalAgent(agent_name, registry)
    logger.info(f"Agent app {agent_name} serving {len(registry)} actions")

    _add_cors(app, settings)

    app.include_router(health.router)
    app.include_router(agent.router)

    return app


def serve_app() -> FastAPI:
    """Build the gateway or the agent app named by MESH_AGENT_NAME.

    Used as an import-string factory so uvicorn can re-create the app in its
    reload worker.
    """
    from insurance_mesh.dependencies import get_settings

    settings = get_settings()
    if settings.agent_name:
        return create_agent_app(settings.agent_name, settings=settings)
    return create_app(settings=settings)
