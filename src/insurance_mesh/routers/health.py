"""Health check endpoint router."""

import logging

from fastapi import APIRouter, Request

from insurance_mesh import __version__
from insurance_mesh.models.health import HealthResponse
from insurance_mesh.ollama import OllamaClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint.

    On the gateway, reports catalog availability and, when the LLM scorer is
    enabled, Ollama connectivity. The status is "degraded" when any
    registered agent is unavailable.

    Args:
        request: The FastAPI request object.

    Returns:
        HealthResponse: Health status and version information.
    """
    state = request.app.state
    response = HealthResponse(status="ok", version=__version__, role=state.role)

    if hasattr(state, "mesh"):
        agents = state.mesh.list_agents()
        response.agents_total = len(agents)
        response.agents_available = sum(1 for record in agents if record.available)
        if response.agents_available < response.agents_total:
            response.status = "degraded"

    if getattr(state, "ollama_client", None) is not None:
        ollama_client: OllamaClient = state.ollama_client
        response.ollama_connected = await ollama_client.check_connection()
        logger.debug(f"Ollama connectivity check: {response.ollama_connected}")

    return response
