"""Health check response model."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health check endpoint.

    Attributes:
        status: Health status indicator ("ok" or "degraded").
        version: The version of insurance-mesh.
        role: "gateway" or the name of the served domain agent.
        agents_available: Reachable agents in the catalog (gateway only).
        agents_total: Registered agents in the catalog (gateway only).
        ollama_connected: Ollama connectivity when the LLM scorer is enabled.
    """

    status: str = Field(..., description="Health status of the service")
    version: str = Field(..., description="Version of insurance-mesh")
    role: str = Field(..., description="gateway, or the served agent name")
    agents_available: int | None = Field(default=None, description="Reachable agents")
    agents_total: int | None = Field(default=None, description="Registered agents")
    ollama_connected: bool | None = Field(
        default=None, description="Whether Ollama is connected (LLM scorer only)"
    )
