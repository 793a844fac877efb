"""Configuration module for insurance-mesh using pydantic-settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_endpoints() -> list[str]:
    return [
        "http://127.0.0.1:7871",
        "http://127.0.0.1:7872",
        "http://127.0.0.1:7873",
        "http://127.0.0.1:7874",
    ]


class MeshSettings(BaseSettings):
    """Configuration shared by the gateway and the domain agent servers.

    All settings can be overridden via environment variables with the MESH_
    prefix. For example, MESH_MIN_CONFIDENCE=0.4 raises the resolver
    threshold, and MESH_AGENT_ENDPOINTS='["http://claims:7872"]' replaces
    the gateway's bootstrap agents.
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Domain agent served by this process (agent servers only)
    agent_name: str | None = None

    # Gateway bootstrap
    agent_endpoints: list[str] = Field(default_factory=_default_endpoints)

    # Invocation
    invoke_timeout: float = 10.0
    retry_attempts: int = 3
    retry_backoff: float = 0.1
    max_concurrency: int = 4
    describe_ttl: float | None = None

    # Run the four domain registries in-process inside the gateway
    embedded_agents: bool = False

    # Resolution
    min_confidence: float = 0.25
    scorer: Literal["keyword", "ollama"] = "keyword"

    # Ollama
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2:latest"

    # CORS
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="MESH_")
