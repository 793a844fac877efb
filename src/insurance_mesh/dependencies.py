"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions used across routers to
inject settings, the mesh service and the agent registry from app state.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from insurance_mesh.agents import LocalAgent
from insurance_mesh.config import MeshSettings
from insurance_mesh.services import MeshService


@lru_cache
def get_settings() -> MeshSettings:
    """Get the application settings instance.

    Cached so the same settings instance is reused across requests. Settings
    are loaded from environment variables with the MESH_ prefix.

    Returns:
        MeshSettings: The application configuration settings.
    """
    return MeshSettings()


def get_mesh_service(request: Request) -> MeshService:
    """Get the MeshService created during gateway startup.

    Raises:
        HTTPException: If the mesh service is not initialized (503).
    """
    if not hasattr(request.app.state, "mesh"):
        raise HTTPException(
            status_code=503,
            detail={
                "error": {
                    "code": "not_ready",
                    "message": "Mesh service not initialized",
                    "details": {},
                }
            },
        )
    return request.app.state.mesh


def get_local_agent(request: Request) -> LocalAgent:
    """Get the LocalAgent wrapping the registry served by a domain agent app."""
    return request.app.state.agent
