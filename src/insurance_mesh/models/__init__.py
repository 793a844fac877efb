"""Pydantic models for API request and response schemas.

This package contains the models used to validate and serialize requests and
responses for the agent servers and the mesh gateway.
"""

from insurance_mesh.models.agent import (
    ActionModel,
    AgentDescriptionResponse,
    InvokeRequest,
    InvokeResponse,
    ParameterModel,
)
from insurance_mesh.models.health import HealthResponse
from insurance_mesh.models.mesh import (
    ActionListResponse,
    AddAgentRequest,
    AgentInfo,
    AgentListResponse,
    CatalogActionModel,
    PipelineRequest,
    PipelineResponse,
    QueryResponse,
    ResolveRequest,
    ResolveResponse,
)

__all__ = [
    "ActionListResponse",
    "ActionModel",
    "AddAgentRequest",
    "AgentDescriptionResponse",
    "AgentInfo",
    "AgentListResponse",
    "CatalogActionModel",
    "HealthResponse",
    "InvokeRequest",
    "InvokeResponse",
    "ParameterModel",
    "PipelineRequest",
    "PipelineResponse",
    "QueryResponse",
    "ResolveRequest",
    "ResolveResponse",
]
