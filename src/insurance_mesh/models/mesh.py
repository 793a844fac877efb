"""Pydantic models for the gateway's mesh API.

This module defines the request and response schemas for catalog
management, single-action resolution and pipeline execution.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from insurance_mesh.mesh import AgentRecord, CatalogEntry
from insurance_mesh.models.agent import ParameterModel
from insurance_mesh.pipeline import ExecutionMode, MergeStrategy, PipelineResult
from insurance_mesh.resolver import ResolvedCall

# --- Catalog ---


class AddAgentRequest(BaseModel):
    """Request body for POST /api/v1/mesh/agents."""

    endpoint: str = Field(description="Base URL of the agent service")
    agent_id: str | None = Field(
        default=None, description="Explicit id; defaults to the name the agent reports"
    )

    model_config = ConfigDict(
        json_schema_extra={"examples": [{"endpoint": "http://127.0.0.1:7872"}]}
    )


class AgentInfo(BaseModel):
    """One registered agent and its bookkeeping."""

    agent_id: str
    endpoint: str | None = None
    available: bool
    invocations: int
    failures: int
    last_error: str | None = None
    added_at: str
    actions: list[str]

    @classmethod
    def from_record(cls, record: AgentRecord) -> "AgentInfo":
        return cls(
            agent_id=record.agent_id,
            endpoint=getattr(record.handle, "endpoint", None),
            available=record.available,
            invocations=record.invocations,
            failures=record.failures,
            last_error=record.last_error,
            added_at=record.added_at,
            actions=[d.name for d in record.descriptors],
        )


class AgentListResponse(BaseModel):
    agents: list[AgentInfo]


class CatalogActionModel(BaseModel):
    """One entry of the qualified action namespace."""

    qualified_name: str
    agent_id: str
    name: str
    description: str
    parameters: list[ParameterModel]

    @classmethod
    def from_entry(cls, entry: CatalogEntry) -> "CatalogActionModel":
        descriptor = entry.descriptor
        return cls(
            qualified_name=entry.qualified_name,
            agent_id=entry.agent_id,
            name=descriptor.name,
            description=descriptor.description,
            parameters=[ParameterModel(**p.to_dict()) for p in descriptor.parameters],
        )


class ActionListResponse(BaseModel):
    actions: list[CatalogActionModel]


# --- Resolution ---


class ResolveRequest(BaseModel):
    """Request body for POST /api/v1/mesh/resolve and /query."""

    text: str = Field(min_length=1, description="Free-form request")
    context: str | None = Field(
        default=None, description="Extra text used only to fill missing parameters"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"text": "Create a life insurance policy for John Doe with $500,000 coverage"}
            ]
        }
    )


class ResolveResponse(BaseModel):
    """A resolved call plus the resolver's score trace."""

    action: str
    arguments: dict[str, Any]
    confidence: float
    trace: list[dict[str, Any]] = Field(default_factory=list)

    @classmethod
    def from_call(cls, call: ResolvedCall) -> "ResolveResponse":
        return cls(
            action=call.action,
            arguments=call.arguments,
            confidence=round(call.confidence, 4),
            trace=[c.to_dict() for c in call.trace],
        )


class QueryResponse(BaseModel):
    """Result of a single-action request."""

    action: str
    arguments: dict[str, Any]
    confidence: float
    result: Any


# --- Pipeline ---


class PipelineRequest(BaseModel):
    """Request body for POST /api/v1/mesh/pipeline and /pipeline/stream."""

    text: str = Field(min_length=1, description="Compound request")
    mode: ExecutionMode | None = Field(
        default=None, description="Force sequential or independent execution"
    )
    merge: MergeStrategy = Field(default=MergeStrategy.CONCATENATE)

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"text": "check customer CUST-1's policies and submit a claim for $5000"}
            ]
        }
    )


class StepErrorModel(BaseModel):
    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    retryable: bool = False


class StepModel(BaseModel):
    index: int
    text: str
    action: str | None = None
    arguments: dict[str, Any] = Field(default_factory=dict)
    status: str
    result: Any = None
    error: StepErrorModel | None = None
    attempts: int = 0


class PipelineResponse(BaseModel):
    """Full pipeline outcome. Completed steps are kept on partial failure."""

    state: str
    mode: ExecutionMode
    merge: MergeStrategy
    partial_failure: bool
    cancelled: bool
    steps: list[StepModel]
    error: StepErrorModel | None = None
    merged: Any = None

    @classmethod
    def from_result(cls, result: PipelineResult) -> "PipelineResponse":
        return cls.model_validate(result.to_dict())
