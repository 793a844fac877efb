"""Pydantic models for the domain agent wire protocol.

These schemas are what HttpAgent speaks: a describe call returning the agent
name and its descriptors, and an invoke call carrying named arguments.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from insurance_mesh.actions import ActionDescriptor, ParameterKind


class ParameterModel(BaseModel):
    """Wire form of a ParameterSpec."""

    name: str = Field(description="Parameter name")
    kind: ParameterKind = Field(default=ParameterKind.STRING, description="Value kind")
    required: bool = Field(default=True, description="Whether the parameter is required")


class ActionModel(BaseModel):
    """Wire form of an ActionDescriptor."""

    name: str = Field(description="Action name, unique within the agent")
    description: str = Field(description="Human-readable description")
    parameters: list[ParameterModel] = Field(default_factory=list)

    @classmethod
    def from_descriptor(cls, descriptor: ActionDescriptor) -> "ActionModel":
        return cls.model_validate(descriptor.to_dict())


class AgentDescriptionResponse(BaseModel):
    """Response body for GET /api/v1/agent."""

    agent: str = Field(description="Agent name")
    actions: list[ActionModel] = Field(description="Descriptors in registration order")


class InvokeRequest(BaseModel):
    """Request body for POST /api/v1/actions/{name}/invoke."""

    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Named arguments, coerced by the registry"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "arguments": {
                        "policy_type": "life",
                        "customer_name": "John Doe",
                        "coverage_amount": 500000,
                    }
                }
            ]
        }
    )


class InvokeResponse(BaseModel):
    """Response body for a successful invocation."""

    agent: str = Field(description="Agent that ran the action")
    action: str = Field(description="Action name")
    result: Any = Field(description="Handler result, unmodified")
