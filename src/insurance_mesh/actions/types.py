"""Type definitions for action descriptors.

This module contains the static metadata a service publishes for each of its
operations: the action name, a human description, and the ordered parameter
schema.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

QUALIFIER = "."


class ParameterKind(str, Enum):
    """Value kinds a parameter can declare."""

    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class ParameterSpec:
    """A single parameter in an action's schema.

    Attributes:
        name: Parameter name, unique within the action
        kind: The value kind the registry coerces to
        required: Whether the action can run without this parameter
    """

    name: str
    kind: ParameterKind = ParameterKind.STRING
    required: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "kind": self.kind.value, "required": self.required}

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ParameterSpec":
        return ParameterSpec(
            name=data["name"],
            kind=ParameterKind(data.get("kind", ParameterKind.STRING.value)),
            required=bool(data.get("required", True)),
        )


@dataclass(frozen=True)
class ActionDescriptor:
    """Static metadata describing one invocable action.

    Descriptors are immutable once created. The name must be unique within the
    owning registry and must not contain the qualification separator, since
    the catalog addresses actions as ``agent_id.action_name``.

    Attributes:
        name: Action name (e.g. "createPolicy")
        description: Human-readable description used for intent matching
        parameters: Ordered parameter schema; handlers receive arguments
                    positionally in this order
    """

    name: str
    description: str
    parameters: tuple[ParameterSpec, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Action name must not be empty")
        if QUALIFIER in self.name:
            raise ValueError(f"Action name must not contain '{QUALIFIER}': {self.name}")
        # Accept lists from callers but store a tuple so the descriptor stays hashable
        object.__setattr__(self, "parameters", tuple(self.parameters))
        names = [p.name for p in self.parameters]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate parameter names in action {self.name}: {names}")

    @property
    def required_parameters(self) -> tuple[ParameterSpec, ...]:
        return tuple(p for p in self.parameters if p.required)

    def parameter(self, name: str) -> ParameterSpec | None:
        for spec in self.parameters:
            if spec.name == name:
                return spec
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ActionDescriptor":
        """Create a descriptor from its wire representation.

        Args:
            data: Dict with name, description and a list of parameter dicts

        Returns:
            ActionDescriptor: The parsed descriptor
        """
        return ActionDescriptor(
            name=data["name"],
            description=data.get("description", ""),
            parameters=tuple(
                ParameterSpec.from_dict(p) for p in data.get("parameters", [])
            ),
        )


def qualify(agent_id: str, action_name: str) -> str:
    """Build the catalog-wide name for an action."""
    return f"{agent_id}{QUALIFIER}{action_name}"


def split_qualified(name: str) -> tuple[str | None, str]:
    """Split ``agent.action`` into its parts; bare names return ``(None, name)``."""
    if QUALIFIER in name:
        agent_id, _, action_name = name.rpartition(QUALIFIER)
        return agent_id, action_name
    return None, name
