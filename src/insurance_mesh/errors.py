"""Exception hierarchy for insurance-mesh.

Every error carries a stable ``code`` and a ``details`` dict so the HTTP
layer can render it as ``{"error": {"code", "message", "details"}}`` and a
caller can act on it (e.g. re-prompt for missing parameters).
"""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from insurance_mesh.pipeline.types import PipelineResult
    from insurance_mesh.resolver.types import CandidateScore


class MeshError(Exception):
    """Base exception for all mesh errors."""

    code = "mesh_error"
    retryable = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


# --- Registry errors ---


class DuplicateActionError(MeshError):
    """An action with the same name is already registered."""

    code = "duplicate_action"

    def __init__(self, name: str) -> None:
        super().__init__(f"Action '{name}' is already registered", {"action": name})
        self.name = name


class UnknownActionError(MeshError):
    """No action with the given name is registered."""

    code = "unknown_action"

    def __init__(self, name: str) -> None:
        super().__init__(f"Action '{name}' not found", {"action": name})
        self.name = name


class ArgumentError(MeshError):
    """A required argument is missing or failed type coercion."""

    code = "argument_error"

    def __init__(
        self, message: str, action: str | None = None, parameter: str | None = None
    ) -> None:
        super().__init__(message, {"action": action, "parameter": parameter})
        self.action = action
        self.parameter = parameter


class ActionFailedError(MeshError):
    """The action handler raised an unexpected error."""

    code = "action_failed"


# --- Agent errors ---


class AgentUnreachableError(MeshError):
    """The agent could not be reached (connection refused, timeout, removed)."""

    code = "agent_unreachable"
    retryable = True

    def __init__(self, agent_id: str, reason: str) -> None:
        super().__init__(
            f"Agent '{agent_id}' is unreachable: {reason}",
            {"agent_id": agent_id, "reason": reason},
        )
        self.agent_id = agent_id
        self.reason = reason


class DuplicateAgentError(MeshError):
    """An agent with the same id is already in the catalog."""

    code = "duplicate_agent"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent '{agent_id}' is already registered", {"agent_id": agent_id})
        self.agent_id = agent_id


class UnknownAgentError(MeshError):
    """No agent with the given id is in the catalog."""

    code = "unknown_agent"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent '{agent_id}' not found", {"agent_id": agent_id})
        self.agent_id = agent_id


# --- Resolution errors ---


class AmbiguousActionError(MeshError):
    """A bare action name is exposed by more than one agent."""

    code = "ambiguous_action"

    def __init__(self, name: str, matches: list[str]) -> None:
        super().__init__(
            f"Action '{name}' is ambiguous, qualify it with one of: {', '.join(matches)}",
            {"action": name, "matches": matches},
        )
        self.name = name
        self.matches = matches


class NoMatchingActionError(MeshError):
    """No candidate action cleared the confidence threshold."""

    code = "no_matching_action"

    def __init__(self, text: str, trace: "list[CandidateScore] | None" = None) -> None:
        trace = trace or []
        best = max((c.confidence for c in trace), default=0.0)
        super().__init__(
            f"No action matches the request: {text!r}",
            {"text": text, "best_confidence": round(best, 4), "candidates": len(trace)},
        )
        self.text = text
        self.trace = trace


class IncompleteArgumentsError(MeshError):
    """The best-matching action is missing required parameters."""

    code = "incomplete_arguments"

    def __init__(
        self,
        action: str,
        missing: list[str],
        arguments: dict[str, Any] | None = None,
        confidence: float = 0.0,
    ) -> None:
        super().__init__(
            f"Action '{action}' is missing required parameters: {', '.join(missing)}",
            {"action": action, "missing": missing, "arguments": arguments or {}},
        )
        self.action = action
        self.missing = missing
        self.arguments = arguments or {}
        self.confidence = confidence


# --- Pipeline errors ---


class PipelineCancelledError(MeshError):
    """The pipeline run was cancelled before all steps ran."""

    code = "cancelled"

    def __init__(self, message: str = "Pipeline run was cancelled") -> None:
        super().__init__(message)


class PartialFailureError(MeshError):
    """A pipeline run did not complete every step."""

    code = "partial_failure"

    def __init__(self, result: "PipelineResult") -> None:
        first = result.error
        reason = first.message if first else "unknown failure"
        super().__init__(
            f"Pipeline completed {len(result.completed)} of {len(result.steps)} steps: {reason}",
            {"completed": len(result.completed), "steps": len(result.steps)},
        )
        self.result = result
