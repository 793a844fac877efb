"""Plan, step and result types for the mesh pipeline."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from insurance_mesh.errors import MeshError, PartialFailureError
from insurance_mesh.resolver.types import ResolvedCall


class ExecutionMode(str, Enum):
    SEQUENTIAL = "sequential"
    INDEPENDENT = "independent"


class MergeStrategy(str, Enum):
    CONCATENATE = "concatenate"
    STRUCTURED = "structured"


class PipelineState(str, Enum):
    PLANNING = "planning"
    EXECUTING = "executing"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


class StepStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass
class PlanStep:
    """One sub-intent of a compound request.

    A step with ``call=None`` and no ``resolution_error`` is deferred: it is
    resolved at execution time with earlier results as context.
    """

    index: int
    text: str
    call: ResolvedCall | None = None
    depends_on: tuple[int, ...] = ()
    resolution_error: MeshError | None = None

    @property
    def deferred(self) -> bool:
        return self.call is None and self.resolution_error is None


@dataclass
class PipelinePlan:
    """An ordered, per-request execution plan. Never cached."""

    text: str
    steps: list[PlanStep]
    mode: ExecutionMode
    merge: MergeStrategy = MergeStrategy.CONCATENATE
    context: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "merge": self.merge.value,
            "context": self.context,
            "steps": [
                {
                    "index": step.index,
                    "text": step.text,
                    "action": step.call.action if step.call else None,
                    "arguments": step.call.arguments if step.call else {},
                    "depends_on": list(step.depends_on),
                    "error": step.resolution_error.to_dict() if step.resolution_error else None,
                }
                for step in self.steps
            ],
        }


@dataclass
class StepError:
    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    retryable: bool = False

    @classmethod
    def from_exception(cls, error: MeshError) -> "StepError":
        return cls(
            code=error.code,
            message=error.message,
            details=error.details,
            retryable=error.retryable,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


@dataclass
class StepResult:
    """Outcome of one plan step."""

    index: int
    text: str
    status: StepStatus
    action: str | None = None
    arguments: dict[str, Any] = field(default_factory=dict)
    result: Any = None
    error: StepError | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "text": self.text,
            "action": self.action,
            "arguments": self.arguments,
            "status": self.status.value,
            "result": self.result,
            "error": self.error.to_dict() if self.error else None,
            "attempts": self.attempts,
        }


@dataclass
class PipelineResult:
    """Final outcome of a pipeline run.

    Completed results are always kept, even when later steps fail or the
    run is cancelled.

    Attributes:
        state: DONE or FAILED
        mode: The execution mode the plan ran with
        merge: The merge strategy used for ``merged``
        steps: Step results in plan order
        error: The first hard failure by plan order, if any
        merged: Merged output of completed steps
        cancelled: True if the run was cancelled before all steps started
    """

    state: PipelineState
    mode: ExecutionMode
    merge: MergeStrategy
    steps: list[StepResult]
    error: StepError | None = None
    merged: Any = None
    cancelled: bool = False

    @property
    def completed(self) -> list[StepResult]:
        return [step for step in self.steps if step.ok]

    @property
    def partial_failure(self) -> bool:
        return self.cancelled or any(not step.ok for step in self.steps)

    def raise_for_status(self) -> "PipelineResult":
        """Raise PartialFailureError unless every step completed."""
        if self.partial_failure:
            raise PartialFailureError(self)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "mode": self.mode.value,
            "merge": self.merge.value,
            "partial_failure": self.partial_failure,
            "cancelled": self.cancelled,
            "steps": [step.to_dict() for step in self.steps],
            "error": self.error.to_dict() if self.error else None,
            "merged": self.merged,
        }


@dataclass
class PipelineEvent:
    """Progress notification sent to a pipeline listener.

    ``type`` is one of ``state``, ``step_started``, ``step_completed``,
    ``step_failed`` or ``done``.
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)
