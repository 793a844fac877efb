"""Mesh pipeline: planning, executing and merging compound requests."""

from insurance_mesh.pipeline.executor import MeshPipeline, merge_results, render_result
from insurance_mesh.pipeline.planner import PipelinePlanner
from insurance_mesh.pipeline.types import (
    ExecutionMode,
    MergeStrategy,
    PipelineEvent,
    PipelinePlan,
    PipelineResult,
    PipelineState,
    PlanStep,
    StepError,
    StepResult,
    StepStatus,
)

__all__ = [
    "ExecutionMode",
    "MergeStrategy",
    "MeshPipeline",
    "PipelineEvent",
    "PipelinePlan",
    "PipelinePlanner",
    "PipelineResult",
    "PipelineState",
    "PlanStep",
    "StepError",
    "StepResult",
    "StepStatus",
    "merge_results",
    "render_result",
]
