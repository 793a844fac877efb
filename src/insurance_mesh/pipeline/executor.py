"""Mesh pipeline execution: retries, deadlines, cancellation and merging.

The pipeline drives a plan through ``planning → executing → merging`` and
ends in ``done`` or ``failed``. Sequential plans run step by step; independent
plans run concurrently, bounded by a semaphore. In both modes a step whose
dependencies did not complete is skipped.
Results are always reported in plan order.
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

from insurance_mesh.actions.types import split_qualified
from insurance_mesh.errors import (
    AgentUnreachableError,
    MeshError,
    PipelineCancelledError,
)
from insurance_mesh.mesh.catalog import AgentCatalog
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
from insurance_mesh.resolver.intent import IntentResolver

logger = logging.getLogger(__name__)

Listener = Callable[[PipelineEvent], Awaitable[None]]

DEFAULT_INVOKE_TIMEOUT = 10.0
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BACKOFF = 0.1
DEFAULT_MAX_CONCURRENCY = 4


def render_result(value: Any) -> str:
    """Render an action result as text for merging and resolver context."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return str(value)


def merge_results(steps: list[StepResult], strategy: MergeStrategy) -> Any:
    """Merge completed step results in plan order.

    Args:
        steps: Step results in plan order
        strategy: CONCATENATE for tagged text blocks, STRUCTURED for a dict

    Returns:
        str | dict: The merged output
    """
    completed = [step for step in steps if step.ok]
    if strategy == MergeStrategy.STRUCTURED:
        return {
            "steps": [
                {"index": step.index, "action": step.action, "result": step.result}
                for step in completed
            ],
            "errors": [
                {"index": step.index, "action": step.action, "error": step.error.to_dict()}
                for step in steps
                if step.error is not None
            ],
        }
    return "\n\n".join(f"[{step.action}]\n{render_result(step.result)}" for step in completed)


class MeshPipeline:
    """Plans and executes compound requests across the catalog.

    Attributes:
        catalog: The agent catalog steps are invoked through
        resolver: Resolver used for deferred steps
        planner: Planner used by run()
        invoke_timeout: Per-invoke deadline in seconds
        retry_attempts: Total attempts for AgentUnreachableError
        retry_backoff: Base delay for exponential backoff between attempts
        max_concurrency: Upper bound on concurrently running independent steps
    """

    def __init__(
        self,
        catalog: AgentCatalog,
        resolver: IntentResolver,
        planner: PipelinePlanner | None = None,
        invoke_timeout: float = DEFAULT_INVOKE_TIMEOUT,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> None:
        self.catalog = catalog
        self.resolver = resolver
        self.planner = planner or PipelinePlanner(catalog, resolver)
        self.invoke_timeout = invoke_timeout
        self.retry_attempts = max(1, retry_attempts)
        self.retry_backoff = retry_backoff
        self.max_concurrency = max(1, max_concurrency)

    async def run(
        self,
        text: str,
        mode: ExecutionMode | None = None,
        merge: MergeStrategy = MergeStrategy.CONCATENATE,
        cancel_event: asyncio.Event | None = None,
        listener: Listener | None = None,
    ) -> PipelineResult:
        """Plan and execute a compound request.

        Raises:
            MeshError: If planning fails (no fragment could be resolved)
        """
        await self._emit(listener, "state", state=PipelineState.PLANNING.value)
        try:
            plan = await self.planner.plan(text, mode=mode, merge=merge)
        except MeshError as e:
            logger.warning(f"Planning failed for {text!r}: {e.message}")
            await self._emit(listener, "state", state=PipelineState.FAILED.value, error=e.to_dict())
            raise
        return await self.execute(plan, cancel_event=cancel_event, listener=listener)

    async def execute(
        self,
        plan: PipelinePlan,
        cancel_event: asyncio.Event | None = None,
        listener: Listener | None = None,
    ) -> PipelineResult:
        """Execute a plan and merge its results.

        Args:
            plan: The plan to run
            cancel_event: Once set, no further step or retry is started
            listener: Optional coroutine receiving PipelineEvents

        Returns:
            PipelineResult: Step results in plan order plus the merged output
        """
        cancel_event = cancel_event or asyncio.Event()
        await self._emit(
            listener, "state", state=PipelineState.EXECUTING.value, plan=plan.to_dict()
        )

        results: dict[int, StepResult] = {}
        if plan.mode == ExecutionMode.SEQUENTIAL:
            await self._execute_sequential(plan, results, cancel_event, listener)
        else:
            await self._execute_independent(plan, results, cancel_event, listener)

        ordered = [results[step.index] for step in plan.steps]
        await self._emit(listener, "state", state=PipelineState.MERGING.value)
        merged = merge_results(ordered, plan.merge)

        cancelled = any(step.status == StepStatus.CANCELLED for step in ordered)
        first_error = next(
            (step.error for step in ordered if step.status == StepStatus.FAILED), None
        )
        if first_error is None and cancelled:
            first_error = StepError.from_exception(PipelineCancelledError())

        all_ok = all(step.ok for step in ordered)
        result = PipelineResult(
            state=PipelineState.DONE if all_ok else PipelineState.FAILED,
            mode=plan.mode,
            merge=plan.merge,
            steps=ordered,
            error=first_error,
            merged=merged,
            cancelled=cancelled,
        )
        logger.info(
            f"Pipeline finished: {len(result.completed)}/{len(ordered)} steps completed"
            f"{' (cancelled)' if cancelled else ''}"
        )
        await self._emit(listener, "state", state=result.state.value)
        await self._emit(listener, "done", result=result.to_dict())
        return result

    async def _execute_sequential(
        self,
        plan: PipelinePlan,
        results: dict[int, StepResult],
        cancel_event: asyncio.Event,
        listener: Listener | None,
    ) -> None:
        for step in plan.steps:
            if cancel_event.is_set():
                results[step.index] = self._not_run(step, StepStatus.CANCELLED)
            elif not self._dependencies_ok(step, results):
                results[step.index] = self._not_run(step, StepStatus.SKIPPED)
            else:
                results[step.index] = await self._run_step(plan, step, results, cancel_event, listener)
                continue
            await self._emit_step(listener, results[step.index])

    async def _execute_independent(
        self,
        plan: PipelinePlan,
        results: dict[int, StepResult],
        cancel_event: asyncio.Event,
        listener: Listener | None,
    ) -> None:
        semaphore = asyncio.Semaphore(self.max_concurrency)
        finished = {step.index: asyncio.Event() for step in plan.steps}

        async def worker(step: PlanStep) -> None:
            try:
                for dependency in step.depends_on:
                    await finished[dependency].wait()
                if not self._dependencies_ok(step, results):
                    results[step.index] = self._not_run(step, StepStatus.SKIPPED)
                    await self._emit_step(listener, results[step.index])
                    return
                async with semaphore:
                    if cancel_event.is_set():
                        results[step.index] = self._not_run(step, StepStatus.CANCELLED)
                        await self._emit_step(listener, results[step.index])
                        return
                    results[step.index] = await self._run_step(
                        plan, step, results, cancel_event, listener
                    )
            finally:
                finished[step.index].set()

        await asyncio.gather(*(worker(step) for step in plan.steps))

    async def _run_step(
        self,
        plan: PipelinePlan,
        step: PlanStep,
        results: dict[int, StepResult],
        cancel_event: asyncio.Event,
        listener: Listener | None,
    ) -> StepResult:
        result = StepResult(index=step.index, text=step.text, status=StepStatus.FAILED)
        await self._emit(listener, "step_started", index=step.index, text=step.text)

        try:
            if step.resolution_error is not None:
                raise step.resolution_error
            call = step.call
            if call is None:
                context = self._dependency_context(plan, step, results)
                call = await self.resolver.resolve(step.text, context=context or None)
            result.action = call.action
            result.arguments = call.arguments

            def count_attempt(attempt: int) -> None:
                result.attempts = attempt

            result.result = await self.invoke(
                call.action, call.arguments, cancel_event=cancel_event, on_attempt=count_attempt
            )
            result.status = StepStatus.COMPLETED
        except PipelineCancelledError as e:
            result.status = StepStatus.CANCELLED
            result.error = StepError.from_exception(e)
        except MeshError as e:
            logger.warning(f"Step {step.index} ({step.text!r}) failed: {e.message}")
            result.error = StepError.from_exception(e)

        await self._emit_step(listener, result)
        return result

    async def invoke(
        self,
        action: str,
        arguments: dict[str, Any],
        cancel_event: asyncio.Event | None = None,
        on_attempt: Callable[[int], None] | None = None,
    ) -> Any:
        """Invoke a qualified action with deadline and retry.

        Only AgentUnreachableError is retried, with exponential backoff.
        When the retry budget is exhausted the agent is marked unavailable.

        Raises:
            AgentUnreachableError: When every attempt failed to reach the agent
            PipelineCancelledError: When cancelled between attempts
            MeshError: Semantic errors from the agent, never retried
        """
        agent_id, _ = split_qualified(action)
        attempt = 0
        while True:
            attempt += 1
            if on_attempt is not None:
                on_attempt(attempt)
            logger.debug(f"Invoking {action} (attempt {attempt}/{self.retry_attempts})")
            try:
                return await asyncio.wait_for(
                    self.catalog.invoke(action, arguments), timeout=self.invoke_timeout
                )
            except asyncio.TimeoutError:
                error = AgentUnreachableError(
                    agent_id or action, f"no response within {self.invoke_timeout}s"
                )
            except AgentUnreachableError as e:
                error = e

            if not self.catalog.has_agent(error.agent_id):
                raise error
            if attempt >= self.retry_attempts:
                self.catalog.mark_unavailable(error.agent_id, error.reason)
                raise error
            if cancel_event is not None and cancel_event.is_set():
                raise PipelineCancelledError("Cancelled while retrying an unreachable agent") from error

            delay = self.retry_backoff * (2 ** (attempt - 1))
            logger.warning(
                f"{action} unreachable ({error.reason}), retrying in {delay:.2f}s "
                f"(attempt {attempt}/{self.retry_attempts})"
            )
            await asyncio.sleep(delay)

    def _dependency_context(
        self, plan: PipelinePlan, step: PlanStep, results: dict[int, StepResult]
    ) -> str:
        parts = [plan.context] if plan.context else []
        for dependency in step.depends_on:
            previous = results.get(dependency)
            if previous is not None and previous.ok:
                parts.append(render_result(previous.result))
        return "\n".join(parts)

    @staticmethod
    def _dependencies_ok(step: PlanStep, results: dict[int, StepResult]) -> bool:
        return all(
            dependency in results and results[dependency].ok for dependency in step.depends_on
        )

    @staticmethod
    def _not_run(step: PlanStep, status: StepStatus) -> StepResult:
        return StepResult(
            index=step.index,
            text=step.text,
            status=status,
            action=step.call.action if step.call else None,
            arguments=step.call.arguments if step.call else {},
        )

    async def _emit_step(self, listener: Listener | None, result: StepResult) -> None:
        event = "step_completed" if result.ok else "step_failed"
        await self._emit(listener, event, **result.to_dict())

    @staticmethod
    async def _emit(listener: Listener | None, event_type: str, **data: Any) -> None:
        if listener is not None:
            await listener(PipelineEvent(type=event_type, data=data))
