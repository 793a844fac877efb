"""Unit tests for MeshPipeline execution, retries and merging."""

import asyncio

import pytest
import pytest_asyncio

from insurance_mesh.actions import ActionDescriptor, ActionRegistry, ParameterSpec
from insurance_mesh.agents import LocalAgent
from insurance_mesh.errors import AgentUnreachableError, PartialFailureError
from insurance_mesh.mesh import AgentCatalog
from insurance_mesh.pipeline import (
    ExecutionMode,
    MergeStrategy,
    MeshPipeline,
    PipelinePlan,
    PipelineState,
    PlanStep,
    StepResult,
    StepStatus,
    merge_results,
)
from insurance_mesh.resolver import IntentResolver, ResolvedCall


class ScriptedAgent:
    """Agent handle whose actions are coroutines supplied by the test."""

    def __init__(self, agent_id, actions):
        self._agent_id = agent_id
        self.actions = actions
        self.calls = []

    @property
    def agent_id(self):
        return self._agent_id

    async def describe(self, refresh=False):
        return tuple(ActionDescriptor(name, f"Scripted {name}") for name in self.actions)

    async def invoke(self, action, arguments):
        self.calls.append(action)
        return await self.actions[action](arguments)

    def invalidate(self):
        pass

    async def close(self):
        pass


def _jobs_registry():
    registry = ActionRegistry()

    def fail():
        raise RuntimeError("beta exploded")

    registry.register(ActionDescriptor("runAlpha", "Run the alpha job"), lambda: "alpha done")
    registry.register(ActionDescriptor("runBeta", "Run the beta job"), fail)
    registry.register(ActionDescriptor("runGamma", "Run the gamma job"), lambda: "gamma done")
    registry.register(
        ActionDescriptor("createToken", "Create an access token"), lambda: "token: TKN-77"
    )
    registry.register(
        ActionDescriptor("redeemToken", "Redeem an access token", (ParameterSpec("token"),)),
        lambda token: f"redeemed {token}",
    )
    return registry


@pytest_asyncio.fixture
async def jobs_catalog():
    catalog = AgentCatalog()
    await catalog.add_agent(LocalAgent("jobs", _jobs_registry()))
    return catalog


def _pipeline(catalog, **kwargs):
    kwargs.setdefault("retry_backoff", 0.0)
    return MeshPipeline(catalog, IntentResolver(catalog), **kwargs)


def _plan(mode, *actions):
    steps = [
        PlanStep(index=i, text=action, call=ResolvedCall(action=action, arguments={}, confidence=1.0))
        for i, action in enumerate(actions)
    ]
    return PipelinePlan(text=" and ".join(actions), steps=steps, mode=mode)


@pytest.mark.asyncio
async def test_sequential_step_uses_previous_result(jobs_catalog):
    """Test that a deferred step is resolved with the previous step's output."""
    result = await _pipeline(jobs_catalog).run("create a token then redeem the token")

    assert result.mode == ExecutionMode.SEQUENTIAL
    assert result.state == PipelineState.DONE
    assert [step.action for step in result.steps] == ["jobs.createToken", "jobs.redeemToken"]
    assert result.steps[1].arguments == {"token": "TKN-77"}
    assert result.steps[1].result == "redeemed TKN-77"
    assert result.merged == (
        "[jobs.createToken]\ntoken: TKN-77\n\n[jobs.redeemToken]\nredeemed TKN-77"
    )
    assert result.raise_for_status() is result


@pytest.mark.asyncio
async def test_independent_failure_keeps_other_results(jobs_catalog):
    """Test that a failing middle step leaves the others completed and in order."""
    result = await _pipeline(jobs_catalog).run("run alpha, run beta, run gamma")

    assert result.mode == ExecutionMode.INDEPENDENT
    assert [step.status for step in result.steps] == [
        StepStatus.COMPLETED,
        StepStatus.FAILED,
        StepStatus.COMPLETED,
    ]
    assert result.state == PipelineState.FAILED
    assert result.partial_failure
    assert result.error.code == "action_failed"
    assert result.steps[1].attempts == 1
    assert result.merged == "[jobs.runAlpha]\nalpha done\n\n[jobs.runGamma]\ngamma done"

    with pytest.raises(PartialFailureError) as exc_info:
        result.raise_for_status()
    assert exc_info.value.result is result
    assert [s.result for s in exc_info.value.result.completed] == ["alpha done", "gamma done"]


@pytest.mark.asyncio
async def test_sequential_failure_skips_remaining_steps(jobs_catalog):
    """Test that a "then" chain skips the steps after a failure."""
    result = await _pipeline(jobs_catalog).run("run alpha then run beta then run gamma")

    assert [step.status for step in result.steps] == [
        StepStatus.COMPLETED,
        StepStatus.FAILED,
        StepStatus.SKIPPED,
    ]
    assert result.steps[2].action == "jobs.runGamma"
    assert result.steps[2].result is None


@pytest.mark.asyncio
async def test_unresolved_fragment_does_not_skip_independent_step(catalog):
    """Test that a fragment failing to resolve only fails its own step."""
    result = await _pipeline(catalog).run(
        "For customer CUST-12345, check their active policies, "
        "assess if they need additional coverage, and show any pending claims"
    )

    assert result.mode == ExecutionMode.SEQUENTIAL
    assert [step.status for step in result.steps] == [
        StepStatus.COMPLETED,
        StepStatus.FAILED,
        StepStatus.COMPLETED,
    ]
    assert result.steps[1].error.code == "no_matching_action"
    assert result.steps[2].action == "claims.getClaimsSummary"
    assert result.partial_failure


@pytest.mark.asyncio
async def test_structured_merge(jobs_catalog):
    """Test the structured merge keeps results and errors separately."""
    result = await _pipeline(jobs_catalog).run(
        "run alpha, run beta", merge=MergeStrategy.STRUCTURED
    )

    assert result.merged["steps"] == [{"index": 0, "action": "jobs.runAlpha", "result": "alpha done"}]
    assert result.merged["errors"][0]["index"] == 1
    assert result.merged["errors"][0]["error"]["code"] == "action_failed"


@pytest.mark.asyncio
async def test_cancellation_stops_further_steps(jobs_catalog):
    """Test that setting the cancel event prevents remaining steps from starting."""
    cancel_event = asyncio.Event()
    events = []

    async def listener(event):
        events.append(event)
        if event.type == "step_completed" and event.data["index"] == 0:
            cancel_event.set()

    plan = _plan(ExecutionMode.SEQUENTIAL, "jobs.runAlpha", "jobs.runGamma", "jobs.createToken")
    result = await _pipeline(jobs_catalog).execute(plan, cancel_event=cancel_event, listener=listener)

    assert [step.status for step in result.steps] == [
        StepStatus.COMPLETED,
        StepStatus.CANCELLED,
        StepStatus.CANCELLED,
    ]
    assert result.cancelled
    assert result.error.code == "cancelled"
    assert result.steps[0].result == "alpha done"
    assert events[-1].type == "done"
    assert events[-1].data["result"]["cancelled"] is True


@pytest.mark.asyncio
async def test_unreachable_agent_is_retried_then_succeeds():
    """Test that transport failures are retried with backoff."""
    failures = {"left": 2}

    async def flaky(arguments):
        if failures["left"]:
            failures["left"] -= 1
            raise AgentUnreachableError("edge", "connection reset")
        return "ok"

    catalog = AgentCatalog()
    await catalog.add_agent(ScriptedAgent("edge", {"ping": flaky}))

    result = await _pipeline(catalog, retry_attempts=3).execute(
        _plan(ExecutionMode.INDEPENDENT, "edge.ping")
    )

    assert result.steps[0].status == StepStatus.COMPLETED
    assert result.steps[0].attempts == 3
    assert catalog.is_available("edge")


@pytest.mark.asyncio
async def test_exhausted_retries_mark_agent_unavailable():
    """Test that an agent failing every attempt is marked unavailable."""
    async def down(arguments):
        raise AgentUnreachableError("edge", "connection refused")

    agent = ScriptedAgent("edge", {"ping": down})
    catalog = AgentCatalog()
    await catalog.add_agent(agent)

    result = await _pipeline(catalog, retry_attempts=2).execute(
        _plan(ExecutionMode.INDEPENDENT, "edge.ping")
    )

    step = result.steps[0]
    assert step.status == StepStatus.FAILED
    assert step.error.code == "agent_unreachable"
    assert step.error.retryable
    assert step.attempts == 2
    assert agent.calls == ["ping", "ping"]
    assert not catalog.is_available("edge")


@pytest.mark.asyncio
async def test_invoke_timeout_is_unreachable():
    """Test that a hung agent fails with AgentUnreachableError after the deadline."""
    async def hang(arguments):
        await asyncio.sleep(5)

    catalog = AgentCatalog()
    await catalog.add_agent(ScriptedAgent("slow", {"ping": hang}))
    pipeline = _pipeline(catalog, invoke_timeout=0.05, retry_attempts=1)

    with pytest.raises(AgentUnreachableError) as exc_info:
        await pipeline.invoke("slow.ping", {})

    assert "0.05" in exc_info.value.reason
    assert not catalog.is_available("slow")


@pytest.mark.asyncio
async def test_agent_removed_after_planning(jobs_catalog):
    """Test that a step bound to a removed agent fails without affecting others."""
    async def report(arguments):
        return "report ready"

    await jobs_catalog.add_agent(ScriptedAgent("reports", {"build": report}))
    plan = _plan(ExecutionMode.INDEPENDENT, "jobs.runAlpha", "reports.build")
    await jobs_catalog.remove_agent("reports")

    result = await _pipeline(jobs_catalog).execute(plan)

    assert result.steps[0].status == StepStatus.COMPLETED
    assert result.steps[1].status == StepStatus.FAILED
    assert result.steps[1].error.code == "agent_unreachable"
    assert result.steps[1].attempts == 1
    assert jobs_catalog.resolve_name("runAlpha").qualified_name == "jobs.runAlpha"


@pytest.mark.asyncio
async def test_independent_steps_respect_concurrency_limit():
    """Test that no more than max_concurrency steps run at once."""
    active = {"now": 0, "peak": 0}

    async def work(arguments):
        active["now"] += 1
        active["peak"] = max(active["peak"], active["now"])
        await asyncio.sleep(0.01)
        active["now"] -= 1
        return "done"

    catalog = AgentCatalog()
    await catalog.add_agent(ScriptedAgent("pool", {f"task{i}": work for i in range(5)}))
    plan = _plan(ExecutionMode.INDEPENDENT, *(f"pool.task{i}" for i in range(5)))

    result = await _pipeline(catalog, max_concurrency=2).execute(plan)

    assert all(step.ok for step in result.steps)
    assert active["peak"] == 2


@pytest.mark.asyncio
async def test_listener_receives_state_transitions(jobs_catalog):
    """Test the event stream for a successful run."""
    events = []

    async def listener(event):
        events.append(event)

    await _pipeline(jobs_catalog).run("run alpha", listener=listener)

    states = [e.data["state"] for e in events if e.type == "state"]
    assert states == ["planning", "executing", "merging", "done"]
    assert [e.type for e in events if e.type.startswith("step_")] == [
        "step_started",
        "step_completed",
    ]


def test_merge_results_renders_non_text_results():
    """Test that dict results are rendered as JSON when concatenated."""
    steps = [
        StepResult(
            index=0, text="x", status=StepStatus.COMPLETED, action="a.x", result={"total": 3}
        ),
        StepResult(index=1, text="y", status=StepStatus.SKIPPED, action="a.y"),
    ]

    assert merge_results(steps, MergeStrategy.CONCATENATE) == '[a.x]\n{"total": 3}'
