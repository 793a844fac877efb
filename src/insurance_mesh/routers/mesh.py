"""Mesh gateway endpoints.

This module provides catalog management, single-action resolution and
invocation, and pipeline execution, including an SSE stream of pipeline
progress events.
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sse_starlette.sse import EventSourceResponse

from insurance_mesh.dependencies import get_mesh_service
from insurance_mesh.errors import MeshError
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
from insurance_mesh.pipeline import PipelineEvent
from insurance_mesh.routers.errors import to_http_exception
from insurance_mesh.services import MeshService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/mesh", tags=["mesh"])

_DISCONNECT_POLL_SECONDS = 0.5
_CANCEL_GRACE_SECONDS = 5.0


# --- Catalog management ---


@router.get("/agents", response_model=AgentListResponse)
async def list_agents(mesh: MeshService = Depends(get_mesh_service)) -> AgentListResponse:
    """List registered agents with their availability and counters."""
    return AgentListResponse(agents=[AgentInfo.from_record(r) for r in mesh.list_agents()])


@router.post("/agents", response_model=AgentInfo, status_code=status.HTTP_201_CREATED)
async def add_agent(
    request_body: AddAgentRequest,
    mesh: MeshService = Depends(get_mesh_service),
) -> AgentInfo:
    """Register an agent by endpoint URL.

    Raises:
        HTTPException: 502 if the agent cannot be reached, 409 if its id is
                       already registered
    """
    try:
        record = await mesh.add_agent(request_body.endpoint, agent_id=request_body.agent_id)
    except MeshError as e:
        raise to_http_exception(e) from e
    return AgentInfo.from_record(record)


@router.delete("/agents/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_agent(agent_id: str, mesh: MeshService = Depends(get_mesh_service)) -> Response:
    """Remove an agent and every action it contributed."""
    try:
        await mesh.remove_agent(agent_id)
    except MeshError as e:
        raise to_http_exception(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/agents/{agent_id}/refresh", response_model=AgentInfo)
async def refresh_agent(agent_id: str, mesh: MeshService = Depends(get_mesh_service)) -> AgentInfo:
    """Re-pull an agent's descriptors and mark it available again."""
    try:
        record = await mesh.refresh_agent(agent_id)
    except MeshError as e:
        raise to_http_exception(e) from e
    return AgentInfo.from_record(record)


@router.get("/actions", response_model=ActionListResponse)
async def list_actions(mesh: MeshService = Depends(get_mesh_service)) -> ActionListResponse:
    """List every qualified action in agent then registration order."""
    return ActionListResponse(
        actions=[CatalogActionModel.from_entry(e) for e in mesh.list_actions()]
    )


# --- Single-action mode ---


@router.post("/resolve", response_model=ResolveResponse)
async def resolve(
    request_body: ResolveRequest,
    mesh: MeshService = Depends(get_mesh_service),
) -> ResolveResponse:
    """Resolve text to one action call without invoking it.

    Raises:
        HTTPException: 422 when nothing matches or arguments are missing,
                       409 when a named action is ambiguous
    """
    try:
        call = await mesh.resolve(request_body.text, context=request_body.context)
    except MeshError as e:
        raise to_http_exception(e) from e
    return ResolveResponse.from_call(call)


@router.post("/query", response_model=QueryResponse)
async def query(
    request_body: ResolveRequest,
    mesh: MeshService = Depends(get_mesh_service),
) -> QueryResponse:
    """Resolve text to one action and invoke it."""
    try:
        outcome = await mesh.resolve_and_invoke(request_body.text, context=request_body.context)
    except MeshError as e:
        raise to_http_exception(e) from e
    return QueryResponse(
        action=outcome.call.action,
        arguments=outcome.call.arguments,
        confidence=round(outcome.call.confidence, 4),
        result=outcome.result,
    )


# --- Pipeline mode ---


@router.post("/pipeline", response_model=PipelineResponse)
async def run_pipeline(
    request_body: PipelineRequest,
    mesh: MeshService = Depends(get_mesh_service),
) -> PipelineResponse:
    """Plan and run a compound request.

    Partial failures are returned with status 200 and ``partial_failure``
    set, so completed results are never lost. Only a request that cannot be
    planned at all is an error.
    """
    try:
        result = await mesh.run_pipeline(
            request_body.text, mode=request_body.mode, merge=request_body.merge
        )
    except MeshError as e:
        raise to_http_exception(e) from e
    return PipelineResponse.from_result(result)


@router.post("/pipeline/stream")
async def run_pipeline_stream(
    request_body: PipelineRequest,
    request: Request,
    mesh: MeshService = Depends(get_mesh_service),
) -> EventSourceResponse:
    """Run a compound request and stream its progress via SSE.

    SSE Event Types:
        - state: Pipeline state transitions (planning, executing, ...)
        - step_started: A step began executing
        - step_completed: A step finished with a result
        - step_failed: A step failed, was skipped or was cancelled
        - done: The final PipelineResult
        - error: The request could not be planned

    A client disconnect cancels the run: in-flight invokes finish but no
    further steps start.
    """
    queue: asyncio.Queue[PipelineEvent | None] = asyncio.Queue()
    cancel_event = asyncio.Event()

    async def listener(event: PipelineEvent) -> None:
        await queue.put(event)

    async def run() -> None:
        try:
            await mesh.run_pipeline(
                request_body.text,
                mode=request_body.mode,
                merge=request_body.merge,
                cancel_event=cancel_event,
                listener=listener,
            )
        except MeshError as e:
            await queue.put(PipelineEvent(type="error", data={"error": e.to_dict()}))
        except Exception as e:
            logger.error(f"Error during pipeline stream: {e}")
            error = {"code": "internal_error", "message": f"Pipeline run failed: {e}", "details": {}}
            await queue.put(PipelineEvent(type="error", data={"error": error}))
        finally:
            await queue.put(None)

    async def event_generator():
        """Forward pipeline events to the client until the run ends."""
        task = asyncio.create_task(run())
        try:
            while True:
                if await request.is_disconnected():
                    logger.info("Client disconnected, cancelling pipeline run")
                    cancel_event.set()
                    break
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=_DISCONNECT_POLL_SECONDS)
                except asyncio.TimeoutError:
                    continue
                if event is None:
                    break
                yield {"event": event.type, "data": json.dumps(event.data, default=str)}
        finally:
            cancel_event.set()
            if not task.done():
                done, _ = await asyncio.wait({task}, timeout=_CANCEL_GRACE_SECONDS)
                if not done:
                    logger.warning("Pipeline run did not stop after cancellation, cancelling task")
                    task.cancel()

    return EventSourceResponse(event_generator())
