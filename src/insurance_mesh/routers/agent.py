"""Domain agent endpoints: describe and invoke.

A domain agent app serves exactly one ActionRegistry. The gateway talks to it
through HttpAgent.
"""

import logging

from fastapi import APIRouter, Depends

from insurance_mesh.agents import LocalAgent
from insurance_mesh.dependencies import get_local_agent
from insurance_mesh.errors import MeshError
from insurance_mesh.models.agent import (
    ActionModel,
    AgentDescriptionResponse,
    InvokeRequest,
    InvokeResponse,
)
from insurance_mesh.routers.errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["agent"])


@router.get("/agent", response_model=AgentDescriptionResponse)
async def describe_agent(agent: LocalAgent = Depends(get_local_agent)) -> AgentDescriptionResponse:
    """Describe the agent and its actions in registration order.

    Returns:
        AgentDescriptionResponse: Agent name and action descriptors.
    """
    descriptors = await agent.describe()
    return AgentDescriptionResponse(
        agent=agent.agent_id,
        actions=[ActionModel.from_descriptor(d) for d in descriptors],
    )


@router.post("/actions/{action_name}/invoke", response_model=InvokeResponse)
async def invoke_action(
    action_name: str,
    request_body: InvokeRequest,
    agent: LocalAgent = Depends(get_local_agent),
) -> InvokeResponse:
    """Invoke one action with named arguments.

    Args:
        action_name: The action to run
        request_body: The named arguments

    Returns:
        InvokeResponse: The handler's result

    Raises:
        HTTPException: 404 for unknown actions, 422 for argument errors,
                       500 when the handler fails
    """
    logger.info(f"Invoking {agent.agent_id}.{action_name}")
    try:
        result = await agent.invoke(action_name, request_body.arguments)
    except MeshError as e:
        raise to_http_exception(e) from e

    return InvokeResponse(agent=agent.agent_id, action=action_name, result=result)
