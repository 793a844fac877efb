"""Catalog management surface used by the gateway routers and the CLI.

MeshService wires an AgentCatalog, an IntentResolver and a MeshPipeline
together and exposes the two request modes:

- single-action: ``resolve`` / ``resolve_and_invoke`` pick exactly one action
- pipeline: ``run_pipeline`` splits a compound request into several calls
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from insurance_mesh.agents.base import AgentHandle
from insurance_mesh.mesh.catalog import AgentCatalog, AgentRecord, CatalogEntry
from insurance_mesh.pipeline.executor import Listener, MeshPipeline
from insurance_mesh.pipeline.types import ExecutionMode, MergeStrategy, PipelineResult
from insurance_mesh.resolver.intent import DEFAULT_MIN_CONFIDENCE, IntentResolver
from insurance_mesh.resolver.types import ResolvedCall, Scorer

logger = logging.getLogger(__name__)


@dataclass
class InvocationResult:
    """Result of a single-action request."""

    call: ResolvedCall
    result: Any


class MeshService:
    """Entry point for catalog management and request handling.

    Attributes:
        catalog: The agent catalog
        resolver: Single-action intent resolver
        pipeline: Compound-request pipeline
    """

    def __init__(
        self,
        catalog: AgentCatalog | None = None,
        scorer: Scorer | None = None,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        invoke_timeout: float = 10.0,
        retry_attempts: int = 3,
        retry_backoff: float = 0.1,
        max_concurrency: int = 4,
    ) -> None:
        self.catalog = catalog or AgentCatalog(timeout=invoke_timeout)
        self.resolver = IntentResolver(self.catalog, scorer, min_confidence=min_confidence)
        self.pipeline = MeshPipeline(
            self.catalog,
            self.resolver,
            invoke_timeout=invoke_timeout,
            retry_attempts=retry_attempts,
            retry_backoff=retry_backoff,
            max_concurrency=max_concurrency,
        )

    # --- Catalog management ---

    async def add_agent(
        self, endpoint: str | AgentHandle, agent_id: str | None = None
    ) -> AgentRecord:
        return await self.catalog.add_agent(endpoint, agent_id=agent_id)

    async def remove_agent(self, agent_id: str) -> None:
        await self.catalog.remove_agent(agent_id)

    async def refresh_agent(self, agent_id: str) -> AgentRecord:
        return await self.catalog.refresh_agent(agent_id)

    def list_agents(self) -> list[AgentRecord]:
        return self.catalog.list_agents()

    def list_actions(self) -> list[CatalogEntry]:
        return self.catalog.list_actions()

    async def close(self) -> None:
        await self.catalog.close()

    # --- Requests ---

    async def resolve(self, text: str, context: str | None = None) -> ResolvedCall:
        """Resolve text to one action call without invoking it."""
        return await self.resolver.resolve(text, context=context)

    async def resolve_and_invoke(
        self, text: str, context: str | None = None
    ) -> InvocationResult:
        """Resolve text to one action and invoke it with retry and deadline.

        Raises:
            NoMatchingActionError: If no action matches the text
            IncompleteArgumentsError: If required parameters are missing
            AmbiguousActionError: If the text names an ambiguous bare action
            AgentUnreachableError: If the owning agent could not be reached
            MeshError: Any semantic error reported by the agent
        """
        call = await self.resolver.resolve(text, context=context)
        result = await self.pipeline.invoke(call.action, call.arguments)
        logger.info(f"Invoked {call.action} for single-action request")
        return InvocationResult(call=call, result=result)

    async def run_pipeline(
        self,
        text: str,
        mode: ExecutionMode | None = None,
        merge: MergeStrategy = MergeStrategy.CONCATENATE,
        cancel_event: asyncio.Event | None = None,
        listener: Listener | None = None,
    ) -> PipelineResult:
        """Plan and run a compound request.

        Completed results are returned even when some steps fail; call
        ``raise_for_status()`` on the result to turn a partial outcome into
        PartialFailureError.
        """
        return await self.pipeline.run(
            text, mode=mode, merge=merge, cancel_event=cancel_event, listener=listener
        )
