"""Agent catalog aggregating many agents into one action namespace.

The catalog owns a qualified-name index (``agent_id.action_name``) over the
descriptors of every registered agent. The index is rebuilt and swapped as a
whole under an asyncio.Lock whenever agents are added, removed or refreshed,
so concurrent readers always see either the old or the new index, never a
partially updated one.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

import httpx

from insurance_mesh.actions.types import ActionDescriptor, qualify, split_qualified
from insurance_mesh.agents.base import AgentHandle
from insurance_mesh.agents.remote import DEFAULT_TIMEOUT, HttpAgent
from insurance_mesh.errors import (
    AgentUnreachableError,
    AmbiguousActionError,
    DuplicateAgentError,
    MeshError,
    UnknownActionError,
    UnknownAgentError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    """One action in the catalog's namespace."""

    qualified_name: str
    agent_id: str
    descriptor: ActionDescriptor
    order: int


@dataclass
class AgentRecord:
    """Catalog bookkeeping for one registered agent.

    Records stay in the catalog when an agent becomes unreachable so that
    its counters survive; only remove_agent() deletes them.
    """

    handle: AgentHandle
    descriptors: tuple[ActionDescriptor, ...]
    available: bool = True
    invocations: int = 0
    failures: int = 0
    last_error: str | None = None
    added_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )

    @property
    def agent_id(self) -> str:
        return self.handle.agent_id


@dataclass(frozen=True)
class _Index:
    entries: Mapping[str, CatalogEntry]
    by_bare_name: Mapping[str, tuple[str, ...]]


_EMPTY_INDEX = _Index(entries=MappingProxyType({}), by_bare_name=MappingProxyType({}))


def _build_index(records: Mapping[str, AgentRecord]) -> _Index:
    entries: dict[str, CatalogEntry] = {}
    by_bare_name: dict[str, list[str]] = {}
    for agent_id, record in records.items():
        for descriptor in record.descriptors:
            qualified = qualify(agent_id, descriptor.name)
            entries[qualified] = CatalogEntry(
                qualified_name=qualified,
                agent_id=agent_id,
                descriptor=descriptor,
                order=len(entries),
            )
            by_bare_name.setdefault(descriptor.name, []).append(qualified)
    return _Index(
        entries=MappingProxyType(entries),
        by_bare_name=MappingProxyType({k: tuple(v) for k, v in by_bare_name.items()}),
    )


class AgentCatalog:
    """Aggregates agent handles into one addressable namespace.

    Attributes:
        timeout: Request timeout used for agents created from endpoint URLs
        describe_ttl: Descriptor cache lifetime for agents created from URLs
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        describe_ttl: float | None = None,
    ) -> None:
        self.timeout = timeout
        self.describe_ttl = describe_ttl
        self._client = client
        self._agents: dict[str, AgentRecord] = {}
        self._index = _EMPTY_INDEX
        self._lock = asyncio.Lock()

    # --- Registration ---

    async def add_agent(
        self, endpoint: str | AgentHandle, agent_id: str | None = None
    ) -> AgentRecord:
        """Register an agent and index its actions.

        The agent is described once before anything is registered; if that
        handshake fails nothing is added.

        Args:
            endpoint: A base URL for an HTTP agent, or a ready AgentHandle
            agent_id: Optional explicit id for URL endpoints

        Returns:
            AgentRecord: The new catalog record

        Raises:
            AgentUnreachableError: If the initial describe() fails
            DuplicateAgentError: If an agent with the same id is registered
        """
        created = isinstance(endpoint, str)
        if isinstance(endpoint, str):
            handle: AgentHandle = HttpAgent(
                endpoint,
                agent_id=agent_id,
                client=self._client,
                timeout=self.timeout,
                describe_ttl=self.describe_ttl,
            )
        else:
            handle = endpoint

        try:
            descriptors = await handle.describe(refresh=True)
        except BaseException as e:
            logger.warning(f"Could not add agent {handle.agent_id}: handshake failed ({e!r})")
            if created:
                await handle.close()
            raise

        async with self._lock:
            if handle.agent_id in self._agents:
                if created:
                    await handle.close()
                raise DuplicateAgentError(handle.agent_id)
            record = AgentRecord(handle=handle, descriptors=descriptors)
            agents = dict(self._agents)
            agents[handle.agent_id] = record
            self._index = _build_index(agents)
            self._agents = agents

        logger.info(f"Added agent {handle.agent_id} with {len(descriptors)} actions")
        return record

    async def remove_agent(self, agent_id: str) -> None:
        """Deregister an agent and drop all of its qualified entries.

        Raises:
            UnknownAgentError: If no agent with this id is registered
        """
        async with self._lock:
            if agent_id not in self._agents:
                raise UnknownAgentError(agent_id)
            agents = dict(self._agents)
            record = agents.pop(agent_id)
            self._index = _build_index(agents)
            self._agents = agents

        await record.handle.close()
        logger.info(f"Removed agent {agent_id}")

    async def refresh_agent(self, agent_id: str) -> AgentRecord:
        """Re-pull an agent's descriptors and mark it available again.

        Raises:
            UnknownAgentError: If no agent with this id is registered
            AgentUnreachableError: If the agent still cannot be reached
        """
        record = self.get_agent(agent_id)
        record.handle.invalidate()
        try:
            descriptors = await record.handle.describe(refresh=True)
        except AgentUnreachableError as e:
            self.mark_unavailable(agent_id, e.reason)
            raise

        async with self._lock:
            if self._agents.get(agent_id) is not record:
                raise UnknownAgentError(agent_id)
            record.descriptors = descriptors
            record.available = True
            self._index = _build_index(self._agents)

        logger.info(f"Refreshed agent {agent_id}: {len(descriptors)} actions")
        return record

    async def close(self) -> None:
        """Close every agent handle."""
        for record in list(self._agents.values()):
            await record.handle.close()

    # --- Availability bookkeeping ---

    def mark_unavailable(self, agent_id: str, reason: str) -> None:
        record = self._agents.get(agent_id)
        if record is None:
            return
        if record.available:
            logger.warning(f"Marking agent {agent_id} unavailable: {reason}")
        record.available = False
        record.last_error = reason

    def is_available(self, agent_id: str) -> bool:
        record = self._agents.get(agent_id)
        return record is not None and record.available

    def has_agent(self, agent_id: str) -> bool:
        return agent_id in self._agents

    # --- Lookup ---

    def get_agent(self, agent_id: str) -> AgentRecord:
        try:
            return self._agents[agent_id]
        except KeyError:
            raise UnknownAgentError(agent_id) from None

    def list_agents(self) -> list[AgentRecord]:
        return list(self._agents.values())

    def list_actions(self) -> list[CatalogEntry]:
        """Return every entry in agent then action registration order."""
        return list(self._index.entries.values())

    def resolve_name(self, name: str) -> CatalogEntry:
        """Resolve a qualified or bare action name.

        Bare names resolve only when exactly one agent exposes them.

        Raises:
            UnknownActionError: If no agent exposes the name
            AmbiguousActionError: If several agents expose the bare name
        """
        index = self._index
        agent_id, bare = split_qualified(name)
        if agent_id is not None:
            entry = index.entries.get(name)
            if entry is None:
                raise UnknownActionError(name)
            return entry

        matches = index.by_bare_name.get(bare, ())
        if not matches:
            raise UnknownActionError(name)
        if len(matches) > 1:
            raise AmbiguousActionError(bare, list(matches))
        return index.entries[matches[0]]

    # --- Invocation ---

    async def invoke(self, qualified_name: str, arguments: dict[str, Any]) -> Any:
        """Invoke a qualified action on its owning agent.

        The agent is looked up at call time, so a step bound to an agent that
        has since been removed fails with AgentUnreachableError.

        Raises:
            AgentUnreachableError: If the agent was removed or cannot be reached
            UnknownActionError: If the agent does not expose the action
        """
        agent_id, action = split_qualified(qualified_name)
        if agent_id is None:
            agent_id = self.resolve_name(qualified_name).agent_id

        record = self._agents.get(agent_id)
        if record is None:
            raise AgentUnreachableError(agent_id, "agent was removed from the catalog")
        if not any(d.name == action for d in record.descriptors):
            raise UnknownActionError(qualified_name)

        record.invocations += 1
        try:
            return await record.handle.invoke(action, arguments)
        except MeshError as e:
            record.failures += 1
            record.last_error = e.message
            raise
