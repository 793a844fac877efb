"""Unit tests for the AgentCatalog."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from insurance_mesh.actions import ActionDescriptor, ActionRegistry, ParameterSpec
from insurance_mesh.agents import LocalAgent
from insurance_mesh.errors import (
    AgentUnreachableError,
    AmbiguousActionError,
    ArgumentError,
    DuplicateAgentError,
    UnknownActionError,
    UnknownAgentError,
)
from insurance_mesh.mesh import AgentCatalog


def _unreachable_handle(agent_id="billing"):
    handle = AsyncMock()
    handle.agent_id = agent_id
    handle.invalidate = lambda: None
    handle.describe.side_effect = AgentUnreachableError(agent_id, "connection refused")
    return handle


@pytest.mark.asyncio
async def test_list_actions_in_agent_then_registration_order(catalog):
    """Test that the namespace follows agent then action registration order."""
    names = [entry.qualified_name for entry in catalog.list_actions()]

    assert names[0] == "policy.createPolicy"
    assert names[6] == "policy.listCustomerPolicies"
    assert names[7] == "claims.submitClaim"
    assert names[-1] == "customer.getSupportOptions"
    assert [entry.order for entry in catalog.list_actions()] == list(range(len(names)))


@pytest.mark.asyncio
async def test_resolve_bare_name_unique(catalog):
    """Test that a bare name exposed by one agent resolves to it."""
    entry = catalog.resolve_name("submitClaim")

    assert entry.qualified_name == "claims.submitClaim"
    assert entry.agent_id == "claims"


@pytest.mark.asyncio
async def test_resolve_bare_name_ambiguous(catalog):
    """Test that a bare name exposed by two agents is ambiguous."""
    with pytest.raises(AmbiguousActionError) as exc_info:
        catalog.resolve_name("processPayment")

    assert exc_info.value.matches == ["claims.processPayment", "customer.processPayment"]


@pytest.mark.asyncio
async def test_resolve_qualified_name(catalog):
    """Test that qualified names always resolve directly."""
    entry = catalog.resolve_name("customer.processPayment")

    assert entry.agent_id == "customer"
    with pytest.raises(UnknownActionError):
        catalog.resolve_name("customer.submitClaim")
    with pytest.raises(UnknownActionError):
        catalog.resolve_name("fileComplaint")


@pytest.mark.asyncio
async def test_add_agent_handshake_failure_registers_nothing(catalog):
    """Test that an agent whose describe fails leaves the catalog unchanged."""
    before = [entry.qualified_name for entry in catalog.list_actions()]

    with pytest.raises(AgentUnreachableError):
        await catalog.add_agent(_unreachable_handle())

    assert [entry.qualified_name for entry in catalog.list_actions()] == before
    assert not catalog.has_agent("billing")


@pytest.mark.asyncio
async def test_add_agent_duplicate_id(catalog):
    """Test that a second agent with an existing id is rejected."""
    with pytest.raises(DuplicateAgentError):
        await catalog.add_agent(LocalAgent("claims", ActionRegistry()))


@pytest.mark.asyncio
async def test_remove_agent_drops_its_entries(catalog):
    """Test that removing an agent removes its qualified names only."""
    await catalog.remove_agent("customer")

    names = [entry.qualified_name for entry in catalog.list_actions()]
    assert not any(name.startswith("customer.") for name in names)
    assert "claims.processPayment" in names
    # The bare name is no longer ambiguous once customer is gone
    assert catalog.resolve_name("processPayment").agent_id == "claims"

    with pytest.raises(UnknownAgentError):
        await catalog.remove_agent("customer")


@pytest.mark.asyncio
async def test_invoke_routes_to_owning_agent(catalog):
    """Test invocation by qualified name and bookkeeping counters."""
    result = await catalog.invoke("policy.getPolicyDetails", {"policy_number": "POL-1"})

    assert "Policy Details for POL-1" in result
    assert catalog.get_agent("policy").invocations == 1


@pytest.mark.asyncio
async def test_invoke_removed_agent_is_unreachable(catalog):
    """Test that a call bound to a removed agent fails as unreachable."""
    await catalog.remove_agent("policy")

    with pytest.raises(AgentUnreachableError):
        await catalog.invoke("policy.getPolicyDetails", {"policy_number": "POL-1"})


@pytest.mark.asyncio
async def test_invoke_semantic_error_counts_failure(catalog):
    """Test that registry errors pass through and are counted."""
    with pytest.raises(ArgumentError):
        await catalog.invoke("policy.getPolicyDetails", {})

    record = catalog.get_agent("policy")
    assert record.failures == 1
    assert record.available


@pytest.mark.asyncio
async def test_refresh_agent_picks_up_new_actions():
    """Test that refresh re-pulls descriptors and restores availability."""
    registry = ActionRegistry()
    registry.register(ActionDescriptor("ping", "Ping"), lambda: "pong")
    catalog = AgentCatalog()
    await catalog.add_agent(LocalAgent("ops", registry))
    catalog.mark_unavailable("ops", "timed out")
    assert not catalog.is_available("ops")

    registry.register(
        ActionDescriptor("echo", "Echo", (ParameterSpec("text"),)), lambda text: text
    )
    record = await catalog.refresh_agent("ops")

    assert record.available
    assert [entry.qualified_name for entry in catalog.list_actions()] == ["ops.ping", "ops.echo"]


@pytest.mark.asyncio
async def test_concurrent_additions_produce_consistent_index():
    """Test that agents added concurrently all land in the index."""
    catalog = AgentCatalog()
    agents = []
    for i in range(5):
        registry = ActionRegistry()
        registry.register(ActionDescriptor("ping", "Ping"), lambda: "pong")
        agents.append(LocalAgent(f"agent{i}", registry))

    await asyncio.gather(*(catalog.add_agent(agent) for agent in agents))

    assert len(catalog.list_agents()) == 5
    with pytest.raises(AmbiguousActionError) as exc_info:
        catalog.resolve_name("ping")
    assert len(exc_info.value.matches) == 5
