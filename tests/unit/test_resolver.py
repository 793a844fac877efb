"""Unit tests for the IntentResolver."""

import pytest
import pytest_asyncio

from insurance_mesh.actions import ActionDescriptor, ActionRegistry, ParameterKind, ParameterSpec
from insurance_mesh.agents import LocalAgent
from insurance_mesh.errors import (
    AmbiguousActionError,
    IncompleteArgumentsError,
    NoMatchingActionError,
)
from insurance_mesh.mesh import AgentCatalog
from insurance_mesh.resolver import (
    AGENT_UNAVAILABLE,
    BELOW_THRESHOLD,
    IntentResolver,
    combine_confidence,
)


class StubScorer:
    """Scorer returning fixed similarities and arguments per action name."""

    def __init__(self, scores, arguments=None):
        self.scores = scores
        self.arguments = arguments or {}

    async def score(self, text, descriptor):
        return self.scores.get(descriptor.name, 0.0)

    async def extract(self, text, descriptor):
        return dict(self.arguments.get(descriptor.name, {}))


def _quote_registry():
    registry = ActionRegistry()
    registry.register(
        ActionDescriptor("getQuote", "Get an insurance quote"), lambda: "quote"
    )
    return registry


@pytest_asyncio.fixture
async def twin_catalog():
    """Two agents exposing the same action, in a known order."""
    catalog = AgentCatalog()
    await catalog.add_agent(LocalAgent("primary", _quote_registry()))
    await catalog.add_agent(LocalAgent("backup", _quote_registry()))
    return catalog


def test_combine_confidence():
    """Test that missing required parameters reduce confidence."""
    assert combine_confidence(0.8, 2, 2) == pytest.approx(0.8)
    assert combine_confidence(0.8, 1, 2) == pytest.approx(0.64)
    assert combine_confidence(0.8, 0, 2) == pytest.approx(0.48)
    assert combine_confidence(0.5, 0, 0) == pytest.approx(0.5)


@pytest.mark.asyncio
async def test_resolve_create_policy(resolver):
    """Test the full resolution of a single, complete request."""
    call = await resolver.resolve(
        "Create a life insurance policy for John Doe with $500,000 coverage"
    )

    assert call.action == "policy.createPolicy"
    assert call.agent_id == "policy"
    assert call.action_name == "createPolicy"
    assert call.arguments == {
        "policy_type": "life",
        "customer_name": "John Doe",
        "coverage_amount": 500000.0,
    }
    assert call.confidence > resolver.min_confidence
    assert len(call.trace) == len(resolver.catalog.list_actions())


@pytest.mark.asyncio
async def test_resolve_unrelated_text_raises_no_match(resolver):
    """Test that text matching no action raises NoMatchingActionError."""
    with pytest.raises(NoMatchingActionError) as exc_info:
        await resolver.resolve("what is the weather in Paris")

    trace = exc_info.value.trace
    assert trace
    assert all(c.discarded_reason == BELOW_THRESHOLD for c in trace)


@pytest.mark.asyncio
async def test_resolve_empty_text_raises_no_match(resolver):
    """Test that blank text never resolves."""
    with pytest.raises(NoMatchingActionError):
        await resolver.resolve("   ")


@pytest.mark.asyncio
async def test_resolve_missing_arguments_raises_incomplete(resolver):
    """Test that the winner's missing required parameters are reported."""
    with pytest.raises(IncompleteArgumentsError) as exc_info:
        await resolver.resolve("Create a life insurance policy")

    error = exc_info.value
    assert error.action == "policy.createPolicy"
    assert error.missing == ["customer_name", "coverage_amount"]
    assert error.arguments == {"policy_type": "life"}
    assert error.details["missing"] == ["customer_name", "coverage_amount"]


@pytest.mark.asyncio
async def test_resolve_fills_missing_from_context(resolver):
    """Test that context text supplies parameters the request lacks."""
    call = await resolver.resolve("Submit a claim for $5000", context="policy POL-12346")

    assert call.action == "claims.submitClaim"
    assert call.arguments["policy_number"] == "POL-12346"
    assert call.arguments["claim_amount"] == 5000.0


@pytest.mark.asyncio
async def test_resolve_ambiguous_bare_name(resolver):
    """Test that naming an ambiguous bare action raises AmbiguousActionError."""
    with pytest.raises(AmbiguousActionError) as exc_info:
        await resolver.resolve("processPayment for claim CLM-1 of $200 by check")

    assert exc_info.value.matches == ["claims.processPayment", "customer.processPayment"]


@pytest.mark.asyncio
async def test_resolve_qualified_name_is_explicit(resolver):
    """Test that a qualified action name selects that action directly."""
    call = await resolver.resolve("claims.processPayment for claim CLM-1 of $200 by check")

    assert call.action == "claims.processPayment"
    assert call.arguments == {
        "claim_number": "CLM-1",
        "amount": 200.0,
        "payment_method": "check",
    }
    assert call.confidence == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_tie_break_uses_catalog_order(twin_catalog):
    """Test that equal candidates resolve to the earliest catalog entry."""
    resolver = IntentResolver(twin_catalog, StubScorer({"getQuote": 0.9}))

    first = await resolver.resolve("get a quote")
    second = await resolver.resolve("get a quote")

    assert first.action == second.action == "primary.getQuote"


@pytest.mark.asyncio
async def test_unavailable_agent_candidates_are_discarded(twin_catalog):
    """Test that actions of unavailable agents are never selected."""
    twin_catalog.mark_unavailable("primary", "connection refused")
    resolver = IntentResolver(twin_catalog, StubScorer({"getQuote": 0.9}))

    call = await resolver.resolve("get a quote")

    assert call.action == "backup.getQuote"
    reasons = {c.action: c.discarded_reason for c in call.trace}
    assert reasons == {"primary.getQuote": AGENT_UNAVAILABLE, "backup.getQuote": None}


@pytest.mark.asyncio
async def test_all_agents_unavailable_raises_no_match(twin_catalog):
    """Test that a catalog with no available agents matches nothing."""
    twin_catalog.mark_unavailable("primary", "down")
    twin_catalog.mark_unavailable("backup", "down")
    resolver = IntentResolver(twin_catalog, StubScorer({"getQuote": 0.9}))

    with pytest.raises(NoMatchingActionError):
        await resolver.resolve("get a quote")


@pytest.mark.asyncio
async def test_complete_candidate_beats_incomplete_one():
    """Test that parameter evidence outranks raw similarity."""
    registry = ActionRegistry()
    registry.register(
        ActionDescriptor(
            "renewPolicy",
            "Renew a policy",
            (ParameterSpec("policy_number"), ParameterSpec("years", ParameterKind.INTEGER)),
        ),
        lambda policy_number, years: "renewed",
    )
    registry.register(
        ActionDescriptor("getPolicyDetails", "Get policy details", (ParameterSpec("policy_number"),)),
        lambda policy_number: "details",
    )
    catalog = AgentCatalog()
    await catalog.add_agent(LocalAgent("policy", registry))
    scorer = StubScorer(
        {"renewPolicy": 0.7, "getPolicyDetails": 0.6},
        {"renewPolicy": {"policy_number": "POL-1"}, "getPolicyDetails": {"policy_number": "POL-1"}},
    )

    call = await IntentResolver(catalog, scorer).resolve("policy POL-1")

    # renewPolicy: 0.7 * 0.8 = 0.56 < getPolicyDetails: 0.6 * 1.0
    assert call.action == "policy.getPolicyDetails"


@pytest.mark.asyncio
async def test_rejected_values_leave_parameter_missing():
    """Test that values failing coercion are not used as arguments."""
    registry = ActionRegistry()
    registry.register(
        ActionDescriptor("renewPolicy", "Renew", (ParameterSpec("years", ParameterKind.INTEGER),)),
        lambda years: years,
    )
    catalog = AgentCatalog()
    await catalog.add_agent(LocalAgent("policy", registry))
    scorer = StubScorer({"renewPolicy": 0.9}, {"renewPolicy": {"years": "several"}})

    with pytest.raises(IncompleteArgumentsError) as exc_info:
        await IntentResolver(catalog, scorer).resolve("renew for several years")

    assert exc_info.value.missing == ["years"]
