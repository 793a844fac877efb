"""Unit tests for the keyword scorer and text normalisation."""

import pytest

from insurance_mesh.actions import ActionDescriptor, ParameterKind, ParameterSpec
from insurance_mesh.resolver import KeywordScorer
from insurance_mesh.resolver.text import canonical, split_camel, terms

CREATE_POLICY = ActionDescriptor(
    "createPolicy",
    "Create a new insurance policy",
    (
        ParameterSpec("policy_type"),
        ParameterSpec("customer_name"),
        ParameterSpec("coverage_amount", ParameterKind.DECIMAL),
    ),
)
CANCEL_POLICY = ActionDescriptor(
    "cancelPolicy",
    "Cancel an insurance policy",
    (ParameterSpec("policy_number"), ParameterSpec("reason")),
)
RENEW_POLICY = ActionDescriptor(
    "renewPolicy",
    "Renew an existing insurance policy",
    (ParameterSpec("policy_number"), ParameterSpec("renewal_years", ParameterKind.INTEGER)),
)


@pytest.fixture
def scorer():
    return KeywordScorer()


def test_terms_normalise_synonyms_and_plurals():
    """Test that variants map onto shared canonical terms."""
    assert terms("Show my claims") == {"get", "claim"}
    assert canonical("Policies") == "policy"
    assert split_camel("listCustomerPolicies") == "list Customer Policies"


def test_terms_ignore_identifiers():
    """Test that identifier values are not treated as intent evidence."""
    assert terms("details for POL-12345") == {"detail"}


@pytest.mark.asyncio
async def test_score_prefers_matching_action(scorer):
    """Test that the action sharing more terms scores higher."""
    text = "Cancel policy POL-12345 because I moved abroad"

    cancel = await scorer.score(text, CANCEL_POLICY)
    renew = await scorer.score(text, RENEW_POLICY)

    assert 0.0 < renew < cancel <= 1.0


@pytest.mark.asyncio
async def test_score_empty_text_is_zero(scorer):
    """Test that text without content terms scores zero."""
    assert await scorer.score("   ", CANCEL_POLICY) == 0.0
    assert await scorer.score("the and of", CANCEL_POLICY) == 0.0


@pytest.mark.asyncio
async def test_extract_create_policy_arguments(scorer):
    """Test vocabulary, person name and money extraction together."""
    arguments = await scorer.extract(
        "Create a life insurance policy for John Doe with $500,000 coverage", CREATE_POLICY
    )

    assert arguments == {
        "policy_type": "life",
        "customer_name": "John Doe",
        "coverage_amount": 500000.0,
    }


@pytest.mark.asyncio
async def test_extract_identifier_and_reason(scorer):
    """Test prefixed identifiers and free-text reasons."""
    arguments = await scorer.extract(
        "Cancel policy pol-12345 because I moved abroad", CANCEL_POLICY
    )

    assert arguments == {"policy_number": "POL-12345", "reason": "I moved abroad"}


@pytest.mark.asyncio
async def test_extract_identifier_without_prefix(scorer):
    """Test that a bare number after the subject word is used as the identifier."""
    arguments = await scorer.extract("renew policy 778 for 2 years", RENEW_POLICY)

    assert arguments == {"policy_number": "778", "renewal_years": 2}


@pytest.mark.asyncio
async def test_extract_age_and_money_by_context(scorer):
    """Test that ages and amounts are assigned by the words around them."""
    descriptor = ActionDescriptor(
        "calculatePremium",
        "Calculate premium for a policy",
        (
            ParameterSpec("policy_type"),
            ParameterSpec("age", ParameterKind.INTEGER),
            ParameterSpec("coverage_amount", ParameterKind.DECIMAL),
            ParameterSpec("risk_category"),
        ),
    )

    arguments = await scorer.extract(
        "Calculate premium for a 45 year old with $250,000 life coverage, risk medium",
        descriptor,
    )

    assert arguments == {
        "policy_type": "life",
        "age": 45,
        "coverage_amount": 250000.0,
        "risk_category": "medium",
    }


@pytest.mark.asyncio
async def test_extract_percentages_and_deductibles(scorer):
    """Test that percent values only fill percentage parameters."""
    descriptor = ActionDescriptor(
        "calculateClaimPayout",
        "Calculate claim payout amount",
        (
            ParameterSpec("claim_number"),
            ParameterSpec("claim_amount", ParameterKind.DECIMAL),
            ParameterSpec("deductible", ParameterKind.DECIMAL),
            ParameterSpec("coverage_percentage", ParameterKind.DECIMAL),
        ),
    )

    arguments = await scorer.extract(
        "Calculate payout for claim CLM-1 of $10,000 with a $500 deductible at 80% coverage",
        descriptor,
    )

    assert arguments == {
        "claim_number": "CLM-1",
        "claim_amount": 10000.0,
        "deductible": 500.0,
        "coverage_percentage": 80.0,
    }


@pytest.mark.asyncio
async def test_extract_scaled_amounts(scorer):
    """Test k and million suffixes on amounts."""
    arguments = await scorer.extract(
        "create a home policy for Jane Roe with 2 million coverage", CREATE_POLICY
    )

    assert arguments["coverage_amount"] == 2_000_000.0
    assert arguments["customer_name"] == "Jane Roe"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "text,expected",
    [
        ("applicant is a non-smoker", False),
        ("applicant is not a smoker", False),
        ("applicant is a smoker", True),
        ("applicant is healthy", None),
    ],
)
async def test_extract_boolean_with_negation(scorer, text, expected):
    """Test boolean flags from presence and negation of the parameter word."""
    descriptor = ActionDescriptor(
        "assessRisk", "Assess risk", (ParameterSpec("smoker", ParameterKind.BOOLEAN),)
    )

    arguments = await scorer.extract(text, descriptor)

    assert arguments.get("smoker") == expected


@pytest.mark.asyncio
async def test_extract_missing_values_are_absent(scorer):
    """Test that parameters without evidence are left out."""
    arguments = await scorer.extract("create an insurance policy", CREATE_POLICY)

    assert arguments == {}
