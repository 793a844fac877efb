"""Policy management service: creating, renewing and pricing policies."""

import logging

from insurance_mesh.actions import ActionDescriptor, ActionRegistry, ParameterKind, ParameterSpec
from insurance_mesh.domains.common import Clock, IdGenerator, add_years, system_clock

logger = logging.getLogger(__name__)

AGENT_NAME = "policy"

_RISK_FACTORS = {"HIGH": 2.0, "MEDIUM": 1.3}


class PolicyManagementService:
    """Mock policy back office. Nothing is persisted."""

    def __init__(self, ids: IdGenerator | None = None, clock: Clock | None = None) -> None:
        self.ids = ids or IdGenerator()
        self.clock = clock or system_clock

    def create_policy(self, policy_type: str, customer_name: str, coverage_amount: float) -> str:
        policy_number = self.ids.next("POL")
        logger.info(f"Created policy {policy_number} for {customer_name}")
        return (
            "Policy created successfully!\n"
            f"Policy Number: {policy_number}\n"
            f"Policy Type: {policy_type}\n"
            f"Customer: {customer_name}\n"
            f"Coverage Amount: ${coverage_amount:.2f}\n"
            "Status: ACTIVE\n"
            f"Created: {self.clock().date()}"
        )

    def renew_policy(self, policy_number: str, renewal_years: int) -> str:
        expires = add_years(self.clock().date(), renewal_years)
        return (
            f"Policy {policy_number} renewed successfully for {renewal_years} year(s).\n"
            f"New Expiration Date: {expires}\n"
            "Renewal Premium: $1,250.00\n"
            "Status: ACTIVE"
        )

    def cancel_policy(self, policy_number: str, reason: str) -> str:
        return (
            f"Policy {policy_number} has been cancelled.\n"
            f"Reason: {reason}\n"
            f"Cancellation Date: {self.clock().date()}\n"
            "Refund Amount: $450.00\n"
            "Status: CANCELLED"
        )

    def get_policy_details(self, policy_number: str) -> str:
        return (
            f"Policy Details for {policy_number}:\n"
            "=================================\n"
            "Policy Type: Life Insurance\n"
            "Customer: John Doe\n"
            "Coverage Amount: $500,000\n"
            "Premium: $1,250/year\n"
            "Start Date: 2025-01-01\n"
            "Expiration Date: 2045-01-01\n"
            "Status: ACTIVE\n"
            "Beneficiaries: Jane Doe, Robert Doe"
        )

    def update_policy(self, policy_number: str, update_type: str, new_value: str) -> str:
        return (
            f"Policy {policy_number} updated successfully.\n"
            f"Update Type: {update_type}\n"
            f"New Value: {new_value}\n"
            f"Effective Date: {self.clock().date()}"
        )

    def calculate_premium(
        self, policy_type: str, age: int, coverage_amount: float, risk_category: str
    ) -> str:
        base_premium = coverage_amount * 0.0025
        age_factor = 1.5 if age > 50 else 1.0
        risk_factor = _RISK_FACTORS.get(risk_category.upper(), 1.0)
        total = base_premium * age_factor * risk_factor
        return (
            "Premium Calculation:\n"
            "=================================\n"
            f"Policy Type: {policy_type}\n"
            f"Coverage Amount: ${coverage_amount:.2f}\n"
            f"Base Premium: ${base_premium:.2f}\n"
            f"Age Factor (Age {age}): {age_factor:.2f}x\n"
            f"Risk Category: {risk_category} ({risk_factor:.2f}x)\n"
            f"Annual Premium: ${total:.2f}\n"
            f"Monthly Premium: ${total / 12:.2f}"
        )

    def list_customer_policies(self, customer_id: str) -> str:
        return (
            f"Active Policies for Customer {customer_id}:\n\n"
            "1. POL-12345 - Life Insurance - $500,000 - Active\n"
            "2. POL-12346 - Auto Insurance - $50,000 - Active\n"
            "3. POL-12347 - Home Insurance - $300,000 - Active\n"
            "Total Policies: 3 | Total Annual Premium: $3,500"
        )


def create_registry(ids: IdGenerator | None = None, clock: Clock | None = None) -> ActionRegistry:
    """Build the policy management registry."""
    service = PolicyManagementService(ids=ids, clock=clock)
    registry = ActionRegistry()
    text = ParameterKind.STRING
    decimal = ParameterKind.DECIMAL

    registry.register(
        ActionDescriptor(
            "createPolicy",
            "Create a new insurance policy",
            (
                ParameterSpec("policy_type", text),
                ParameterSpec("customer_name", text),
                ParameterSpec("coverage_amount", decimal),
            ),
        ),
        service.create_policy,
    )
    registry.register(
        ActionDescriptor(
            "renewPolicy",
            "Renew an existing insurance policy",
            (
                ParameterSpec("policy_number", text),
                ParameterSpec("renewal_years", ParameterKind.INTEGER),
            ),
        ),
        service.renew_policy,
    )
    registry.register(
        ActionDescriptor(
            "cancelPolicy",
            "Cancel an insurance policy",
            (ParameterSpec("policy_number", text), ParameterSpec("reason", text)),
        ),
        service.cancel_policy,
    )
    registry.register(
        ActionDescriptor(
            "getPolicyDetails", "Get policy details", (ParameterSpec("policy_number", text),)
        ),
        service.get_policy_details,
    )
    registry.register(
        ActionDescriptor(
            "updatePolicy",
            "Update policy information",
            (
                ParameterSpec("policy_number", text),
                ParameterSpec("update_type", text),
                ParameterSpec("new_value", text),
            ),
        ),
        service.update_policy,
    )
    registry.register(
        ActionDescriptor(
            "calculatePremium",
            "Calculate premium for a policy",
            (
                ParameterSpec("policy_type", text),
                ParameterSpec("age", ParameterKind.INTEGER),
                ParameterSpec("coverage_amount", decimal),
                ParameterSpec("risk_category", text),
            ),
        ),
        service.calculate_premium,
    )
    registry.register(
        ActionDescriptor(
            "listCustomerPolicies",
            "List all active policies for a customer",
            (ParameterSpec("customer_id", text),),
        ),
        service.list_customer_policies,
    )
    return registry
