"""Claims processing service."""

import logging
import zlib
from datetime import timedelta

from insurance_mesh.actions import ActionDescriptor, ActionRegistry, ParameterKind, ParameterSpec
from insurance_mesh.domains.common import Clock, IdGenerator, format_timestamp, system_clock

logger = logging.getLogger(__name__)

AGENT_NAME = "claims"

CLAIM_STATUSES = ("PENDING REVIEW", "UNDER INVESTIGATION", "APPROVED", "PAID", "DENIED")

_STATUS_NOTES = {
    "APPROVED": "All documentation verified. Payment processing initiated.",
    "DENIED": "Claim does not meet policy coverage criteria.",
}


def claim_status(claim_number: str) -> str:
    """Stable mock status for a claim number."""
    return CLAIM_STATUSES[zlib.crc32(claim_number.encode("utf-8")) % len(CLAIM_STATUSES)]


class ClaimsProcessingService:
    """Mock claims desk. Nothing is persisted."""

    def __init__(self, ids: IdGenerator | None = None, clock: Clock | None = None) -> None:
        self.ids = ids or IdGenerator()
        self.clock = clock or system_clock

    def submit_claim(
        self,
        policy_number: str,
        claim_amount: float,
        claim_type: str | None,
        description: str | None,
    ) -> str:
        claim_number = self.ids.next("CLM")
        logger.info(f"Submitted claim {claim_number} against {policy_number}")
        return (
            "Claim submitted successfully!\n"
            f"Claim Number: {claim_number}\n"
            f"Policy Number: {policy_number}\n"
            f"Claim Type: {claim_type or 'General'}\n"
            f"Claim Amount: ${claim_amount:.2f}\n"
            f"Description: {description or 'Not provided'}\n"
            "Status: PENDING REVIEW\n"
            f"Submitted: {format_timestamp(self.clock())}\n"
            "Expected Processing Time: 5-7 business days"
        )

    def get_claim_status(self, claim_number: str) -> str:
        status = claim_status(claim_number)
        note = _STATUS_NOTES.get(status, "Claim is being reviewed by our team.")
        return (
            f"Claim Status for {claim_number}:\n"
            "=================================\n"
            f"Current Status: {status}\n"
            "Claim Amount: $5,000.00\n"
            "Submitted Date: 2026-01-15\n"
            f"Last Updated: {self.clock().date()}\n"
            "Assigned Adjuster: Sarah Johnson\n"
            f"Notes: {note}"
        )

    def approve_claim(self, claim_number: str, approved_amount: float) -> str:
        today = self.clock().date()
        return (
            f"Claim {claim_number} has been APPROVED.\n"
            f"Approved Amount: ${approved_amount:.2f}\n"
            f"Approval Date: {today}\n"
            "Payment Method: Direct Deposit\n"
            f"Expected Payment Date: {today + timedelta(days=3)}\n"
            "Status: APPROVED - PAYMENT PENDING"
        )

    def deny_claim(self, claim_number: str, reason: str) -> str:
        return (
            f"Claim {claim_number} has been DENIED.\n"
            f"Reason: {reason}\n"
            f"Denial Date: {self.clock().date()}\n"
            "Status: DENIED\n"
            "Appeal Information: You may appeal this decision within 30 days."
        )

    def request_documentation(self, claim_number: str, documents_needed: str) -> str:
        deadline = self.clock().date() + timedelta(days=10)
        return (
            f"Additional documentation requested for Claim {claim_number}:\n"
            f"Documents Required:\n{documents_needed}\n"
            f"Deadline: {deadline}\n"
            "Submission Method: Upload to customer portal or email to claims@insurance.com\n"
            "Status: PENDING DOCUMENTATION"
        )

    def calculate_claim_payout(
        self,
        claim_number: str,
        claim_amount: float,
        deductible: float,
        coverage_percentage: float,
    ) -> str:
        eligible = claim_amount - deductible
        payout = max(0.0, eligible * (coverage_percentage / 100.0))
        return (
            f"Claim Payout Calculation for {claim_number}:\n"
            "=================================\n"
            f"Total Claim Amount: ${claim_amount:.2f}\n"
            f"Policy Deductible: ${deductible:.2f}\n"
            f"Coverage Percentage: {coverage_percentage:.0f}%\n"
            f"Eligible Amount: ${eligible:.2f}\n"
            f"Final Payout Amount: ${payout:.2f}"
        )

    def get_claims_summary(self, policy_number: str) -> str:
        return (
            f"Claims Summary for Policy {policy_number}:\n\n"
            "Total Claims: 3\n"
            "Approved: 2 ($8,500)\n"
            "Denied: 0\n"
            "Pending: 1 ($5,000)\n\n"
            "Recent Claims:\n"
            "1. CLM-12345 - Medical - $3,500 - PAID\n"
            "2. CLM-12346 - Auto Accident - $5,000 - PAID\n"
            "3. CLM-12347 - Property Damage - $5,000 - PENDING REVIEW"
        )

    def process_payment(self, claim_number: str, amount: float, payment_method: str) -> str:
        transaction_id = self.ids.next("TXN")
        return (
            f"Payment processed for Claim {claim_number}:\n"
            f"Transaction ID: {transaction_id}\n"
            f"Payment Amount: ${amount:.2f}\n"
            f"Payment Method: {payment_method}\n"
            f"Processing Date: {format_timestamp(self.clock())}\n"
            "Status: COMPLETED"
        )


def create_registry(ids: IdGenerator | None = None, clock: Clock | None = None) -> ActionRegistry:
    """Build the claims processing registry."""
    service = ClaimsProcessingService(ids=ids, clock=clock)
    registry = ActionRegistry()
    text = ParameterKind.STRING
    decimal = ParameterKind.DECIMAL

    registry.register(
        ActionDescriptor(
            "submitClaim",
            "Submit a new insurance claim",
            (
                ParameterSpec("policy_number", text),
                ParameterSpec("claim_amount", decimal),
                ParameterSpec("claim_type", text, required=False),
                ParameterSpec("description", text, required=False),
            ),
        ),
        service.submit_claim,
    )
    registry.register(
        ActionDescriptor("getClaimStatus", "Get claim status", (ParameterSpec("claim_number", text),)),
        service.get_claim_status,
    )
    registry.register(
        ActionDescriptor(
            "approveClaim",
            "Approve a claim",
            (ParameterSpec("claim_number", text), ParameterSpec("approved_amount", decimal)),
        ),
        service.approve_claim,
    )
    registry.register(
        ActionDescriptor(
            "denyClaim",
            "Deny a claim",
            (ParameterSpec("claim_number", text), ParameterSpec("reason", text)),
        ),
        service.deny_claim,
    )
    registry.register(
        ActionDescriptor(
            "requestDocumentation",
            "Request additional documentation for a claim",
            (ParameterSpec("claim_number", text), ParameterSpec("documents_needed", text)),
        ),
        service.request_documentation,
    )
    registry.register(
        ActionDescriptor(
            "calculateClaimPayout",
            "Calculate claim payout amount",
            (
                ParameterSpec("claim_number", text),
                ParameterSpec("claim_amount", decimal),
                ParameterSpec("deductible", decimal),
                ParameterSpec("coverage_percentage", decimal),
            ),
        ),
        service.calculate_claim_payout,
    )
    registry.register(
        ActionDescriptor(
            "getClaimsSummary",
            "Get claims summary for a policy",
            (ParameterSpec("policy_number", text),),
        ),
        service.get_claims_summary,
    )
    registry.register(
        ActionDescriptor(
            "processPayment",
            "Process claim payment",
            (
                ParameterSpec("claim_number", text),
                ParameterSpec("amount", decimal),
                ParameterSpec("payment_method", text),
            ),
        ),
        service.process_payment,
    )
    return registry
