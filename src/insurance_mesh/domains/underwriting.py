"""Underwriting service: risk assessment, eligibility and policy terms."""

from insurance_mesh.actions import ActionDescriptor, ActionRegistry, ParameterKind, ParameterSpec
from insurance_mesh.domains.common import Clock, IdGenerator, system_clock

AGENT_NAME = "underwriting"

_BASE_RATES = {"life": 0.003, "auto": 0.015, "home": 0.008, "health": 0.05}
_RISK_MULTIPLIERS = {"HIGH": 2.0, "MEDIUM": 1.3}
_HEALTH_ADJUSTMENTS = {"EXCELLENT": -20, "GOOD": -10, "FAIR": 10, "POOR": 30}
_HAZARDOUS_OCCUPATIONS = ("construction", "mining", "miner")
_RECOMMENDATIONS = {
    "LOW": "APPROVED - Standard rates",
    "MEDIUM": "APPROVED - Moderate premium adjustment",
    "HIGH": "REQUIRES ADDITIONAL REVIEW - High risk premium or limited coverage",
}


def risk_score(age: int, health_status: str, occupation: str, smoker: bool) -> int:
    score = 50
    if age > 60:
        score += 30
    elif age > 45:
        score += 15
    elif age < 30:
        score -= 10
    score += _HEALTH_ADJUSTMENTS.get(health_status.upper(), 0)
    if smoker:
        score += 25
    if any(word in occupation.lower() for word in _HAZARDOUS_OCCUPATIONS):
        score += 20
    return score


def categorize_risk(score: int) -> str:
    if score < 40:
        return "LOW"
    if score < 70:
        return "MEDIUM"
    return "HIGH"


class UnderwritingService:
    """Mock underwriting desk."""

    def __init__(self, ids: IdGenerator | None = None, clock: Clock | None = None) -> None:
        self.ids = ids or IdGenerator()
        self.clock = clock or system_clock

    def assess_risk(
        self, applicant_name: str, age: int, health_status: str, occupation: str, smoker: bool
    ) -> str:
        score = risk_score(age, health_status, occupation, smoker)
        category = categorize_risk(score)
        return (
            f"Risk Assessment for {applicant_name}:\n"
            "=================================\n"
            f"Age: {age} years\n"
            f"Health Status: {health_status}\n"
            f"Occupation: {occupation}\n"
            f"Smoker: {'Yes' if smoker else 'No'}\n"
            f"Risk Score: {score}/100\n"
            f"Risk Category: {category}\n"
            f"Recommendation: {_RECOMMENDATIONS[category]}"
        )

    def calculate_premium_rate(
        self, policy_type: str, risk_category: str, coverage_amount: float
    ) -> str:
        base_rate = _BASE_RATES.get(policy_type.lower(), 0.01)
        multiplier = _RISK_MULTIPLIERS.get(risk_category.upper(), 1.0)
        annual = coverage_amount * base_rate * multiplier
        return (
            "Premium Rate Calculation:\n"
            "=================================\n"
            f"Policy Type: {policy_type} Insurance\n"
            f"Coverage Amount: ${coverage_amount:.2f}\n"
            f"Base Rate: {base_rate * 100:.3f}%\n"
            f"Risk Category: {risk_category} ({multiplier:.1f}x multiplier)\n"
            f"Annual Premium: ${annual:.2f}\n"
            f"Monthly Premium: ${annual / 12:.2f}\n"
            f"Quarterly Premium: ${annual / 4:.2f}"
        )

    def evaluate_eligibility(
        self, applicant_name: str, policy_type: str, pre_existing_conditions: str
    ) -> str:
        restrictions = "None"
        if policy_type.upper() == "HEALTH" and pre_existing_conditions.upper() != "NONE":
            restrictions = "Pre-existing conditions excluded for first 12 months"
        return (
            f"Eligibility Evaluation for {applicant_name}:\n"
            "=================================\n"
            f"Policy Type: {policy_type}\n"
            f"Pre-existing Conditions: {pre_existing_conditions}\n"
            "Eligibility Status: ELIGIBLE\n"
            f"Coverage Restrictions: {restrictions}\n"
            "Approval Status: APPROVED WITH CONDITIONS"
        )

    def generate_risk_report(self, application_id: str) -> str:
        return (
            "Underwriting Risk Report\n"
            f"Application ID: {application_id}\n"
            "=================================\n\n"
            "APPLICANT PROFILE:\n"
            "Name: John Smith\n"
            "Age: 42 years\n"
            "Gender: Male\n"
            "Occupation: Software Engineer\n\n"
            "HEALTH ASSESSMENT:\n"
            "Overall Health: Good\n"
            "BMI: 24.5 (Normal)\n"
            "Blood Pressure: 120/80 (Normal)\n"
            "Cholesterol: 180 mg/dL (Normal)\n"
            "Medical History: No major conditions\n\n"
            "LIFESTYLE FACTORS:\n"
            "Smoker: No\n"
            "Alcohol Use: Moderate\n"
            "Exercise: Regular\n\n"
            "RISK ANALYSIS:\n"
            "Overall Risk Score: 45/100\n"
            "Risk Category: LOW-MEDIUM\n"
            "Mortality Risk: Low\n"
            "Morbidity Risk: Low\n\n"
            "RECOMMENDATION:\n"
            "Status: APPROVED\n"
            "Premium Loading: Standard +5%\n"
            "Special Conditions: None\n"
            f"Report Date: {self.clock().date()}"
        )

    def process_application(self, application_id: str, decision: str, reason: str) -> str:
        verdict = decision.upper()
        if verdict == "APPROVED":
            next_steps = "Policy documents will be generated and sent for signature"
        else:
            next_steps = "Applicant will be notified with appeal rights information"
        return (
            f"Application {application_id} - {verdict}\n"
            "=================================\n"
            f"Decision: {verdict}\n"
            f"Reason: {reason}\n"
            f"Decision Date: {self.clock().date()}\n"
            "Underwriter: Michael Thompson\n"
            f"Next Steps: {next_steps}"
        )

    def set_policy_terms(self, policy_type: str, term_length: int, coverage_amount: float) -> str:
        return (
            "Policy Terms Configuration:\n"
            "=================================\n"
            f"Policy Type: {policy_type}\n"
            f"Term Length: {term_length} years\n"
            f"Coverage Amount: ${coverage_amount:.2f}\n"
            "Deductible: $1,000\n"
            "Co-insurance: 80/20\n"
            "Out-of-Pocket Max: $5,000/year\n"
            "Waiting Period: 30 days\n"
            "Grace Period: 30 days\n"
            "Renewal: Automatic (subject to review)\n"
            "Cancellation: 30 days notice required"
        )


def create_registry(ids: IdGenerator | None = None, clock: Clock | None = None) -> ActionRegistry:
    """Build the underwriting registry."""
    service = UnderwritingService(ids=ids, clock=clock)
    registry = ActionRegistry()
    text = ParameterKind.STRING
    decimal = ParameterKind.DECIMAL
    integer = ParameterKind.INTEGER

    registry.register(
        ActionDescriptor(
            "assessRisk",
            "Assess risk for an insurance application",
            (
                ParameterSpec("applicant_name", text),
                ParameterSpec("age", integer),
                ParameterSpec("health_status", text),
                ParameterSpec("occupation", text),
                ParameterSpec("smoker", ParameterKind.BOOLEAN),
            ),
        ),
        service.assess_risk,
    )
    registry.register(
        ActionDescriptor(
            "calculatePremiumRate",
            "Calculate premium rate based on risk factors",
            (
                ParameterSpec("policy_type", text),
                ParameterSpec("risk_category", text),
                ParameterSpec("coverage_amount", decimal),
            ),
        ),
        service.calculate_premium_rate,
    )
    registry.register(
        ActionDescriptor(
            "evaluateEligibility",
            "Evaluate coverage eligibility",
            (
                ParameterSpec("applicant_name", text),
                ParameterSpec("policy_type", text),
                ParameterSpec("pre_existing_conditions", text),
            ),
        ),
        service.evaluate_eligibility,
    )
    registry.register(
        ActionDescriptor(
            "generateRiskReport",
            "Generate risk report",
            (ParameterSpec("application_id", text),),
        ),
        service.generate_risk_report,
    )
    registry.register(
        ActionDescriptor(
            "processApplication",
            "Approve or decline insurance application",
            (
                ParameterSpec("application_id", text),
                ParameterSpec("decision", text),
                ParameterSpec("reason", text),
            ),
        ),
        service.process_application,
    )
    registry.register(
        ActionDescriptor(
            "setPolicyTerms",
            "Set policy terms and conditions",
            (
                ParameterSpec("policy_type", text),
                ParameterSpec("term_length", integer),
                ParameterSpec("coverage_amount", decimal),
            ),
        ),
        service.set_policy_terms,
    )
    return registry
