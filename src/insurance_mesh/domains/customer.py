"""Customer service: accounts, inquiries, appointments and payments."""

from datetime import timedelta

from insurance_mesh.actions import ActionDescriptor, ActionRegistry, ParameterKind, ParameterSpec
from insurance_mesh.domains.common import (
    Clock,
    IdGenerator,
    add_months,
    format_timestamp,
    system_clock,
)

AGENT_NAME = "customer"

INQUIRY_RESPONSES = {
    "policy": (
        "Your policy information has been retrieved. You have 3 active policies "
        "with total coverage of $850,000. Would you like details on a specific policy?"
    ),
    "claim": (
        "I can help you with your claim. Please provide your claim number, "
        "or I can look up recent claims on your account."
    ),
    "payment": (
        "Your last payment of $291.67 was received on Jan 15, 2026. "
        "Next payment due: Feb 15, 2026. Would you like to make a payment now?"
    ),
    "coverage": (
        "I can review your current coverage and suggest any gaps. "
        "Your current policies include Life, Auto, and Home insurance."
    ),
}
DEFAULT_INQUIRY_RESPONSE = (
    "Thank you for your inquiry. A customer service representative "
    "will review your question and respond within 24 hours."
)

SERVICE_STATUS_LINES = (
    "Policy Management: OPERATIONAL",
    "Claims Processing: OPERATIONAL",
    "Underwriting: OPERATIONAL",
    "Payment Gateway: OPERATIONAL",
    "Customer Portal: OPERATIONAL",
    "Phone Support: OPERATIONAL (24/7)",
    "Email Support: OPERATIONAL (Response within 4 hours)",
    "Live Chat: OPERATIONAL (9 AM - 6 PM EST)",
)

SUPPORT_OPTIONS = """Customer Support Options
=================================

1. PHONE SUPPORT
   General Inquiries: 1-800-555-0100
   Claims: 1-800-555-0200
   Roadside Assistance: 1-800-555-0300
   Hours: 24/7

2. ONLINE SUPPORT
   Customer Portal: https://insurance.com/portal
   Live Chat: https://insurance.com/chat
   Email: support@insurance.com

3. MOBILE APP
   iOS: Download from App Store
   Android: Download from Google Play
   Features: Policy management, claims, payments

4. IN-PERSON
   Find an office: https://insurance.com/locations
   Schedule appointment required

5. EMERGENCY SUPPORT
   24/7 Emergency Claims: 1-800-555-9999"""


class CustomerServiceService:
    """Mock customer service desk."""

    def __init__(self, ids: IdGenerator | None = None, clock: Clock | None = None) -> None:
        self.ids = ids or IdGenerator()
        self.clock = clock or system_clock

    def get_customer_account(self, customer_id: str) -> str:
        return (
            "Customer Account Information\n"
            f"Customer ID: {customer_id}\n"
            "=================================\n"
            "Name: John Doe\n"
            "Email: john.doe@email.com\n"
            "Phone: (555) 123-4567\n"
            "Address: 123 Main St, Springfield, IL 62701\n"
            "Date of Birth: 1984-05-15\n"
            "Customer Since: 2020-03-10\n"
            "Account Status: ACTIVE\n"
            "Preferred Contact: Email\n"
            "Active Policies: 3\n"
            "Total Premium: $3,500/year"
        )

    def update_customer_info(self, customer_id: str, field: str, new_value: str) -> str:
        return (
            "Customer information updated successfully.\n"
            f"Customer ID: {customer_id}\n"
            f"Field Updated: {field}\n"
            f"New Value: {new_value}\n"
            f"Update Date: {format_timestamp(self.clock())}\n"
            "Status: CONFIRMED"
        )

    def handle_inquiry(self, customer_id: str, inquiry_type: str, question: str) -> str:
        response = INQUIRY_RESPONSES.get(inquiry_type.lower(), DEFAULT_INQUIRY_RESPONSE)
        return (
            "Customer Inquiry Response\n"
            f"Customer ID: {customer_id}\n"
            "=================================\n"
            f"Inquiry Type: {inquiry_type}\n"
            f"Question: {question}\n\n"
            f"Response:\n{response}\n\n"
            f"Ticket Number: {self.ids.next('TKT')}\n"
            "Agent: Virtual Assistant\n"
            f"Response Time: {format_timestamp(self.clock())}"
        )

    def schedule_appointment(
        self, customer_id: str, appointment_type: str, preferred_date: str
    ) -> str:
        return (
            "Appointment Scheduled Successfully\n"
            "=================================\n"
            f"Customer ID: {customer_id}\n"
            f"Appointment Type: {appointment_type}\n"
            f"Date: {preferred_date}\n"
            "Time: 2:00 PM\n"
            "Duration: 45 minutes\n"
            "Agent: Sarah Johnson\n"
            "Location: Virtual Meeting\n"
            "Meeting Link: https://insurance.com/meet/abc123\n"
            f"Confirmation Number: {self.ids.next('APT')}\n"
            "Reminder: You will receive email and SMS reminders 24 hours before"
        )

    def generate_documents(self, policy_number: str, document_type: str) -> str:
        document_id = self.ids.next("DOC")
        now = self.clock()
        return (
            "Document Generation Request\n"
            "=================================\n"
            f"Policy Number: {policy_number}\n"
            f"Document Type: {document_type}\n"
            "Generation Status: COMPLETED\n"
            f"Document ID: {document_id}\n"
            f"Generated Date: {format_timestamp(now)}\n"
            f"Download Link: https://insurance.com/docs/download/{document_id}\n"
            f"Valid Until: {now.date() + timedelta(days=30)}\n"
            "Format: PDF\n"
            "Note: Document will be sent to your registered email address"
        )

    def process_payment(
        self, customer_id: str, policy_number: str, amount: float, payment_method: str
    ) -> str:
        now = self.clock()
        return (
            "Payment Processed Successfully\n"
            "=================================\n"
            f"Customer ID: {customer_id}\n"
            f"Policy Number: {policy_number}\n"
            f"Payment Amount: ${amount:.2f}\n"
            f"Payment Method: {payment_method}\n"
            f"Confirmation Number: {self.ids.next('PAY')}\n"
            f"Transaction Date: {format_timestamp(now)}\n"
            f"Next Payment Due: {add_months(now.date(), 1)}\n"
            "Status: COMPLETED\n"
            "Receipt sent to registered email address"
        )

    def submit_feedback(self, customer_id: str, rating: int, comments: str) -> str:
        return (
            "Thank you for your feedback!\n"
            "=================================\n"
            f"Feedback ID: {self.ids.next('FDB')}\n"
            f"Customer ID: {customer_id}\n"
            f"Rating: {rating}/5 stars\n"
            f"Comments: {comments}\n"
            f"Submission Date: {format_timestamp(self.clock())}\n"
            "Status: RECEIVED\n"
            "Thank you for helping us improve our service!"
        )

    def check_service_status(self) -> str:
        lines = "\n".join(SERVICE_STATUS_LINES)
        return (
            "Insurance Services Status\n"
            "=================================\n"
            f"{lines}\n"
            f"Last Update: {format_timestamp(self.clock())}"
        )

    def get_support_options(self) -> str:
        return SUPPORT_OPTIONS


def create_registry(ids: IdGenerator | None = None, clock: Clock | None = None) -> ActionRegistry:
    """Build the customer service registry."""
    service = CustomerServiceService(ids=ids, clock=clock)
    registry = ActionRegistry()
    text = ParameterKind.STRING

    registry.register(
        ActionDescriptor(
            "getCustomerAccount",
            "Get customer account information",
            (ParameterSpec("customer_id", text),),
        ),
        service.get_customer_account,
    )
    registry.register(
        ActionDescriptor(
            "updateCustomerInfo",
            "Update customer information",
            (
                ParameterSpec("customer_id", text),
                ParameterSpec("field", text),
                ParameterSpec("new_value", text),
            ),
        ),
        service.update_customer_info,
    )
    registry.register(
        ActionDescriptor(
            "handleInquiry",
            "Handle customer inquiry",
            (
                ParameterSpec("customer_id", text),
                ParameterSpec("inquiry_type", text),
                ParameterSpec("question", text),
            ),
        ),
        service.handle_inquiry,
    )
    registry.register(
        ActionDescriptor(
            "scheduleAppointment",
            "Schedule appointment with agent",
            (
                ParameterSpec("customer_id", text),
                ParameterSpec("appointment_type", text),
                ParameterSpec("preferred_date", text),
            ),
        ),
        service.schedule_appointment,
    )
    registry.register(
        ActionDescriptor(
            "generateDocuments",
            "Generate policy documents",
            (ParameterSpec("policy_number", text), ParameterSpec("document_type", text)),
        ),
        service.generate_documents,
    )
    registry.register(
        ActionDescriptor(
            "processPayment",
            "Process customer payment",
            (
                ParameterSpec("customer_id", text),
                ParameterSpec("policy_number", text),
                ParameterSpec("amount", ParameterKind.DECIMAL),
                ParameterSpec("payment_method", text),
            ),
        ),
        service.process_payment,
    )
    registry.register(
        ActionDescriptor(
            "submitFeedback",
            "Submit customer feedback",
            (
                ParameterSpec("customer_id", text),
                ParameterSpec("rating", ParameterKind.INTEGER),
                ParameterSpec("comments", text),
            ),
        ),
        service.submit_feedback,
    )
    registry.register(
        ActionDescriptor("checkServiceStatus", "Check service availability"),
        service.check_service_status,
    )
    registry.register(
        ActionDescriptor("getSupportOptions", "Get customer support options"),
        service.get_support_options,
    )
    return registry
