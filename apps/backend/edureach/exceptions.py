"""
Error taxonomy for the lead engine.

Validation, not-found and conflict errors stop the operation and reach the
caller. Dependent failures (scoring, notifications) are logged where they
happen and never surface past the lead service.
"""


class LeadError(Exception):
    """Base class for errors reported to callers of the lead engine"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LeadValidationError(LeadError):
    status_code = 400


class LeadNotFoundError(LeadError):
    status_code = 404

    def __init__(self, lead_id, kind: str = "Lead"):
        super().__init__(f"{kind} not found: {lead_id}")
        self.lead_id = lead_id


class LeadConflictError(LeadError):
    """Raised when two submissions race to create the same email. Retryable."""

    status_code = 409

    def __init__(self, email: str):
        super().__init__("A lead with this email already exists")
        self.email = email


class PaymentError(LeadError):
    status_code = 500


class PaymentSignatureError(PaymentError):
    status_code = 400

    def __init__(self):
        super().__init__("Invalid payment signature")


class PaymentGatewayError(PaymentError):
    status_code = 502
