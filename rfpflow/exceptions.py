"""
exceptions.py — Application error taxonomy

Services raise these; main.py translates them into the JSON response
envelope with the matching HTTP status. Anything else that escapes a
router is an unexpected bug and becomes a generic 500.

Business Rules:
- Validation and conflict errors are 400 (user-correctable)
- Missing RFP / vendor by id is 404
- Extraction and mail transport failures are 502 (dependency errors)
"""


class AppError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Invalid request"


class RFPNotFound(AppError):
    status_code = 404
    default_message = "RFP not found"


class VendorNotFound(AppError):
    status_code = 404
    default_message = "Vendor not found. Please add vendor first."


class DuplicateVendor(AppError):
    status_code = 400
    default_message = "Vendor with this email already exists"


class NoAssociatedRFP(AppError):
    status_code = 400
    default_message = "No RFP found for this vendor"


class InsufficientProposals(AppError):
    status_code = 400
    default_message = "At least two proposals are required for comparison"


class ExtractionError(AppError):
    status_code = 502
    default_message = "Failed to extract structured data"


class MailDeliveryError(AppError):
    status_code = 502
    default_message = "Failed to send email"


class MailboxError(AppError):
    status_code = 502
    default_message = "Failed to check emails"
