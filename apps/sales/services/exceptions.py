"""
Domain-specific exceptions for the sales app.

Services raise these; views translate them into DRF exceptions
(see apps/sales/exceptions.py).
"""


class SalesServiceError(Exception):
    """Base exception for all sales service errors."""
    pass


class DocumentNumberAllocationError(SalesServiceError):
    """
    Raised when every candidate number collided with an existing document.

    Fatal for the calling flow: nothing should be written after it.
    """

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Failed to allocate unique document number after {attempts} attempts"
        )


class CounterContentionError(SalesServiceError):
    """Raised when the counter row could neither be updated nor created."""
    pass


class DealNotFoundError(SalesServiceError):
    """Raised when a deal doesn't exist for the dealer."""
    pass


class InvalidDealStateError(SalesServiceError):
    """Raised when a flow is not allowed for the deal's current status."""
    pass


class DealIncompleteError(SalesServiceError):
    """Raised when a deal lacks data a document needs (customer, price)."""
    pass


class InvoiceAlreadyExistsError(SalesServiceError):
    """Raised when generating an invoice for a deal that already has one."""

    def __init__(self, document_number: str):
        self.document_number = document_number
        super().__init__(f"Invoice already exists: {document_number}")


class ShareLinkInvalidError(SalesServiceError):
    """Raised for unknown, voided or expired share tokens."""
    pass


class InvalidPaymentAmountError(SalesServiceError):
    """Raised when a payment amount is zero or negative."""
    pass
