"""
Domain-specific exceptions for the dealers app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses.
"""


class DealersServiceError(Exception):
    """Base exception for all dealers service errors."""
    pass


class DealerNotFoundError(DealersServiceError):
    """Raised when a dealer slug or ID does not resolve."""
    pass


class NotDealerMemberError(DealersServiceError):
    """Raised when a user has no active membership at the dealer."""
    pass


class InsufficientPermissionsError(DealersServiceError):
    """Raised when a user lacks the role required for an action."""
    pass


class AlreadyMemberError(DealersServiceError):
    """Raised when adding a user who already has an active membership."""
    pass


class LastOwnerError(DealersServiceError):
    """Raised when an action would leave a dealer without an owner."""
    pass
