"""Exception hierarchy for the billing core."""


class BillingError(Exception):
    """Base exception for all billing errors."""


class ValidationError(BillingError, ValueError):
    """Raised when input is missing or malformed. Nothing is written."""


class NotFoundError(BillingError, LookupError):
    """Raised when a referenced customer, transaction or installment does not exist."""


class ConstraintError(BillingError):
    """Raised when an operation would break a business rule (e.g. deleting a customer with transactions)."""
