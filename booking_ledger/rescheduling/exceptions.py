# booking_ledger/rescheduling/exceptions.py

from booking_ledger.core.exceptions import PaymentValidationError


class InvalidRescheduleStrategyError(PaymentValidationError):
    """Raised for unsupported plan parameters or strategy choices."""
    pass


class InvalidPlanStartDateError(PaymentValidationError):
    """Raised when a new plan would start before an installment that is kept."""
    pass
