# booking_ledger/core/exceptions.py

"""
Error taxonomy shared by every module.

Module specific errors in `<module>/exceptions.py` subclass one of the three
categories below so that the HTTP layer and the payment engine can treat them
uniformly.
"""


class BookingLedgerError(Exception):
    """Base exception for all booking ledger errors."""
    pass


class PaymentValidationError(BookingLedgerError):
    """
    The request is not legal in the current state of the booking.
    Reported to the caller; nothing has been written.
    """
    pass


class LedgerIntegrityError(BookingLedgerError):
    """
    Stored data contradicts the ledger invariants.
    Always aborts the enclosing transaction and must never be corrected by clamping.
    """
    pass


class RecordNotFoundError(BookingLedgerError):
    """Raised when a booking, installment or ledger entry cannot be found."""

    def __init__(self, resource: str, resource_id=None):
        self.resource = resource
        self.resource_id = resource_id
        if resource_id is not None:
            super().__init__(f"{resource} with ID '{resource_id}' not found.")
        else:
            super().__init__(f"{resource} not found.")
