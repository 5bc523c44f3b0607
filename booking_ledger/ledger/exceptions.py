# booking_ledger/ledger/exceptions.py

from decimal import Decimal

from booking_ledger.core.exceptions import (
    LedgerIntegrityError,
    PaymentValidationError,
    RecordNotFoundError,
)


class LedgerEntryNotFoundError(RecordNotFoundError):
    """Raised when a ledger entry cannot be found."""
    def __init__(self, entry_id: int = None):
        self.entry_id = entry_id
        super().__init__("Ledger entry", entry_id)


class InvalidPaymentAmountError(PaymentValidationError):
    """Raised when a payment amount is zero or negative."""
    def __init__(self, amount: Decimal):
        self.amount = amount
        super().__init__(f"Payment amount must be greater than zero, got {amount}.")


class AmountExceedsRemainingError(PaymentValidationError):
    """Raised when a payment would push the amount paid above the unit price."""
    def __init__(self, amount: Decimal, remaining: Decimal):
        self.amount = amount
        self.remaining = remaining
        super().__init__(
            f"Payment amount {amount} exceeds the remaining balance {remaining}."
        )


class NegativeRemainingError(LedgerIntegrityError):
    """Raised when the ledger shows more money received than the unit price."""
    def __init__(self, booking_id: int, unit_price: Decimal, total_paid: Decimal):
        self.booking_id = booking_id
        self.unit_price = unit_price
        self.total_paid = total_paid
        super().__init__(
            f"Booking {booking_id} has {total_paid} paid against a unit price of "
            f"{unit_price}; remaining balance is negative."
        )


class ScheduleMismatchError(LedgerIntegrityError):
    """Raised when the unpaid schedule does not add up to the ledger remaining."""
    def __init__(self, booking_id: int, scheduled: Decimal, remaining: Decimal):
        self.booking_id = booking_id
        self.scheduled = scheduled
        self.remaining = remaining
        super().__init__(
            f"Booking {booking_id}: unpaid schedule totals {scheduled} but the ledger "
            f"remaining is {remaining}."
        )


class UnlinkedLegacyPaymentError(LedgerIntegrityError):
    """Raised when paid installments carry money that never reached the ledger."""
    def __init__(self, booking_id: int, installment_numbers: list):
        self.booking_id = booking_id
        self.installment_numbers = installment_numbers
        super().__init__(
            f"Booking {booking_id} has paid installments without ledger entries "
            f"({', '.join(f'#{n}' for n in installment_numbers)}); run the legacy back-fill."
        )
