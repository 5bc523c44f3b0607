# booking_ledger/installments/exceptions.py

from booking_ledger.core.exceptions import (
    LedgerIntegrityError,
    PaymentValidationError,
    RecordNotFoundError,
)


class InstallmentNotFoundError(RecordNotFoundError):
    """Raised when a specific installment cannot be found."""
    def __init__(self, installment_id: int = None):
        self.installment_id = installment_id
        super().__init__("Installment", installment_id)


class SettlementNotAllowedError(PaymentValidationError):
    """Raised when the settlement gate rejects an installment."""
    def __init__(self, installment_number: int, reason: str, blocking_number: int = None):
        self.installment_number = installment_number
        self.reason = reason
        self.blocking_number = blocking_number
        super().__init__(reason)


class AttachmentRequiredError(PaymentValidationError):
    """Raised when policy requires an attachment and none was supplied."""
    def __init__(self, installment_number: int):
        self.installment_number = installment_number
        super().__init__(
            f"An attachment is required to settle installment #{installment_number}."
        )


class InvalidReversalError(LedgerIntegrityError):
    """Raised when a reversal targets an installment that has no paid state."""
    def __init__(self, installment_number: int, status: str):
        self.installment_number = installment_number
        self.status = status
        super().__init__(
            f"Installment #{installment_number} cannot be reversed: status is '{status}', not 'paid'."
        )


class CoveredReversalNotAllowedError(PaymentValidationError):
    """
    Raised when an externally covered installment is reopened while the
    ledger still shows the unit fully paid.
    """
    def __init__(self, installment_number: int):
        self.installment_number = installment_number
        super().__init__(
            f"Installment #{installment_number} is covered by an out-of-plan payment and the "
            f"booking is fully paid; delete the covering ledger entry instead."
        )
