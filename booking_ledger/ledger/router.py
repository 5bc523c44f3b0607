# booking_ledger/ledger/router.py

from fastapi import APIRouter, Depends, HTTPException

from booking_ledger.core.dependencies import get_payment_engine
from booking_ledger.core.exceptions import (
    LedgerIntegrityError,
    PaymentValidationError,
    RecordNotFoundError,
)
from booking_ledger.installments.schemas import InstallmentResponse
from booking_ledger.ledger.schemas import (
    BookingLedgerResponse,
    LedgerEntryDeleteResponse,
    LedgerEntryResponse,
    RemainingBalanceResponse,
)
from booking_ledger.payments.engine import PaymentEngine
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingLedgerResponse,
    summary="List Ledger Entries of a Booking",
)
def list_booking_ledger(
    booking_id: int,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """Every ledger entry of the booking with the totals derived from them."""
    try:
        balance = engine.get_remaining(booking_id)
        entries = engine.reader.list_entries(booking_id)
        return BookingLedgerResponse(
            booking_id=booking_id,
            entries=[LedgerEntryResponse.model_validate(entry) for entry in entries],
            balance=RemainingBalanceResponse(
                booking_id=balance.booking_id,
                unit_price=balance.unit_price,
                total_paid=balance.total_paid,
                remaining=balance.remaining,
                is_settled=balance.is_settled,
            ),
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except LedgerIntegrityError as e:
        logger.error("Integrity error reading ledger of booking %s: %s", booking_id, e)
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.delete(
    "/entries/{ledger_entry_id}",
    response_model=LedgerEntryDeleteResponse,
    summary="Delete a Ledger Entry",
)
def delete_ledger_entry(
    ledger_entry_id: int,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """
    Removes a ledger entry, reopens the installments it paid for and
    reconciles the open schedule with the new balance.
    """
    try:
        booking_id = engine.ledger_repo.get_entry_or_raise(ledger_entry_id).booking_id
        reopened = engine.delete_ledger_entry(ledger_entry_id)
        return LedgerEntryDeleteResponse(
            deleted_ledger_entry_id=ledger_entry_id,
            reopened_installments=[InstallmentResponse.model_validate(i) for i in reopened],
            remaining=engine.get_remaining(booking_id).remaining,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentValidationError as e:
        logger.warning("Validation error in delete_ledger_entry: %s", e)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error("Error deleting ledger entry %s: %s", ledger_entry_id, e, exc_info=True)
        raise HTTPException(
            status_code=500, detail="An error occurred while deleting the ledger entry."
        ) from e
