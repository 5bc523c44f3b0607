# booking_ledger/extra_payments/router.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from booking_ledger.core.dependencies import get_payment_engine
from booking_ledger.core.exceptions import (
    LedgerIntegrityError,
    PaymentValidationError,
    RecordNotFoundError,
)
from booking_ledger.extra_payments.schemas import (
    ExtraPaymentCreateRequest,
    ExtraPaymentOutcomeResponse,
    ExtraPaymentResponse,
)
from booking_ledger.installments.schemas import InstallmentResponse
from booking_ledger.ledger.schemas import LedgerEntryResponse
from booking_ledger.payments.engine import PaymentEngine
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/extra-payments", tags=["Extra Payments"])


@router.post(
    "",
    response_model=ExtraPaymentOutcomeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record an Extra Payment",
)
def record_extra_payment(
    request: ExtraPaymentCreateRequest,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """
    Records an out-of-plan payment and recomputes the open schedule with the
    chosen strategy. Paying exactly the remaining balance closes the booking.
    """
    try:
        outcome = engine.record_extra_payment(
            request.booking_id,
            request.amount,
            payment_date=request.payment_date,
            strategy=request.reschedule.to_strategy(),
            payment_method=request.payment_method,
            notes=request.notes,
            description=request.description,
            attachment_ref=request.attachment_ref,
        )
        booking = engine.booking_repo.get_or_raise(request.booking_id)
        return ExtraPaymentOutcomeResponse(
            extra_payment=ExtraPaymentResponse.model_validate(outcome.extra_payment),
            ledger_entry=LedgerEntryResponse.model_validate(outcome.ledger_entry),
            open_installments=[
                InstallmentResponse.model_validate(i) for i in outcome.updated_schedule
            ],
            remaining=engine.get_remaining(request.booking_id).remaining,
            booking_status=booking.status.value,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentValidationError as e:
        logger.warning("Validation error in record_extra_payment: %s", e)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error("Error recording extra payment: %s", e, exc_info=True)
        raise HTTPException(
            status_code=500, detail="An error occurred while recording the extra payment."
        ) from e


@router.get(
    "/bookings/{booking_id}",
    response_model=List[ExtraPaymentResponse],
    summary="List Extra Payments of a Booking",
)
def list_extra_payments(
    booking_id: int,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    try:
        engine.booking_repo.get_or_raise(booking_id)
        return engine.extra_repo.list_for_booking(booking_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
