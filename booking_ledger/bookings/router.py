# booking_ledger/bookings/router.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from booking_ledger.bookings.schemas import (
    BookingCreateRequest,
    BookingDetailResponse,
    BookingResponse,
    PaymentCreateRequest,
)
from booking_ledger.core.dependencies import get_payment_engine
from booking_ledger.core.exceptions import (
    LedgerIntegrityError,
    PaymentValidationError,
    RecordNotFoundError,
)
from booking_ledger.installments.schemas import InstallmentResponse
from booking_ledger.ledger.schemas import LedgerEntryResponse, RemainingBalanceResponse
from booking_ledger.payments.engine import PaymentEngine
from booking_ledger.rescheduling.schemas import (
    ReschedulePreviewRequest,
    RescheduleResultResponse,
    RescheduleStrategyRequest,
    SchedulePreviewResponse,
)
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/bookings", tags=["Bookings"])


def _balance_response(engine: PaymentEngine, booking_id: int) -> RemainingBalanceResponse:
    balance = engine.get_remaining(booking_id)
    return RemainingBalanceResponse(
        booking_id=balance.booking_id,
        unit_price=balance.unit_price,
        total_paid=balance.total_paid,
        remaining=balance.remaining,
        is_settled=balance.is_settled,
    )


@router.post(
    "",
    response_model=BookingDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a Booking",
)
def create_booking(
    request: BookingCreateRequest,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """
    Opens a booking, records the deposit in the ledger and generates the
    initial installment schedule.
    """
    try:
        booking = engine.create_booking(
            unit_id=request.unit_id,
            customer_id=request.customer_id,
            plan=request.plan.to_plan() if request.plan else None,
            deposit_amount=request.deposit_amount,
            booking_date=request.booking_date,
            customer_name=request.customer_name,
        )
        return BookingDetailResponse(
            booking=BookingResponse.model_validate(booking),
            balance=_balance_response(engine, booking.id),
            installments=[
                InstallmentResponse.model_validate(i)
                for i in engine.installment_repo.list_for_booking(booking.id)
            ],
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentValidationError as e:
        logger.warning("Validation error in create_booking: %s", e)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error("Error creating booking: %s", e, exc_info=True)
        raise HTTPException(
            status_code=500, detail="An error occurred while creating the booking."
        ) from e


@router.get("/{booking_id}", response_model=BookingDetailResponse, summary="Get Booking Details")
def get_booking(
    booking_id: int,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """Booking, ledger totals and the full installment schedule."""
    try:
        booking = engine.booking_repo.get_or_raise(booking_id)
        return BookingDetailResponse(
            booking=BookingResponse.model_validate(booking),
            balance=_balance_response(engine, booking.id),
            installments=[
                InstallmentResponse.model_validate(i)
                for i in engine.installment_repo.list_for_booking(booking.id)
            ],
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error("Error getting booking %s: %s", booking_id, e, exc_info=True)
        raise HTTPException(
            status_code=500, detail="An error occurred while retrieving the booking."
        ) from e


@router.get(
    "/{booking_id}/remaining",
    response_model=RemainingBalanceResponse,
    summary="Get Remaining Balance",
)
def get_remaining(
    booking_id: int,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    try:
        return _balance_response(engine, booking_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.post(
    "/{booking_id}/payments",
    response_model=LedgerEntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record an On-account Payment",
)
def record_payment(
    booking_id: int,
    request: PaymentCreateRequest,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """
    Records a payment against the booking as a whole. The open installments
    are spread again over what is left.
    """
    try:
        return engine.record_payment(
            booking_id,
            request.amount,
            payment_date=request.payment_date,
            attachment_ref=request.attachment_ref,
            note=request.note,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentValidationError as e:
        logger.warning("Validation error in record_payment: %s", e)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error("Error recording payment for booking %s: %s", booking_id, e, exc_info=True)
        raise HTTPException(
            status_code=500, detail="An error occurred while recording the payment."
        ) from e


@router.post(
    "/{booking_id}/reschedule",
    response_model=RescheduleResultResponse,
    summary="Recalculate the Open Schedule",
)
def reschedule_booking(
    booking_id: int,
    request: RescheduleStrategyRequest,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """Recomputes the open installments from the ledger without a new payment."""
    try:
        result = engine.reschedule_only(booking_id, request.to_strategy())
        return RescheduleResultResponse.model_validate(result)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentValidationError as e:
        logger.warning("Validation error in reschedule_booking: %s", e)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error("Error rescheduling booking %s: %s", booking_id, e, exc_info=True)
        raise HTTPException(
            status_code=500, detail="An error occurred while rescheduling the booking."
        ) from e


@router.post(
    "/{booking_id}/reschedule/preview",
    response_model=SchedulePreviewResponse,
    summary="Preview a Reschedule",
)
def preview_reschedule(
    booking_id: int,
    request: ReschedulePreviewRequest,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """Shows what a strategy would produce after a payment, without writing anything."""
    try:
        preview = engine.preview_reschedule(booking_id, request.to_strategy(), request.amount)
        return SchedulePreviewResponse.model_validate(preview)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e


@router.post(
    "/{booking_id}/legacy-backfill",
    response_model=List[LedgerEntryResponse],
    summary="Back-fill Legacy Installment Payments",
)
def backfill_legacy_payments(
    booking_id: int,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """
    Writes ledger entries for installments that were marked paid before the
    ledger existed.
    """
    try:
        return engine.backfill_legacy_payments(booking_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LedgerIntegrityError as e:
        logger.error("Integrity error during legacy back-fill: %s", e)
        raise HTTPException(status_code=409, detail=str(e)) from e
