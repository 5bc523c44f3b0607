# booking_ledger/installments/router.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from booking_ledger.core.config import settings
from booking_ledger.core.dependencies import get_payment_engine
from booking_ledger.core.exceptions import (
    LedgerIntegrityError,
    PaymentValidationError,
    RecordNotFoundError,
)
from booking_ledger.installments.schemas import (
    InstallmentResponse,
    ReverseInstallmentResponse,
    SettleInstallmentRequest,
    SettleInstallmentResponse,
    UpcomingInstallmentListResponse,
    UpcomingInstallmentResponse,
)
from booking_ledger.payments.engine import PaymentEngine
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/installments", tags=["Installments"])


@router.get(
    "/upcoming",
    response_model=UpcomingInstallmentListResponse,
    summary="List Upcoming Installments",
)
def list_upcoming_installments(
    days_ahead: Optional[int] = Query(None, ge=0, le=365, description="Look-ahead window in days."),
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """
    Unpaid installments due within the window, overdue ones first.
    """
    try:
        window = days_ahead if days_ahead is not None else settings.upcoming_window_days
        upcoming = engine.list_upcoming(window)
        items = [UpcomingInstallmentResponse.model_validate(item) for item in upcoming]
        return UpcomingInstallmentListResponse(
            items=items, total_items=len(items), days_ahead=window
        )
    except Exception as e:
        logger.error("Error listing upcoming installments: %s", e, exc_info=True)
        raise HTTPException(
            status_code=500, detail="An error occurred while listing upcoming installments."
        ) from e


@router.get("/{installment_id}", response_model=InstallmentResponse, summary="Get Installment")
def get_installment(
    installment_id: int,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    try:
        return engine.installment_repo.get_or_raise(installment_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post(
    "/{installment_id}/settle",
    response_model=SettleInstallmentResponse,
    summary="Settle an Installment",
)
def settle_installment(
    installment_id: int,
    request: SettleInstallmentRequest,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """
    Pays an installment in full. Installments must be settled in order.
    """
    try:
        entry = engine.settle_installment(
            installment_id,
            attachment_ref=request.attachment_ref,
            payment_date=request.payment_date,
            require_attachment=request.require_attachment,
        )
        installment = engine.installment_repo.get_or_raise(installment_id)
        return SettleInstallmentResponse(
            installment=InstallmentResponse.model_validate(installment),
            ledger_entry_id=entry.id,
            remaining=engine.get_remaining(entry.booking_id).remaining,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentValidationError as e:
        logger.warning("Validation error in settle_installment: %s", e)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error("Error settling installment %s: %s", installment_id, e, exc_info=True)
        raise HTTPException(
            status_code=500, detail="An error occurred while settling the installment."
        ) from e


@router.post(
    "/{installment_id}/reverse",
    response_model=ReverseInstallmentResponse,
    summary="Reverse an Installment Settlement",
)
def reverse_installment(
    installment_id: int,
    engine: PaymentEngine = Depends(get_payment_engine),
):
    """
    Deletes the ledger entry that paid the installment and reopens it.
    """
    try:
        deleted_entry_id = engine.reverse_settlement(installment_id)
        installment = engine.installment_repo.get_or_raise(installment_id)
        return ReverseInstallmentResponse(
            installment=InstallmentResponse.model_validate(installment),
            deleted_ledger_entry_id=deleted_entry_id,
            remaining=engine.get_remaining(installment.booking_id).remaining,
        )
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PaymentValidationError as e:
        logger.warning("Validation error in reverse_installment: %s", e)
        raise HTTPException(status_code=400, detail=str(e)) from e
    except LedgerIntegrityError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except Exception as e:
        logger.error("Error reversing installment %s: %s", installment_id, e, exc_info=True)
        raise HTTPException(
            status_code=500, detail="An error occurred while reversing the installment."
        ) from e
