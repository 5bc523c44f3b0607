# booking_ledger/ledger/schemas.py

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from booking_ledger.installments.schemas import InstallmentResponse
from booking_ledger.ledger.models import PaymentKind


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_id: int
    amount: Decimal
    payment_date: date
    kind: PaymentKind
    attachment_ref: Optional[str] = None
    note: Optional[str] = None


class RemainingBalanceResponse(BaseModel):
    """Totals read from the ledger; nothing here is stored on the booking."""
    model_config = ConfigDict(from_attributes=True)

    booking_id: int
    unit_price: Decimal
    total_paid: Decimal
    remaining: Decimal
    is_settled: bool


class BookingLedgerResponse(BaseModel):
    booking_id: int
    entries: List[LedgerEntryResponse]
    balance: RemainingBalanceResponse


class LedgerEntryDeleteResponse(BaseModel):
    deleted_ledger_entry_id: int
    reopened_installments: List[InstallmentResponse]
    remaining: Decimal
