# booking_ledger/extra_payments/schemas.py

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from booking_ledger.extra_payments.models import PaymentMethod
from booking_ledger.installments.schemas import InstallmentResponse
from booking_ledger.ledger.schemas import LedgerEntryResponse
from booking_ledger.rescheduling.schemas import RescheduleStrategyRequest
from booking_ledger.rescheduling.strategies import StrategyName


class ExtraPaymentCreateRequest(BaseModel):
    """
    Request schema for an out-of-plan payment. The amount may not exceed the
    remaining balance; paying exactly the remaining balance closes the booking.
    """
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "booking_id": 1,
                "amount": 15000000,
                "payment_date": "2025-04-01",
                "payment_method": "Bank transfer",
                "reschedule": {"strategy": "reduce_amount"},
            }
        ]
    })

    booking_id: int
    amount: Decimal = Field(..., description="Amount received (must be positive)")
    payment_date: Optional[date] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    reschedule: RescheduleStrategyRequest = Field(default_factory=RescheduleStrategyRequest)
    description: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)
    attachment_ref: Optional[str] = Field(None, max_length=255)


class ExtraPaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_id: int
    ledger_entry_id: Optional[int] = None
    amount: Decimal
    payment_date: date
    payment_method: PaymentMethod
    reschedule_strategy: Optional[StrategyName] = None
    new_installment_count: int
    description: Optional[str] = None
    notes: Optional[str] = None


class ExtraPaymentOutcomeResponse(BaseModel):
    extra_payment: ExtraPaymentResponse
    ledger_entry: LedgerEntryResponse
    open_installments: List[InstallmentResponse]
    remaining: Decimal
    booking_status: str
