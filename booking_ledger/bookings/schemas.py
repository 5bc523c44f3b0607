# booking_ledger/bookings/schemas.py

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from booking_ledger.bookings.models import BookingStatus
from booking_ledger.installments.schemas import InstallmentResponse
from booking_ledger.ledger.schemas import RemainingBalanceResponse
from booking_ledger.rescheduling.strategies import NewPlan


class PaymentPlanRequest(BaseModel):
    years: int = Field(..., description="Plan length in years (4 or 5)")
    frequency_months: int = Field(
        ..., description="Months between installments (1, 2, 3, 4, 5, 6 or 12)"
    )
    start_date: date = Field(..., description="Due date of installment #1")

    def to_plan(self) -> NewPlan:
        return NewPlan(
            years=self.years,
            frequency_months=self.frequency_months,
            start_date=self.start_date,
        )


class BookingCreateRequest(BaseModel):
    """
    Request schema for opening a booking. The deposit is written to the ledger
    and the rest of the unit price is spread over the plan.
    """
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {
                "unit_id": 1,
                "customer_id": 42,
                "customer_name": "Customer 42",
                "deposit_amount": 20000000,
                "booking_date": "2025-01-01",
                "plan": {"years": 4, "frequency_months": 3, "start_date": "2025-02-01"},
            }
        ]
    })

    unit_id: int
    customer_id: int
    customer_name: Optional[str] = Field(None, max_length=255)
    deposit_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    booking_date: Optional[date] = None
    plan: Optional[PaymentPlanRequest] = None


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    unit_id: int
    customer_id: int
    customer_name: Optional[str] = None
    booking_date: date
    payment_plan_years: Optional[int] = None
    payment_frequency_months: Optional[int] = None
    payment_start_date: Optional[date] = None
    monthly_amount: Optional[Decimal] = None
    installment_amount: Optional[Decimal] = None
    total_installments: Optional[int] = None
    status: BookingStatus
    unit_price: Decimal


class BookingDetailResponse(BaseModel):
    booking: BookingResponse
    balance: RemainingBalanceResponse
    installments: List[InstallmentResponse]


class PaymentCreateRequest(BaseModel):
    """On-account payment not tied to a specific installment."""
    amount: Decimal = Field(..., gt=0)
    payment_date: Optional[date] = None
    attachment_ref: Optional[str] = Field(None, max_length=255)
    note: Optional[str] = Field(None, max_length=1000)
