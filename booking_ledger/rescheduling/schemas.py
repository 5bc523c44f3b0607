# booking_ledger/rescheduling/schemas.py

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from booking_ledger.installments.schemas import InstallmentResponse
from booking_ledger.rescheduling.exceptions import InvalidRescheduleStrategyError
from booking_ledger.rescheduling.strategies import (
    REDUCE_AMOUNT,
    NewPlan,
    RescheduleStrategy,
    StrategyName,
)


class RescheduleStrategyRequest(BaseModel):
    """
    How the open schedule should be recomputed.
    `years`, `frequency_months` and `start_date` are required for `new_plan`.
    """
    model_config = ConfigDict(json_schema_extra={
        "examples": [
            {"strategy": "reduce_amount"},
            {"strategy": "new_plan", "years": 4, "frequency_months": 3, "start_date": "2025-01-01"},
        ]
    })

    strategy: StrategyName = Field(
        default=StrategyName.REDUCE_AMOUNT, description="reduce_amount or new_plan"
    )
    years: Optional[int] = Field(None, description="Plan length in years (4 or 5)")
    frequency_months: Optional[int] = Field(
        None, description="Months between installments (1, 2, 3, 4, 5, 6 or 12)"
    )
    start_date: Optional[date] = Field(None, description="Due date of the first new installment")

    def to_strategy(self) -> RescheduleStrategy:
        if self.strategy == StrategyName.REDUCE_AMOUNT:
            return REDUCE_AMOUNT
        missing = [
            name
            for name in ("years", "frequency_months", "start_date")
            if getattr(self, name) is None
        ]
        if missing:
            raise InvalidRescheduleStrategyError(
                f"new_plan requires {', '.join(missing)}."
            )
        return NewPlan(
            years=self.years,
            frequency_months=self.frequency_months,
            start_date=self.start_date,
        )


class ReschedulePreviewRequest(RescheduleStrategyRequest):
    amount: Decimal = Field(default=Decimal("0.00"), ge=0, description="Payment to simulate")


class PlanUpdateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    years: int
    frequency_months: int
    start_date: date
    monthly_amount: Decimal
    installment_amount: Decimal
    total_installments: int


class RescheduleResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: int
    remaining: Decimal
    updated_installments: List[InstallmentResponse] = []
    removed_installments: int = 0
    plan_update: Optional[PlanUpdateResponse] = None
    fully_covered: bool = False


class SchedulePreviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    remaining_after: Decimal
    installment_count: int
    installment_amount: Decimal
    last_installment_amount: Decimal
