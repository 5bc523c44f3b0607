# booking_ledger/rescheduling/strategies.py

"""
Reschedule strategies.

A strategy is either `ReduceAmount` (keep the open installments, shrink their
amounts) or `NewPlan` (replace the open installments with a fresh plan). The
variant is closed: `NewPlan` cannot be built without its plan parameters.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum as PyEnum
from math import ceil
from typing import Union

from booking_ledger.bookings.models import ALLOWED_FREQUENCY_MONTHS, ALLOWED_PLAN_YEARS
from booking_ledger.rescheduling.exceptions import InvalidRescheduleStrategyError


class StrategyName(str, PyEnum):
    REDUCE_AMOUNT = "reduce_amount"
    NEW_PLAN = "new_plan"


def installment_count(years: int, frequency_months: int) -> int:
    return ceil(years * 12 / frequency_months)


def validate_plan(years: int, frequency_months: int) -> None:
    if years not in ALLOWED_PLAN_YEARS:
        raise InvalidRescheduleStrategyError(
            f"Plan length must be one of {ALLOWED_PLAN_YEARS} years, got {years}."
        )
    if frequency_months not in ALLOWED_FREQUENCY_MONTHS:
        raise InvalidRescheduleStrategyError(
            f"Payment frequency must be one of {ALLOWED_FREQUENCY_MONTHS} months, got {frequency_months}."
        )


@dataclass(frozen=True)
class ReduceAmount:
    name = StrategyName.REDUCE_AMOUNT


@dataclass(frozen=True)
class NewPlan:
    years: int
    frequency_months: int
    start_date: date
    name = StrategyName.NEW_PLAN

    def __post_init__(self):
        validate_plan(self.years, self.frequency_months)
        if not isinstance(self.start_date, date):
            raise InvalidRescheduleStrategyError("A new plan needs a start date.")

    @property
    def installment_count(self) -> int:
        return installment_count(self.years, self.frequency_months)

    @property
    def total_months(self) -> int:
        return self.years * 12


RescheduleStrategy = Union[ReduceAmount, NewPlan]

REDUCE_AMOUNT = ReduceAmount()
