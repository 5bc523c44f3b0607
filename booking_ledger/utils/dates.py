# booking_ledger/utils/dates.py

from datetime import date
from typing import List, Optional

from dateutil.relativedelta import relativedelta


def today() -> date:
    return date.today()


def resolve_today(value: Optional[date]) -> date:
    return value if value is not None else today()


def add_months(start: date, months: int) -> date:
    """Adds calendar months, clamping to the last day of shorter months."""
    return start + relativedelta(months=months)


def due_dates(start: date, frequency_months: int, count: int) -> List[date]:
    """
    Due dates for `count` installments, the first on `start` and each
    following one `frequency_months` later.

    Every date is computed from `start` so that a 31st does not drift to the
    28th after February.
    """
    return [add_months(start, i * frequency_months) for i in range(count)]
