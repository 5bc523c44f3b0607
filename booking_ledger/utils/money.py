# booking_ledger/utils/money.py

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[Decimal, int, str]


def to_decimal(value: Amount) -> Decimal:
    """Converts ints, strings and Decimals to a Decimal. Floats are rejected."""
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round2(value: Amount) -> Decimal:
    """Rounds half up to two decimal places."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(values: Iterable[Amount]) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def split_evenly(total: Amount, count: int) -> List[Decimal]:
    """
    Splits `total` into `count` parts of round2(total / count).

    The last part absorbs the rounding residual so that the parts always add
    up to `total` exactly.
    """
    if count <= 0:
        raise ValueError("count must be positive")

    total = round2(total)
    base = round2(total / count)
    parts = [base] * (count - 1)
    parts.append(round2(total - money_sum(parts)))
    return parts
