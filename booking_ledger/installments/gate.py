# booking_ledger/installments/gate.py

"""
Settlement gate.

Installments are settled strictly in order: #N may only be settled once every
installment numbered below N is paid. The check is a plain scan over the
booking's installments and holds no state.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from booking_ledger.installments.models import Installment, InstallmentStatus


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: Optional[str] = None
    blocking_installment_number: Optional[int] = None


ALLOWED = GateDecision(allowed=True)


def can_settle(installment: Installment, installments: Iterable[Installment]) -> GateDecision:
    """
    Decides whether `installment` may be settled now.

    `installments` is every installment of the same booking, in any order.
    When settlement is blocked by an earlier installment, the reason names the
    lowest-numbered one.
    """
    if installment.status == InstallmentStatus.PAID:
        return GateDecision(
            allowed=False,
            reason=f"installment #{installment.installment_number} is already paid",
        )

    if installment.installment_number == 1:
        return ALLOWED

    blocking = [
        other.installment_number
        for other in installments
        if other.installment_number < installment.installment_number
        and other.status != InstallmentStatus.PAID
    ]
    if blocking:
        lowest = min(blocking)
        return GateDecision(
            allowed=False,
            reason=f"installment #{lowest} must be settled first",
            blocking_installment_number=lowest,
        )
    return ALLOWED


def can_reverse(installment: Installment) -> GateDecision:
    if installment.status != InstallmentStatus.PAID:
        return GateDecision(
            allowed=False,
            reason=f"installment #{installment.installment_number} is not paid",
        )
    return ALLOWED
