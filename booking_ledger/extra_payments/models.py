# booking_ledger/extra_payments/models.py

from datetime import date
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Date, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_ledger.bookings.models import Booking
from booking_ledger.core.db import AuditMixin, Base
from booking_ledger.rescheduling.strategies import StrategyName


class PaymentMethod(str, PyEnum):
    """How an out-of-plan payment was received."""
    CASH = "Cash"
    BANK_TRANSFER = "Bank transfer"
    CHECK = "Check"
    CREDIT_CARD = "Credit card"


class ExtraPayment(Base, AuditMixin):
    """
    Audit record of an out-of-plan payment and the reschedule it triggered.
    The money itself lives in the linked ledger entry; rows are write-once.
    """

    __tablename__ = "extra_payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), nullable=False, index=True
    )
    ledger_entry_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("ledger_entries.id", ondelete="SET NULL"), nullable=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod), nullable=False, default=PaymentMethod.CASH
    )

    reschedule_strategy: Mapped[Optional[StrategyName]] = mapped_column(
        Enum(StrategyName), nullable=True,
        comment="Null when the booking had no schedule to recompute"
    )
    new_installment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    booking: Mapped[Booking] = relationship(Booking)

    def __repr__(self):
        return (
            f"<ExtraPayment(id={self.id}, booking_id={self.booking_id}, "
            f"amount={self.amount}, strategy={self.reschedule_strategy})>"
        )
