# booking_ledger/ledger/models.py

from datetime import date
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import CheckConstraint, Date, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_ledger.bookings.models import Booking
from booking_ledger.core.db import AuditMixin, Base


class PaymentKind(str, PyEnum):
    """What a ledger entry paid for."""
    BOOKING = "booking"  # initial deposit taken when the sale is initiated
    INSTALLMENT = "installment"
    EXTRA = "extra"  # out-of-plan payment, forces a reschedule
    FINAL = "final"  # on-account payment that closed the balance


class LedgerEntry(Base, AuditMixin):
    """
    One amount of money actually received for a booking.

    The ledger is the sole source of truth for "amount paid". Entries are
    never updated; they are only removed by an explicit reversal or deletion,
    which also unwinds any installment they funded.
    """

    __tablename__ = "ledger_entries"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_ledger_entries_amount_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), nullable=False, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    kind: Mapped[PaymentKind] = mapped_column(Enum(PaymentKind), nullable=False, index=True)

    attachment_ref: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True,
        comment="Reference handed over by the attachment storage service"
    )
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    booking: Mapped[Booking] = relationship(Booking)

    def __repr__(self):
        return (
            f"<LedgerEntry(id={self.id}, booking_id={self.booking_id}, "
            f"kind='{self.kind.value}', amount={self.amount})>"
        )
