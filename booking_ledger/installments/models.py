# booking_ledger/installments/models.py

from datetime import date
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_ledger.bookings.models import Booking
from booking_ledger.core.db import AuditMixin, Base
from booking_ledger.installments.links import (
    EXTERNALLY_COVERED,
    UNLINKED,
    InstallmentLink,
    LedgerEntryLink,
    LinkType,
)
from booking_ledger.utils.money import ZERO


class InstallmentStatus(str, PyEnum):
    """Enumeration for scheduled installment status."""
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    OVERDUE = "overdue"
    PAID = "paid"


def open_status_for(due_date: date, on_date: date) -> InstallmentStatus:
    """Status of an unpaid installment: overdue once its due date has passed."""
    if due_date < on_date:
        return InstallmentStatus.OVERDUE
    return InstallmentStatus.PENDING


class Installment(Base, AuditMixin):
    """
    One dated portion of a booking's price.

    Installments are created in batches by the rescheduler, mutated by
    settlement and reversal, and deleted only while unpaid during a full
    reschedule.
    """

    __tablename__ = "installments"
    __table_args__ = (
        UniqueConstraint("booking_id", "installment_number", name="uq_installments_booking_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), nullable=False, index=True
    )
    installment_number: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=ZERO
    )
    status: Mapped[InstallmentStatus] = mapped_column(
        Enum(InstallmentStatus), nullable=False, default=InstallmentStatus.PENDING, index=True
    )
    paid_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # --- Funding link (see installments/links.py) ---
    link_type: Mapped[LinkType] = mapped_column(
        Enum(LinkType), nullable=False, default=LinkType.NONE
    )
    ledger_entry_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("ledger_entries.id", ondelete="SET NULL"), nullable=True, index=True
    )

    notification_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    booking: Mapped[Booking] = relationship(Booking)

    # --- Link accessors ---

    @property
    def link(self) -> InstallmentLink:
        if self.link_type == LinkType.LEDGER_ENTRY:
            return LedgerEntryLink(self.ledger_entry_id)
        if self.link_type == LinkType.EXTERNALLY_COVERED:
            return EXTERNALLY_COVERED
        return UNLINKED

    def link_to_entry(self, entry_id: int) -> None:
        self.link_type = LinkType.LEDGER_ENTRY
        self.ledger_entry_id = entry_id

    def mark_externally_covered(self) -> None:
        self.link_type = LinkType.EXTERNALLY_COVERED
        self.ledger_entry_id = None

    def clear_link(self) -> None:
        self.link_type = LinkType.NONE
        self.ledger_entry_id = None

    # --- Derived values ---

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID

    @property
    def is_externally_covered(self) -> bool:
        return self.link_type == LinkType.EXTERNALLY_COVERED

    @property
    def outstanding(self) -> Decimal:
        """What is still owed on this installment; zero once paid."""
        if self.is_paid:
            return ZERO
        return (self.amount or ZERO) - (self.paid_amount or ZERO)

    def __repr__(self):
        return (
            f"<Installment(id={self.id}, booking_id={self.booking_id}, "
            f"number={self.installment_number}, amount={self.amount}, status='{self.status.value}')>"
        )
