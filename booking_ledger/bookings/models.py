# booking_ledger/bookings/models.py

from datetime import date
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import Date, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_ledger.core.db import AuditMixin, Base
from booking_ledger.units.models import Unit

ALLOWED_PLAN_YEARS = (4, 5)
ALLOWED_FREQUENCY_MONTHS = (1, 2, 3, 4, 5, 6, 12)


class BookingStatus(str, PyEnum):
    """Lifecycle state, derived from the ledger by the lifecycle tracker."""
    ACTIVE = "Active"
    COMPLETED = "Completed"


class Booking(Base, AuditMixin):
    """
    A sale in progress: one customer paying one unit down over a plan.

    There is no "amount paid" column. Totals are always summed from the
    ledger by `LedgerReader`.
    """

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    unit_id: Mapped[int] = mapped_column(Integer, ForeignKey("units.id"), nullable=False, index=True)

    # --- Customer (owned by the CRM side) ---
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    booking_date: Mapped[date] = mapped_column(Date, nullable=False)

    # --- Plan parameters (mutated only by the rescheduler) ---
    payment_plan_years: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    payment_frequency_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    payment_start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    monthly_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    installment_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    total_installments: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus), nullable=False, default=BookingStatus.ACTIVE, index=True
    )

    unit: Mapped[Unit] = relationship(Unit, lazy="joined", innerjoin=True)

    @property
    def unit_price(self) -> Decimal:
        return self.unit.price

    @property
    def has_plan(self) -> bool:
        return bool(self.payment_plan_years and self.payment_frequency_months)

    def __repr__(self):
        return f"<Booking(id={self.id}, unit_id={self.unit_id}, status='{self.status.value}')>"
