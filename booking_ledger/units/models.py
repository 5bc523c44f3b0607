# booking_ledger/units/models.py

from decimal import Decimal
from typing import Optional

from sqlalchemy import Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from booking_ledger.core.db import AuditMixin, Base


class Unit(Base, AuditMixin):
    """
    A sellable unit. Only the price is consumed here; inventory state is kept
    by an external collaborator that listens to booking events.
    """

    __tablename__ = "units"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    unit_number: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    price: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, comment="Total price owed by the buyer"
    )

    def __repr__(self):
        return f"<Unit(id={self.id}, unit_number='{self.unit_number}', price={self.price})>"
