# booking_ledger/installments/repository.py

from datetime import date
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from booking_ledger.installments.exceptions import InstallmentNotFoundError
from booking_ledger.installments.links import LinkType
from booking_ledger.installments.models import Installment, InstallmentStatus
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)

OPEN_STATUSES = (
    InstallmentStatus.PENDING,
    InstallmentStatus.PARTIALLY_PAID,
    InstallmentStatus.OVERDUE,
)


class InstallmentRepository:
    """
    Data Access Layer for scheduled installments.
    Installments are always returned ordered by installment number.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, installment_id: int) -> Optional[Installment]:
        stmt = select(Installment).where(Installment.id == installment_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_or_raise(self, installment_id: int) -> Installment:
        installment = self.get_by_id(installment_id)
        if not installment:
            raise InstallmentNotFoundError(installment_id)
        return installment

    def list_for_booking(self, booking_id: int) -> List[Installment]:
        stmt = (
            select(Installment)
            .where(Installment.booking_id == booking_id)
            .order_by(Installment.installment_number)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_unpaid_for_booking(self, booking_id: int) -> List[Installment]:
        stmt = (
            select(Installment)
            .where(
                Installment.booking_id == booking_id,
                Installment.status != InstallmentStatus.PAID,
            )
            .order_by(Installment.installment_number)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_linked_to_entry(self, entry_id: int) -> List[Installment]:
        stmt = (
            select(Installment)
            .where(
                Installment.link_type == LinkType.LEDGER_ENTRY,
                Installment.ledger_entry_id == entry_id,
            )
            .order_by(Installment.installment_number)
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_open_due_between(self, start: Optional[date], end: date) -> List[Installment]:
        """Unpaid installments due on or before `end` (and on or after `start` if given)."""
        conditions = [
            Installment.status.in_(OPEN_STATUSES),
            Installment.due_date <= end,
        ]
        if start is not None:
            conditions.append(Installment.due_date >= start)
        stmt = select(Installment).where(*conditions).order_by(Installment.due_date, Installment.id)
        return list(self.db.execute(stmt).scalars().all())

    def list_unnotified_due_by(self, end: date) -> List[Installment]:
        """Open installments due on or before `end` that have not had a reminder yet."""
        stmt = (
            select(Installment)
            .where(
                Installment.status.in_(OPEN_STATUSES),
                Installment.due_date <= end,
                Installment.notification_sent.is_(False),
            )
            .order_by(Installment.due_date, Installment.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def add_all(self, installments: List[Installment]) -> List[Installment]:
        """
        Adds a batch of new installments to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add_all(installments)
        self.db.flush()
        if installments:
            logger.info(
                "Created new Installments",
                booking_id=installments[0].booking_id,
                first_number=installments[0].installment_number,
                last_number=installments[-1].installment_number,
            )
        return installments

    def update(self, installment: Installment) -> Installment:
        self.db.flush()
        return installment

    def delete_all(self, installments: List[Installment]) -> None:
        for installment in installments:
            self.db.delete(installment)
        self.db.flush()
        if installments:
            logger.info(
                "Deleted Installments",
                booking_id=installments[0].booking_id,
                installment_numbers=[i.installment_number for i in installments],
            )

    def mark_pending_overdue(self, on_date: date) -> int:
        """Bulk-flags pending installments whose due date has passed."""
        stmt = (
            update(Installment)
            .where(
                Installment.status == InstallmentStatus.PENDING,
                Installment.due_date < on_date,
            )
            .values(status=InstallmentStatus.OVERDUE)
            .execution_options(synchronize_session="fetch")
        )
        result = self.db.execute(stmt)
        return result.rowcount or 0
