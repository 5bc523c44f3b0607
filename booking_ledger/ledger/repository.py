# booking_ledger/ledger/repository.py

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from booking_ledger.ledger.exceptions import LedgerEntryNotFoundError
from booking_ledger.ledger.models import LedgerEntry
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)


class LedgerRepository:
    """
    Data Access Layer for the payment ledger.
    Handles all database interactions for the LedgerEntry model.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_entry(self, entry: LedgerEntry) -> LedgerEntry:
        """
        Adds a new LedgerEntry record to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(entry)
        self.db.flush()
        logger.info(
            "Created new LedgerEntry",
            entry_id=entry.id,
            booking_id=entry.booking_id,
            kind=entry.kind.value,
            amount=float(entry.amount),
        )
        return entry

    def get_entry(self, entry_id: int) -> Optional[LedgerEntry]:
        stmt = select(LedgerEntry).where(LedgerEntry.id == entry_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_entry_or_raise(self, entry_id: int) -> LedgerEntry:
        entry = self.get_entry(entry_id)
        if not entry:
            raise LedgerEntryNotFoundError(entry_id)
        return entry

    def list_for_booking(self, booking_id: int) -> List[LedgerEntry]:
        stmt = (
            select(LedgerEntry)
            .where(LedgerEntry.booking_id == booking_id)
            .order_by(LedgerEntry.payment_date, LedgerEntry.id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def delete_entry(self, entry: LedgerEntry) -> None:
        """
        Removes a ledger entry. Only reversal and explicit deletion flows call
        this; the caller unwinds any installment the entry funded.
        """
        self.db.delete(entry)
        self.db.flush()
        logger.info(
            "Deleted LedgerEntry",
            entry_id=entry.id,
            booking_id=entry.booking_id,
            amount=float(entry.amount),
        )
