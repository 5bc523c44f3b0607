# booking_ledger/extra_payments/repository.py

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from booking_ledger.extra_payments.models import ExtraPayment
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)


class ExtraPaymentRepository:
    """Data Access Layer for extra payment audit records."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, extra_payment: ExtraPayment) -> ExtraPayment:
        self.db.add(extra_payment)
        self.db.flush()
        logger.info(
            "Created new ExtraPayment",
            extra_payment_id=extra_payment.id,
            booking_id=extra_payment.booking_id,
        )
        return extra_payment

    def get_by_id(self, extra_payment_id: int) -> Optional[ExtraPayment]:
        return self.db.get(ExtraPayment, extra_payment_id)

    def list_for_booking(self, booking_id: int) -> List[ExtraPayment]:
        stmt = (
            select(ExtraPayment)
            .where(ExtraPayment.booking_id == booking_id)
            .order_by(ExtraPayment.payment_date.desc(), ExtraPayment.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def detach_entry(self, entry_id: int) -> int:
        """Drops the ledger reference of audit rows whose entry is being deleted."""
        rows = list(
            self.db.execute(
                select(ExtraPayment).where(ExtraPayment.ledger_entry_id == entry_id)
            ).scalars().all()
        )
        for extra_payment in rows:
            extra_payment.ledger_entry_id = None
        self.db.flush()
        return len(rows)
