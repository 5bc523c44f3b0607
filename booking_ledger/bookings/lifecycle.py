# booking_ledger/bookings/lifecycle.py

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from booking_ledger.bookings.models import Booking, BookingStatus
from booking_ledger.core.config import settings
from booking_ledger.events.registry import BOOKING_COMPLETED, BOOKING_REOPENED
from booking_ledger.ledger.services import LedgerReader
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class BookingEvent:
    event_key: str
    booking_id: int


class BookingLifecycleTracker:
    """
    Keeps `Booking.status` in step with the ledger.

    Active becomes Completed once the ledger covers the unit price, and a
    Completed booking falls back to Active when money is taken out again.
    The returned event is dispatched by the caller after commit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.reader = LedgerReader(db)

    def evaluate(self, booking: Booking) -> Optional[BookingEvent]:
        balance = self.reader.remaining(booking)
        fully_paid = balance.total_paid >= balance.unit_price

        if booking.status == BookingStatus.ACTIVE and fully_paid:
            booking.status = BookingStatus.COMPLETED
            self.db.flush()
            logger.info(
                "Booking completed", booking_id=booking.id, total_paid=float(balance.total_paid)
            )
            return BookingEvent(BOOKING_COMPLETED, booking.id)

        if booking.status == BookingStatus.COMPLETED and not fully_paid:
            booking.status = BookingStatus.ACTIVE
            self.db.flush()
            if not settings.release_unit_on_reopen:
                logger.info(
                    "Booking reopened, unit release is disabled",
                    booking_id=booking.id,
                    remaining=float(balance.remaining),
                )
                return None
            logger.info(
                "Booking reopened", booking_id=booking.id, remaining=float(balance.remaining)
            )
            return BookingEvent(BOOKING_REOPENED, booking.id)

        return None
