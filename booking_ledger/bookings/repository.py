# booking_ledger/bookings/repository.py

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from booking_ledger.bookings.exceptions import BookingNotFoundError
from booking_ledger.bookings.models import Booking
from booking_ledger.units.models import Unit
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)


class BookingRepository:
    """
    Data Access Layer for Bookings.
    Handles all database interactions for Booking and Unit models.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, booking_id: int) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.id == booking_id)
        return self.db.execute(stmt).unique().scalar_one_or_none()

    def get_or_raise(self, booking_id: int) -> Booking:
        booking = self.get_by_id(booking_id)
        if not booking:
            raise BookingNotFoundError(booking_id)
        return booking

    def get_for_update(self, booking_id: int) -> Booking:
        """
        Loads the booking and locks its row for the rest of the transaction.
        Every payment event for a booking goes through this lock, so writes to
        one booking are serialized.
        """
        stmt = (
            select(Booking)
            .where(Booking.id == booking_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        booking = self.db.execute(stmt).unique().scalar_one_or_none()
        if not booking:
            raise BookingNotFoundError(booking_id)
        return booking

    def get_unit(self, unit_id: int) -> Optional[Unit]:
        return self.db.get(Unit, unit_id)

    def create(self, booking: Booking) -> Booking:
        """
        Adds a new Booking record to the session.
        The caller is responsible for committing the transaction.
        """
        self.db.add(booking)
        self.db.flush()
        logger.info("Created new Booking", booking_id=booking.id, unit_id=booking.unit_id)
        return booking
