# booking_ledger/ledger/services.py

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from booking_ledger.bookings.models import Booking
from booking_ledger.bookings.repository import BookingRepository
from booking_ledger.core.config import settings
from booking_ledger.installments.links import LinkType
from booking_ledger.installments.repository import InstallmentRepository
from booking_ledger.ledger.exceptions import (
    NegativeRemainingError,
    ScheduleMismatchError,
    UnlinkedLegacyPaymentError,
)
from booking_ledger.ledger.models import LedgerEntry
from booking_ledger.ledger.repository import LedgerRepository
from booking_ledger.utils.logger import get_logger
from booking_ledger.utils.money import ZERO, money_sum

logger = get_logger(__name__)


@dataclass(frozen=True)
class RemainingBalance:
    booking_id: int
    unit_price: Decimal
    total_paid: Decimal
    remaining: Decimal

    @property
    def is_settled(self) -> bool:
        return self.remaining <= ZERO


class LedgerReader:
    """
    Computes authoritative totals for a booking from its ledger entries.

    Nothing here is cached: every call re-reads the ledger, so callers must ask
    again right before any write that depends on the result.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = LedgerRepository(db)
        self.booking_repo = BookingRepository(db)
        self.installment_repo = InstallmentRepository(db)

    def _booking(self, booking: Union[Booking, int]) -> Booking:
        if isinstance(booking, Booking):
            return booking
        return self.booking_repo.get_or_raise(booking)

    def list_entries(self, booking_id: int) -> List[LedgerEntry]:
        return self.repo.list_for_booking(booking_id)

    def total_paid(self, booking_id: int) -> Decimal:
        return money_sum(entry.amount for entry in self.repo.list_for_booking(booking_id))

    def remaining(self, booking: Union[Booking, int]) -> RemainingBalance:
        """
        Unit price, total paid and remaining balance for a booking.

        Raises:
            BookingNotFoundError: booking does not exist
            NegativeRemainingError: the ledger holds more than the unit price
        """
        booking = self._booking(booking)
        total_paid = self.total_paid(booking.id)
        unit_price = booking.unit_price
        remaining = unit_price - total_paid

        if remaining < ZERO:
            logger.error(
                "Ledger total exceeds unit price",
                booking_id=booking.id,
                total_paid=float(total_paid),
                unit_price=float(unit_price),
            )
            raise NegativeRemainingError(booking.id, unit_price, total_paid)

        return RemainingBalance(
            booking_id=booking.id,
            unit_price=unit_price,
            total_paid=total_paid,
            remaining=remaining,
        )

    def schedule_outstanding(self, booking_id: int) -> Decimal:
        """Sum of what is still owed on the unpaid installments."""
        return money_sum(
            installment.outstanding
            for installment in self.installment_repo.list_unpaid_for_booking(booking_id)
        )

    def verify_schedule(
        self, booking: Union[Booking, int], tolerance: Optional[Decimal] = None
    ) -> RemainingBalance:
        """
        Checks that the unpaid schedule agrees with the ledger.

        Raises:
            UnlinkedLegacyPaymentError: installments carry paid money outside the ledger
            ScheduleMismatchError: unpaid schedule and ledger remaining differ
        """
        booking = self._booking(booking)
        balance = self.remaining(booking)
        installments = self.installment_repo.list_for_booking(booking.id)
        if not installments:
            return balance

        legacy = [
            installment.installment_number
            for installment in installments
            if installment.link_type == LinkType.NONE
            and (installment.paid_amount or ZERO) > ZERO
        ]
        if legacy:
            raise UnlinkedLegacyPaymentError(booking.id, legacy)

        tolerance = settings.schedule_tolerance if tolerance is None else tolerance
        scheduled = money_sum(installment.outstanding for installment in installments)
        if abs(scheduled - balance.remaining) > tolerance:
            logger.error(
                "Schedule does not match ledger",
                booking_id=booking.id,
                scheduled=float(scheduled),
                remaining=float(balance.remaining),
            )
            raise ScheduleMismatchError(booking.id, scheduled, balance.remaining)
        return balance
