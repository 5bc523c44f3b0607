# booking_ledger/bookings/services.py

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from booking_ledger.bookings.exceptions import UnitNotFoundError
from booking_ledger.bookings.models import Booking, BookingStatus
from booking_ledger.bookings.repository import BookingRepository
from booking_ledger.ledger.exceptions import AmountExceedsRemainingError, InvalidPaymentAmountError
from booking_ledger.ledger.models import LedgerEntry, PaymentKind
from booking_ledger.ledger.repository import LedgerRepository
from booking_ledger.rescheduling.services import Rescheduler
from booking_ledger.rescheduling.strategies import NewPlan
from booking_ledger.utils.dates import resolve_today
from booking_ledger.utils.logger import get_logger
from booking_ledger.utils.money import ZERO, to_decimal

logger = get_logger(__name__)


class BookingService:
    """
    Service layer for opening bookings.
    Writes the deposit to the ledger and schedules the rest of the price.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository(db)
        self.ledger_repo = LedgerRepository(db)
        self.rescheduler = Rescheduler(db)

    def create_booking(
        self,
        unit_id: int,
        customer_id: int,
        plan: Optional[NewPlan] = None,
        deposit_amount: Decimal = ZERO,
        booking_date: Optional[date] = None,
        customer_name: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Booking:
        """
        Creates a booking, its `booking` ledger entry and its initial schedule.

        Args:
            unit_id: Unit being sold
            customer_id: Buyer
            plan: Payment plan for the part of the price not covered by the deposit
            deposit_amount: Money received at signing (may be zero)
            booking_date: Date of the sale, also used for the deposit entry
            customer_name: Display name kept on the booking

        Returns:
            The new Booking, flushed but not committed

        Raises:
            UnitNotFoundError: unit does not exist
            InvalidPaymentAmountError: negative deposit
            AmountExceedsRemainingError: deposit larger than the unit price
        """
        today = resolve_today(today)
        booking_date = booking_date or today
        deposit_amount = to_decimal(deposit_amount)

        unit = self.repo.get_unit(unit_id)
        if not unit:
            raise UnitNotFoundError(unit_id)

        if deposit_amount < ZERO:
            raise InvalidPaymentAmountError(deposit_amount)
        if deposit_amount > unit.price:
            raise AmountExceedsRemainingError(deposit_amount, unit.price)

        booking = self.repo.create(
            Booking(
                unit=unit,
                customer_id=customer_id,
                customer_name=customer_name,
                booking_date=booking_date,
                status=BookingStatus.ACTIVE,
            )
        )

        if deposit_amount > ZERO:
            self.ledger_repo.create_entry(
                LedgerEntry(
                    booking_id=booking.id,
                    amount=deposit_amount,
                    payment_date=booking_date,
                    kind=PaymentKind.BOOKING,
                    note="Booking deposit",
                )
            )

        remaining = unit.price - deposit_amount
        if plan is not None and remaining > ZERO:
            self.rescheduler.generate_initial_schedule(booking, plan, remaining, today)

        logger.info(
            "Opened booking",
            booking_id=booking.id,
            unit_id=unit.id,
            deposit_amount=float(deposit_amount),
        )
        return booking
