# booking_ledger/payments/engine.py

"""
Payment engine.

Every payment event for a booking runs as one transaction:

    lock booking -> fresh ledger read -> validate -> ledger write
        -> schedule update -> lifecycle -> integrity check -> commit

Any exception rolls the whole transaction back, ledger write included.
Lifecycle events are dispatched only after a successful commit.
"""

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterator, List, Optional, Tuple

from sqlalchemy.orm import Session

from booking_ledger.bookings.lifecycle import BookingEvent, BookingLifecycleTracker
from booking_ledger.bookings.models import Booking
from booking_ledger.bookings.repository import BookingRepository
from booking_ledger.bookings.services import BookingService
from booking_ledger.core.config import settings
from booking_ledger.core.exceptions import BookingLedgerError, LedgerIntegrityError
from booking_ledger.events.registry import (
    INSTALLMENT_DUE_REMINDER,
    BookingEventContext,
    dispatch,
)
from booking_ledger.extra_payments.models import ExtraPayment, PaymentMethod
from booking_ledger.extra_payments.repository import ExtraPaymentRepository
from booking_ledger.installments.models import Installment
from booking_ledger.installments.repository import InstallmentRepository
from booking_ledger.installments.services import InstallmentService, UpcomingInstallment
from booking_ledger.ledger.exceptions import AmountExceedsRemainingError, InvalidPaymentAmountError
from booking_ledger.ledger.models import LedgerEntry, PaymentKind
from booking_ledger.ledger.repository import LedgerRepository
from booking_ledger.ledger.services import LedgerReader, RemainingBalance
from booking_ledger.rescheduling.services import RescheduleResult, Rescheduler, SchedulePreview
from booking_ledger.rescheduling.strategies import (
    REDUCE_AMOUNT,
    NewPlan,
    RescheduleStrategy,
)
from booking_ledger.utils.dates import resolve_today
from booking_ledger.utils.logger import get_logger
from booking_ledger.utils.money import ZERO, to_decimal

logger = get_logger(__name__)


@dataclass
class ExtraPaymentOutcome:
    ledger_entry: LedgerEntry
    extra_payment: ExtraPayment
    reschedule: Optional[RescheduleResult] = None
    updated_schedule: List[Installment] = field(default_factory=list)


class PaymentEngine:
    """
    Public entry point for every payment operation.

    Owns the session's transaction: each write operation commits on success
    and rolls back on any exception. Reads never commit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.booking_repo = BookingRepository(db)
        self.installment_repo = InstallmentRepository(db)
        self.ledger_repo = LedgerRepository(db)
        self.extra_repo = ExtraPaymentRepository(db)
        self.reader = LedgerReader(db)
        self.installments = InstallmentService(db)
        self.rescheduler = Rescheduler(db)
        self.lifecycle = BookingLifecycleTracker(db)
        self.bookings = BookingService(db)

    # --- Transaction handling ---

    @contextmanager
    def _unit_of_work(self, operation: str, **context) -> Iterator[List[BookingEvent]]:
        events: List[BookingEvent] = []
        try:
            yield events
            self.db.commit()
        except LedgerIntegrityError as e:
            self.db.rollback()
            logger.error("Ledger integrity violation", operation=operation, error=str(e), **context)
            raise
        except BookingLedgerError as e:
            self.db.rollback()
            logger.warning("Payment operation rejected", operation=operation, error=str(e), **context)
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(
                "Payment operation failed", operation=operation, error=str(e), exc_info=True, **context
            )
            raise

        for event in events:
            dispatch(BookingEventContext(event_key=event.event_key, booking_id=event.booking_id))

    def _finish(self, booking: Booking, events: List[BookingEvent]) -> None:
        event = self.lifecycle.evaluate(booking)
        if event is not None:
            events.append(event)
        self.reader.verify_schedule(booking)

    def _lock_installment(self, installment_id: int) -> Tuple[Booking, Installment]:
        installment = self.installment_repo.get_or_raise(installment_id)
        booking = self.booking_repo.get_for_update(installment.booking_id)
        self.db.refresh(installment)
        return booking, installment

    def _validate_amount(self, booking: Booking, amount: Decimal) -> RemainingBalance:
        if amount <= ZERO:
            raise InvalidPaymentAmountError(amount)
        balance = self.reader.remaining(booking)
        if amount > balance.remaining:
            raise AmountExceedsRemainingError(amount, balance.remaining)
        return balance

    # --- Reads ---

    def get_remaining(self, booking_id: int) -> RemainingBalance:
        return self.reader.remaining(booking_id)

    def list_upcoming(
        self, days_ahead: Optional[int] = None, today: Optional[date] = None
    ) -> List[UpcomingInstallment]:
        return self.installments.list_upcoming(days_ahead, today)

    def preview_reschedule(
        self, booking_id: int, strategy: RescheduleStrategy, amount: Decimal = ZERO
    ) -> SchedulePreview:
        booking = self.booking_repo.get_or_raise(booking_id)
        return self.rescheduler.preview(booking, strategy, to_decimal(amount))

    # --- Writes ---

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
        with self._unit_of_work("create_booking", unit_id=unit_id) as events:
            booking = self.bookings.create_booking(
                unit_id,
                customer_id,
                plan=plan,
                deposit_amount=deposit_amount,
                booking_date=booking_date,
                customer_name=customer_name,
                today=today,
            )
            self._finish(booking, events)
        return booking

    def settle_installment(
        self,
        installment_id: int,
        attachment_ref: Optional[str] = None,
        payment_date: Optional[date] = None,
        require_attachment: Optional[bool] = None,
        today: Optional[date] = None,
    ) -> LedgerEntry:
        """
        Settles one installment in full.

        If that payment closes the balance, any installment still open (for
        example zero-amount leftovers after rounding) is closed as covered.
        """
        with self._unit_of_work("settle_installment", installment_id=installment_id) as events:
            booking, installment = self._lock_installment(installment_id)
            entry = self.installments.settle(
                booking,
                installment,
                payment_date=payment_date or today,
                attachment_ref=attachment_ref,
                require_attachment=require_attachment,
            )
            if self.reader.remaining(booking).is_settled:
                self.rescheduler.cover_remaining(booking, today)
            self._finish(booking, events)
        return entry

    def reverse_settlement(self, installment_id: int, today: Optional[date] = None) -> Optional[int]:
        """Reverses a settled installment; returns the id of the deleted ledger entry, if any."""
        with self._unit_of_work("reverse_settlement", installment_id=installment_id) as events:
            booking, installment = self._lock_installment(installment_id)
            deleted_entry_id = self.installments.reverse(booking, installment, today)
            self.rescheduler.reconcile(booking, today)
            self._finish(booking, events)
        return deleted_entry_id

    def record_extra_payment(
        self,
        booking_id: int,
        amount: Decimal,
        payment_date: Optional[date] = None,
        strategy: RescheduleStrategy = REDUCE_AMOUNT,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        notes: Optional[str] = None,
        description: Optional[str] = None,
        attachment_ref: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ExtraPaymentOutcome:
        """
        Records an out-of-plan payment and recomputes the open schedule.

        Raises:
            InvalidPaymentAmountError: amount is zero or negative
            AmountExceedsRemainingError: amount is larger than what is still owed
            InvalidRescheduleStrategyError: reduce_amount with nothing left to reduce
        """
        today = resolve_today(today)
        payment_date = payment_date or today
        amount = to_decimal(amount)

        with self._unit_of_work("record_extra_payment", booking_id=booking_id) as events:
            booking = self.booking_repo.get_for_update(booking_id)
            self._validate_amount(booking, amount)

            entry = self.ledger_repo.create_entry(
                LedgerEntry(
                    booking_id=booking.id,
                    amount=amount,
                    payment_date=payment_date,
                    kind=PaymentKind.EXTRA,
                    attachment_ref=attachment_ref,
                    note=notes or settings.extra_payment_default_note,
                )
            )

            reschedule = None
            has_schedule = booking.has_plan or bool(self.installment_repo.list_for_booking(booking.id))
            if has_schedule or isinstance(strategy, NewPlan):
                reschedule = self.rescheduler.reschedule(booking, strategy, today)

            unpaid = self.installment_repo.list_unpaid_for_booking(booking.id)
            extra_payment = self.extra_repo.create(
                ExtraPayment(
                    booking_id=booking.id,
                    ledger_entry_id=entry.id,
                    amount=amount,
                    payment_date=payment_date,
                    payment_method=payment_method,
                    reschedule_strategy=strategy.name if reschedule is not None else None,
                    new_installment_count=len(unpaid),
                    description=description,
                    notes=notes,
                )
            )
            self._finish(booking, events)

        logger.info(
            "Recorded extra payment",
            booking_id=booking_id,
            amount=float(amount),
            strategy=strategy.name.value,
            open_installments=len(unpaid),
        )
        return ExtraPaymentOutcome(
            ledger_entry=entry,
            extra_payment=extra_payment,
            reschedule=reschedule,
            updated_schedule=unpaid,
        )

    def record_payment(
        self,
        booking_id: int,
        amount: Decimal,
        payment_date: Optional[date] = None,
        attachment_ref: Optional[str] = None,
        note: Optional[str] = None,
        today: Optional[date] = None,
    ) -> LedgerEntry:
        """
        Records an on-account payment that is not tied to one installment.

        The entry is of kind `final` when it closes the balance; the open
        schedule is then spread again over the same installments.
        """
        amount = to_decimal(amount)
        with self._unit_of_work("record_payment", booking_id=booking_id) as events:
            booking = self.booking_repo.get_for_update(booking_id)
            balance = self._validate_amount(booking, amount)
            kind = PaymentKind.FINAL if amount == balance.remaining else PaymentKind.INSTALLMENT

            entry = self.ledger_repo.create_entry(
                LedgerEntry(
                    booking_id=booking.id,
                    amount=amount,
                    payment_date=resolve_today(payment_date or today),
                    kind=kind,
                    attachment_ref=attachment_ref,
                    note=note,
                )
            )
            self.rescheduler.reconcile(booking, today)
            self._finish(booking, events)
        return entry

    def reschedule_only(
        self, booking_id: int, strategy: RescheduleStrategy, today: Optional[date] = None
    ) -> RescheduleResult:
        """Recomputes the open schedule from the ledger without a new payment."""
        with self._unit_of_work("reschedule_only", booking_id=booking_id) as events:
            booking = self.booking_repo.get_for_update(booking_id)
            result = self.rescheduler.reschedule(booking, strategy, today)
            self._finish(booking, events)
        return result

    def delete_ledger_entry(self, ledger_entry_id: int, today: Optional[date] = None) -> List[Installment]:
        """
        Deletes a ledger entry and unwinds what it paid for.

        Installments funded by the entry are reopened, the open schedule is
        reconciled with the new remaining balance and the lifecycle is
        re-evaluated. Returns the reopened installments.
        """
        with self._unit_of_work("delete_ledger_entry", ledger_entry_id=ledger_entry_id) as events:
            entry = self.ledger_repo.get_entry_or_raise(ledger_entry_id)
            booking = self.booking_repo.get_for_update(entry.booking_id)

            released = self.installments.release_entry(entry, today)
            self.extra_repo.detach_entry(entry.id)
            self.ledger_repo.delete_entry(entry)

            self.rescheduler.reconcile(booking, today)
            self._finish(booking, events)
        return released

    def backfill_legacy_payments(self, booking_id: int, today: Optional[date] = None) -> List[LedgerEntry]:
        with self._unit_of_work("backfill_legacy_payments", booking_id=booking_id) as events:
            booking = self.booking_repo.get_for_update(booking_id)
            entries = self.installments.backfill_legacy_payments(booking)
            self.rescheduler.reconcile(booking, today)
            self._finish(booking, events)
        return entries

    def mark_overdue(self, today: Optional[date] = None) -> int:
        with self._unit_of_work("mark_overdue"):
            count = self.installments.mark_overdue(today)
        return count

    def send_due_reminders(
        self, days_ahead: Optional[int] = None, today: Optional[date] = None
    ) -> List[UpcomingInstallment]:
        """
        Sends one due-date reminder per open installment entering the reminder
        window. The notified flag is committed before the reminders are
        dispatched, so a second run sends nothing for the same installments.
        """
        with self._unit_of_work("send_due_reminders"):
            reminders = self.installments.collect_due_reminders(days_ahead, today)

        for reminder in reminders:
            dispatch(
                BookingEventContext(
                    event_key=INSTALLMENT_DUE_REMINDER,
                    booking_id=reminder.booking_id,
                    params={
                        "installment_id": reminder.installment_id,
                        "installment_number": reminder.installment_number,
                        "due_date": reminder.due_date.isoformat(),
                        "outstanding": str(reminder.outstanding),
                        "urgency": reminder.urgency.value,
                    },
                )
            )
        return reminders
