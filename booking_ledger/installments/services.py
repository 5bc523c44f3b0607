# booking_ledger/installments/services.py

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy.orm import Session

from booking_ledger.bookings.models import Booking
from booking_ledger.core.config import settings
from booking_ledger.installments.exceptions import (
    AttachmentRequiredError,
    CoveredReversalNotAllowedError,
    InvalidReversalError,
    SettlementNotAllowedError,
)
from booking_ledger.installments.gate import can_reverse, can_settle
from booking_ledger.installments.links import (
    ExternallyCovered,
    LedgerEntryLink,
    LinkType,
)
from booking_ledger.installments.models import Installment, InstallmentStatus, open_status_for
from booking_ledger.installments.repository import InstallmentRepository
from booking_ledger.ledger.exceptions import (
    AmountExceedsRemainingError,
    InvalidPaymentAmountError,
)
from booking_ledger.ledger.models import LedgerEntry, PaymentKind
from booking_ledger.ledger.repository import LedgerRepository
from booking_ledger.ledger.services import LedgerReader
from booking_ledger.utils.dates import resolve_today
from booking_ledger.utils.logger import get_logger
from booking_ledger.utils.money import ZERO

logger = get_logger(__name__)

LEGACY_BACKFILL_NOTE = "legacy back-fill"
SOON_THRESHOLD_DAYS = 7


class Urgency(str, PyEnum):
    OVERDUE = "overdue"
    DUE_TODAY = "due_today"
    SOON = "soon"
    SCHEDULED = "scheduled"


def urgency_for(days_until_due: int) -> Urgency:
    if days_until_due < 0:
        return Urgency.OVERDUE
    if days_until_due == 0:
        return Urgency.DUE_TODAY
    if days_until_due <= SOON_THRESHOLD_DAYS:
        return Urgency.SOON
    return Urgency.SCHEDULED


@dataclass(frozen=True)
class UpcomingInstallment:
    installment_id: int
    booking_id: int
    installment_number: int
    due_date: date
    outstanding: Decimal
    days_until_due: int
    urgency: Urgency


class InstallmentService:
    """
    Settles and reverses scheduled installments.

    Every method expects the caller to hold the booking row lock and to own the
    transaction; nothing here commits.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = InstallmentRepository(db)
        self.ledger_repo = LedgerRepository(db)
        self.reader = LedgerReader(db)

    def settle(
        self,
        booking: Booking,
        installment: Installment,
        payment_date: Optional[date] = None,
        attachment_ref: Optional[str] = None,
        require_attachment: Optional[bool] = None,
    ) -> LedgerEntry:
        """
        Pays `installment` in full with a single ledger entry.

        Args:
            booking: The installment's booking, locked by the caller
            installment: Installment to settle
            payment_date: Date written on the ledger entry (defaults to today)
            attachment_ref: Reference to an already stored receipt
            require_attachment: Overrides `settings.require_settlement_attachment`

        Returns:
            The new ledger entry of kind `installment`

        Raises:
            SettlementNotAllowedError: already paid or an earlier installment is open
            AttachmentRequiredError: policy requires an attachment and none was given
            AmountExceedsRemainingError: the ledger has less outstanding than the installment
        """
        payment_date = resolve_today(payment_date)

        decision = can_settle(installment, self.repo.list_for_booking(booking.id))
        if not decision.allowed:
            logger.warning(
                "Installment settlement rejected",
                booking_id=booking.id,
                installment_number=installment.installment_number,
                reason=decision.reason,
            )
            raise SettlementNotAllowedError(
                installment.installment_number,
                decision.reason,
                decision.blocking_installment_number,
            )

        if require_attachment is None:
            require_attachment = settings.require_settlement_attachment
        if require_attachment and not attachment_ref:
            raise AttachmentRequiredError(installment.installment_number)

        amount = installment.outstanding
        if amount <= ZERO:
            raise InvalidPaymentAmountError(amount)

        balance = self.reader.remaining(booking)
        if amount > balance.remaining:
            raise AmountExceedsRemainingError(amount, balance.remaining)

        entry = self.ledger_repo.create_entry(
            LedgerEntry(
                booking_id=booking.id,
                amount=amount,
                payment_date=payment_date,
                kind=PaymentKind.INSTALLMENT,
                attachment_ref=attachment_ref,
                note=f"Installment #{installment.installment_number}",
            )
        )

        installment.paid_amount = installment.amount
        installment.status = InstallmentStatus.PAID
        installment.paid_date = payment_date
        installment.link_to_entry(entry.id)
        self.repo.update(installment)

        logger.info(
            "Settled installment",
            installment_id=installment.id,
            installment_number=installment.installment_number,
            booking_id=booking.id,
            amount=float(amount),
            entry_id=entry.id,
        )
        return entry

    def reverse(
        self, booking: Booking, installment: Installment, today: Optional[date] = None
    ) -> Optional[int]:
        """
        Undoes a settlement and returns the id of the deleted ledger entry, if any.

        Raises:
            InvalidReversalError: the installment is not paid
            CoveredReversalNotAllowedError: reopening a covered installment of a fully paid booking
        """
        today = resolve_today(today)

        decision = can_reverse(installment)
        if not decision.allowed:
            raise InvalidReversalError(installment.installment_number, installment.status.value)

        link = installment.link
        deleted_entry_id = None

        if isinstance(link, ExternallyCovered):
            if self.reader.remaining(booking).is_settled:
                raise CoveredReversalNotAllowedError(installment.installment_number)
            self._reset(installment, today)

        elif isinstance(link, LedgerEntryLink):
            entry = self.ledger_repo.get_entry(link.entry_id) if link.entry_id else None
            self._reset(installment, today)
            if entry is None:
                logger.warning(
                    "Linked ledger entry is already gone, reopening the installment only",
                    booking_id=booking.id,
                    installment_number=installment.installment_number,
                    entry_id=link.entry_id,
                )
            else:
                deleted_entry_id = entry.id
                self.ledger_repo.delete_entry(entry)

        else:
            # Paid without a ledger entry: pre-ledger data that was never back-filled.
            logger.warning(
                "Reversing installment without a ledger link",
                booking_id=booking.id,
                installment_number=installment.installment_number,
            )
            self._reset(installment, today)

        logger.info(
            "Reversed installment",
            booking_id=booking.id,
            installment_number=installment.installment_number,
            deleted_entry_id=deleted_entry_id,
            status=installment.status.value,
        )
        return deleted_entry_id

    def release_entry(self, entry: LedgerEntry, today: Optional[date] = None) -> List[Installment]:
        """Reopens every installment funded by `entry` before it is deleted."""
        today = resolve_today(today)
        linked = self.repo.list_linked_to_entry(entry.id)
        for installment in linked:
            self._reset(installment, today)
        return linked

    def mark_overdue(self, today: Optional[date] = None) -> int:
        today = resolve_today(today)
        count = self.repo.mark_pending_overdue(today)
        logger.info("Marked installments overdue", count=count, as_of=today.isoformat())
        return count

    def list_upcoming(
        self, days_ahead: Optional[int] = None, today: Optional[date] = None
    ) -> List[UpcomingInstallment]:
        """Unpaid installments due within `days_ahead` days, overdue ones included."""
        today = resolve_today(today)
        if days_ahead is None:
            days_ahead = settings.upcoming_window_days

        installments = self.repo.list_open_due_between(None, today + timedelta(days=days_ahead))
        return [self._as_upcoming(installment, today) for installment in installments]

    def collect_due_reminders(
        self, days_ahead: Optional[int] = None, today: Optional[date] = None
    ) -> List[UpcomingInstallment]:
        """
        Picks open installments due within `days_ahead` days that have not been
        reminded yet and flags them as notified. Each installment is returned
        once; reopening it clears the flag.
        """
        today = resolve_today(today)
        if days_ahead is None:
            days_ahead = settings.reminder_window_days

        installments = self.repo.list_unnotified_due_by(today + timedelta(days=days_ahead))
        for installment in installments:
            installment.notification_sent = True
        self.db.flush()

        logger.info(
            "Collected installment due reminders",
            count=len(installments),
            as_of=today.isoformat(),
            days_ahead=days_ahead,
        )
        return [self._as_upcoming(installment, today) for installment in installments]

    def backfill_legacy_payments(self, booking: Booking) -> List[LedgerEntry]:
        """
        Writes one `installment` ledger entry per installment that carries paid
        money but no ledger link, and links the installment to it.
        """
        entries = []
        for installment in self.repo.list_for_booking(booking.id):
            if installment.link_type != LinkType.NONE:
                continue
            paid_amount = installment.paid_amount or ZERO
            if paid_amount <= ZERO:
                continue

            entry = self.ledger_repo.create_entry(
                LedgerEntry(
                    booking_id=booking.id,
                    amount=paid_amount,
                    payment_date=installment.paid_date or installment.due_date,
                    kind=PaymentKind.INSTALLMENT,
                    note=LEGACY_BACKFILL_NOTE,
                )
            )
            installment.link_to_entry(entry.id)
            entries.append(entry)

        self.db.flush()
        logger.info(
            "Back-filled legacy installment payments", booking_id=booking.id, entries=len(entries)
        )
        return entries

    def _reset(self, installment: Installment, today: date) -> None:
        installment.status = open_status_for(installment.due_date, today)
        installment.paid_amount = ZERO
        installment.paid_date = None
        installment.notification_sent = False
        installment.clear_link()
        self.db.flush()

    def _as_upcoming(self, installment: Installment, today: date) -> UpcomingInstallment:
        days_until_due = (installment.due_date - today).days
        return UpcomingInstallment(
            installment_id=installment.id,
            booking_id=installment.booking_id,
            installment_number=installment.installment_number,
            due_date=installment.due_date,
            outstanding=installment.outstanding,
            days_until_due=days_until_due,
            urgency=urgency_for(days_until_due),
        )
