# booking_ledger/rescheduling/services.py

from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_DOWN, Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from booking_ledger.bookings.models import Booking
from booking_ledger.installments.models import Installment, InstallmentStatus, open_status_for
from booking_ledger.installments.repository import InstallmentRepository
from booking_ledger.ledger.exceptions import (
    AmountExceedsRemainingError,
    InvalidPaymentAmountError,
)
from booking_ledger.ledger.services import LedgerReader
from booking_ledger.rescheduling.exceptions import (
    InvalidPlanStartDateError,
    InvalidRescheduleStrategyError,
)
from booking_ledger.rescheduling.strategies import (
    NewPlan,
    ReduceAmount,
    RescheduleStrategy,
)
from booking_ledger.utils.dates import due_dates, resolve_today
from booking_ledger.utils.logger import get_logger
from booking_ledger.utils.money import CENT, ZERO, money_sum, round2, split_evenly

logger = get_logger(__name__)


@dataclass(frozen=True)
class PlanUpdate:
    years: int
    frequency_months: int
    start_date: date
    monthly_amount: Decimal
    installment_amount: Decimal
    total_installments: int


@dataclass
class RescheduleResult:
    booking_id: int
    remaining: Decimal
    updated_installments: List[Installment] = field(default_factory=list)
    removed_installments: int = 0
    plan_update: Optional[PlanUpdate] = None
    fully_covered: bool = False


@dataclass(frozen=True)
class SchedulePreview:
    remaining_after: Decimal
    installment_count: int
    installment_amount: Decimal
    last_installment_amount: Decimal


def distribute(total: Decimal, count: int) -> List[Decimal]:
    """
    Amounts for `count` installments adding up to `total` exactly.

    Every installment but the last gets round2(total / count) and the last one
    absorbs the residual. For totals of a few cents over many installments
    that rounding can overshoot, in which case the base is truncated to the
    cent instead so that no installment goes negative.
    """
    parts = split_evenly(total, count)
    if parts[-1] >= ZERO:
        return parts

    total = round2(total)
    base = (total / count).quantize(CENT, rounding=ROUND_DOWN)
    parts = [base] * (count - 1)
    parts.append(total - money_sum(parts))
    return parts


class Rescheduler:
    """
    Recomputes the unpaid part of a booking's schedule after a payment event.

    Paid installments are never touched, with one exception: `new_plan`
    renumbers kept installments when a reversal left a gap in the numbering.
    All methods flush but never commit.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = InstallmentRepository(db)
        self.reader = LedgerReader(db)

    # --- Public operations ---

    def reschedule(
        self,
        booking: Booking,
        strategy: RescheduleStrategy,
        today: Optional[date] = None,
    ) -> RescheduleResult:
        """
        Applies `strategy` to the open installments using the remaining balance
        read from the ledger now.

        A fully paid booking skips the strategy: every open installment is
        closed as externally covered instead.
        """
        today = resolve_today(today)
        balance = self.reader.remaining(booking)

        if balance.remaining <= ZERO:
            return self.cover_remaining(booking, today)

        if isinstance(strategy, ReduceAmount):
            unpaid = self.repo.list_unpaid_for_booking(booking.id)
            if not unpaid:
                raise InvalidRescheduleStrategyError(
                    "There are no open installments to reduce; choose a new plan instead."
                )
            return self._reduce_amount(booking, unpaid, balance.remaining, today)

        if isinstance(strategy, NewPlan):
            return self._new_plan(booking, strategy, balance.remaining, today)

        raise InvalidRescheduleStrategyError(f"Unsupported reschedule strategy: {strategy!r}")

    def generate_initial_schedule(
        self,
        booking: Booking,
        plan: NewPlan,
        amount_to_schedule: Decimal,
        today: Optional[date] = None,
    ) -> RescheduleResult:
        """Builds installments #1..#n for a booking that has no schedule yet."""
        today = resolve_today(today)
        if self.repo.list_for_booking(booking.id):
            raise InvalidRescheduleStrategyError(
                f"Booking {booking.id} already has a schedule."
            )

        installments = self._build_installments(
            booking, plan, amount_to_schedule, first_number=1, today=today
        )
        self.repo.add_all(installments)
        plan_update = self._apply_plan(booking, plan, amount_to_schedule, len(installments))

        logger.info(
            "Generated installment schedule",
            booking_id=booking.id,
            installments=len(installments),
            amount=float(amount_to_schedule),
        )
        return RescheduleResult(
            booking_id=booking.id,
            remaining=amount_to_schedule,
            updated_installments=installments,
            plan_update=plan_update,
        )

    def cover_remaining(self, booking: Booking, today: Optional[date] = None) -> RescheduleResult:
        """
        Closes every open installment of a fully paid booking.

        The money is already in the ledger, so covered installments keep
        paid_amount at zero and are linked as externally covered rather than to
        a ledger entry.
        """
        today = resolve_today(today)
        unpaid = self.repo.list_unpaid_for_booking(booking.id)
        for installment in unpaid:
            installment.status = InstallmentStatus.PAID
            installment.paid_amount = ZERO
            installment.paid_date = today
            installment.mark_externally_covered()
        self.db.flush()

        if unpaid:
            logger.info(
                "Closed installments as externally covered",
                booking_id=booking.id,
                installment_numbers=[i.installment_number for i in unpaid],
            )
        return RescheduleResult(
            booking_id=booking.id,
            remaining=ZERO,
            updated_installments=unpaid,
            fully_covered=True,
        )

    def reconcile(self, booking: Booking, today: Optional[date] = None) -> Optional[RescheduleResult]:
        """
        Brings the open schedule back in line with the ledger after money was
        taken out of it (reversal or deletion of a ledger entry).

        Returns None when the booking has no schedule or nothing had to change.
        """
        today = resolve_today(today)
        balance = self.reader.remaining(booking)
        installments = self.repo.list_for_booking(booking.id)
        if not installments:
            return None

        if balance.remaining <= ZERO:
            if any(not i.is_paid for i in installments):
                return self.cover_remaining(booking, today)
            return None

        outstanding = money_sum(i.outstanding for i in installments)
        if outstanding == balance.remaining:
            closed = self._close_empty(self.repo.list_unpaid_for_booking(booking.id), today)
            if not closed:
                return None
            return RescheduleResult(
                booking_id=booking.id,
                remaining=balance.remaining,
                updated_installments=closed,
            )

        if outstanding < balance.remaining:
            reopened = self._reopen_covered(installments, today)
            if reopened:
                logger.info(
                    "Reopened covered installments",
                    booking_id=booking.id,
                    installment_numbers=[i.installment_number for i in reopened],
                )

        unpaid = self.repo.list_unpaid_for_booking(booking.id)
        if not unpaid:
            catch_up = self._catch_up_installment(booking, installments, balance.remaining, today)
            return RescheduleResult(
                booking_id=booking.id,
                remaining=balance.remaining,
                updated_installments=[catch_up],
            )
        return self._reduce_amount(booking, unpaid, balance.remaining, today)

    def preview(
        self,
        booking: Booking,
        strategy: RescheduleStrategy,
        payment_amount: Decimal = ZERO,
    ) -> SchedulePreview:
        """
        What `strategy` would produce after a payment of `payment_amount`, without writing.

        The amount is checked the way a real payment would be: a negative amount
        or one above the remaining balance is rejected rather than simulated.
        """
        balance = self.reader.remaining(booking)
        if payment_amount < ZERO:
            raise InvalidPaymentAmountError(payment_amount)
        if payment_amount > balance.remaining:
            raise AmountExceedsRemainingError(payment_amount, balance.remaining)
        remaining_after = balance.remaining - payment_amount
        if remaining_after <= ZERO:
            return SchedulePreview(
                remaining_after=remaining_after,
                installment_count=0,
                installment_amount=ZERO,
                last_installment_amount=ZERO,
            )

        if isinstance(strategy, NewPlan):
            count = strategy.installment_count
        else:
            count = len(self.repo.list_unpaid_for_booking(booking.id))
        if count == 0:
            return SchedulePreview(remaining_after, 0, ZERO, ZERO)

        parts = distribute(remaining_after, count)
        return SchedulePreview(
            remaining_after=remaining_after,
            installment_count=count,
            installment_amount=parts[0],
            last_installment_amount=parts[-1],
        )

    # --- Strategies ---

    def _reduce_amount(
        self, booking: Booking, unpaid: List[Installment], remaining: Decimal, today: date
    ) -> RescheduleResult:
        parts = distribute(remaining, len(unpaid))
        for installment, share in zip(unpaid, parts):
            installment.amount = (installment.paid_amount or ZERO) + share
        self.db.flush()
        self._close_empty(unpaid, today)

        logger.info(
            "Spread remaining balance over open installments",
            booking_id=booking.id,
            remaining=float(remaining),
            installments=len(unpaid),
            installment_amount=float(parts[0]),
            last_installment_amount=float(parts[-1]),
        )
        return RescheduleResult(
            booking_id=booking.id,
            remaining=remaining,
            updated_installments=unpaid,
        )

    def _new_plan(
        self, booking: Booking, plan: NewPlan, remaining: Decimal, today: date
    ) -> RescheduleResult:
        installments = self.repo.list_for_booking(booking.id)
        kept = [i for i in installments if i.is_paid]
        unpaid = [i for i in installments if not i.is_paid]

        if kept:
            latest = max(kept, key=lambda i: i.due_date)
            if plan.start_date < latest.due_date:
                raise InvalidPlanStartDateError(
                    f"New plan start date {plan.start_date} precedes the due date "
                    f"{latest.due_date} of paid installment #{latest.installment_number}."
                )

        self.repo.delete_all(unpaid)
        self._compact_numbers(booking, kept)

        first_number = len(kept) + 1
        new_installments = self._build_installments(
            booking, plan, remaining, first_number=first_number, today=today
        )
        self.repo.add_all(new_installments)
        plan_update = self._apply_plan(
            booking, plan, remaining, len(kept) + len(new_installments)
        )

        logger.info(
            "Replaced open installments with a new plan",
            booking_id=booking.id,
            removed=len(unpaid),
            created=len(new_installments),
            years=plan.years,
            frequency_months=plan.frequency_months,
            start_date=plan.start_date.isoformat(),
        )
        return RescheduleResult(
            booking_id=booking.id,
            remaining=remaining,
            updated_installments=new_installments,
            removed_installments=len(unpaid),
            plan_update=plan_update,
        )

    # --- Helpers ---

    def _build_installments(
        self,
        booking: Booking,
        plan: NewPlan,
        amount: Decimal,
        first_number: int,
        today: date,
    ) -> List[Installment]:
        count = plan.installment_count
        amounts = distribute(amount, count)
        dates = due_dates(plan.start_date, plan.frequency_months, count)
        installments = [
            Installment(
                booking_id=booking.id,
                installment_number=first_number + offset,
                due_date=due_date,
                amount=installment_amount,
                paid_amount=ZERO,
                status=open_status_for(due_date, today),
                notification_sent=False,
            )
            for offset, (due_date, installment_amount) in enumerate(zip(dates, amounts))
        ]
        self._close_empty(installments, today)
        return installments

    def _apply_plan(
        self, booking: Booking, plan: NewPlan, amount: Decimal, total_installments: int
    ) -> PlanUpdate:
        monthly_amount = round2(amount / plan.total_months)
        installment_amount = round2(monthly_amount * plan.frequency_months)

        booking.payment_plan_years = plan.years
        booking.payment_frequency_months = plan.frequency_months
        booking.payment_start_date = plan.start_date
        booking.monthly_amount = monthly_amount
        booking.installment_amount = installment_amount
        booking.total_installments = total_installments
        self.db.flush()

        return PlanUpdate(
            years=plan.years,
            frequency_months=plan.frequency_months,
            start_date=plan.start_date,
            monthly_amount=monthly_amount,
            installment_amount=installment_amount,
            total_installments=total_installments,
        )

    def _compact_numbers(self, booking: Booking, kept: List[Installment]) -> None:
        """Renumbers kept installments 1..n if a reversal left a gap."""
        ordered = sorted(kept, key=lambda i: i.installment_number)
        if all(i.installment_number == n for n, i in enumerate(ordered, start=1)):
            return

        logger.warning(
            "Renumbering paid installments",
            booking_id=booking.id,
            installment_numbers=[i.installment_number for i in ordered],
        )
        for number, installment in enumerate(ordered, start=1):
            if installment.installment_number != number:
                installment.installment_number = number
                self.db.flush()

    def _close_empty(self, installments: List[Installment], today: date) -> List[Installment]:
        """
        Closes open installments that have nothing left to pay.

        A small balance spread over many installments can round some shares
        down to 0.00. Those are closed as covered with no ledger entry so that
        they never block settlement of the installments after them.
        """
        empty = [i for i in installments if not i.is_paid and i.outstanding <= ZERO]
        for installment in empty:
            installment.status = InstallmentStatus.PAID
            installment.paid_amount = ZERO
            installment.paid_date = today
            installment.mark_externally_covered()
        self.db.flush()

        if empty:
            logger.info(
                "Closed empty installments",
                booking_id=empty[0].booking_id,
                installment_numbers=[i.installment_number for i in empty],
            )
        return empty

    def _reopen_covered(self, installments: List[Installment], today: date) -> List[Installment]:
        reopened = [i for i in installments if i.is_externally_covered]
        for installment in reopened:
            installment.status = open_status_for(installment.due_date, today)
            installment.paid_amount = ZERO
            installment.paid_date = None
            installment.notification_sent = False
            installment.clear_link()
        self.db.flush()
        return reopened

    def _catch_up_installment(
        self,
        booking: Booking,
        installments: List[Installment],
        amount: Decimal,
        today: date,
    ) -> Installment:
        last = max(installments, key=lambda i: i.installment_number)
        due_date = max(today, last.due_date)
        catch_up = Installment(
            booking_id=booking.id,
            installment_number=last.installment_number + 1,
            due_date=due_date,
            amount=amount,
            paid_amount=ZERO,
            status=open_status_for(due_date, today),
            notification_sent=False,
        )
        self.repo.add_all([catch_up])
        booking.total_installments = catch_up.installment_number
        self.db.flush()
        logger.info(
            "Appended catch-up installment",
            booking_id=booking.id,
            installment_number=catch_up.installment_number,
            amount=float(amount),
        )
        return catch_up
