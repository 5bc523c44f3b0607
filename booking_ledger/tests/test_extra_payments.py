from datetime import date
from decimal import Decimal

import pytest

from booking_ledger.bookings.models import BookingStatus
from booking_ledger.extra_payments.models import PaymentMethod
from booking_ledger.installments.links import EXTERNALLY_COVERED
from booking_ledger.installments.models import InstallmentStatus
from booking_ledger.ledger.exceptions import AmountExceedsRemainingError, InvalidPaymentAmountError
from booking_ledger.ledger.models import PaymentKind
from booking_ledger.rescheduling.exceptions import (
    InvalidPlanStartDateError,
    InvalidRescheduleStrategyError,
)
from booking_ledger.rescheduling.strategies import REDUCE_AMOUNT, NewPlan, StrategyName
from booking_ledger.utils.money import money_sum

TODAY = date(2025, 1, 15)


class TestExtraPaymentScenarios:
    """
    120,000,000 unit with 12 installments of 10,000,000, the first three
    already settled.
    """

    @pytest.fixture
    def settled_booking(self, payment_engine, booking, schedule):
        for installment in schedule(booking.id)[:3]:
            payment_engine.settle_installment(installment.id, today=TODAY)
        return booking

    def test_reduce_amount_spreads_remaining_over_open_installments(
        self, payment_engine, settled_booking, schedule
    ):
        outcome = payment_engine.record_extra_payment(
            settled_booking.id,
            Decimal("15000000.00"),
            strategy=REDUCE_AMOUNT,
            payment_method=PaymentMethod.BANK_TRANSFER,
            today=TODAY,
        )

        unpaid = [i for i in schedule(settled_booking.id) if not i.is_paid]
        assert len(unpaid) == 9
        assert [i.amount for i in unpaid[:-1]] == [Decimal("8333333.33")] * 8
        assert unpaid[-1].amount == Decimal("8333333.36")
        assert money_sum(i.amount for i in unpaid) == Decimal("75000000.00")
        assert [i.installment_number for i in unpaid] == list(range(4, 13))

        assert outcome.ledger_entry.kind == PaymentKind.EXTRA
        assert outcome.extra_payment.reschedule_strategy == StrategyName.REDUCE_AMOUNT
        assert outcome.extra_payment.new_installment_count == 9
        assert outcome.extra_payment.payment_method == PaymentMethod.BANK_TRANSFER
        assert payment_engine.get_remaining(settled_booking.id).remaining == Decimal("75000000.00")

    def test_amount_above_remaining_is_rejected_without_mutation(
        self, payment_engine, settled_booking, schedule
    ):
        payment_engine.record_extra_payment(settled_booking.id, Decimal("15000000.00"), today=TODAY)
        amounts_before = [i.amount for i in schedule(settled_booking.id)]
        entries_before = len(payment_engine.reader.list_entries(settled_booking.id))

        with pytest.raises(AmountExceedsRemainingError):
            payment_engine.record_extra_payment(
                settled_booking.id, Decimal("90000000.00"), today=TODAY
            )

        assert [i.amount for i in schedule(settled_booking.id)] == amounts_before
        assert len(payment_engine.reader.list_entries(settled_booking.id)) == entries_before
        extra_payments = payment_engine.extra_repo.list_for_booking(settled_booking.id)
        assert [e.amount for e in extra_payments] == [Decimal("15000000.00")]

    def test_paying_exactly_the_remaining_covers_every_installment(
        self, payment_engine, settled_booking, schedule, received_events
    ):
        payment_engine.record_extra_payment(settled_booking.id, Decimal("15000000.00"), today=TODAY)

        outcome = payment_engine.record_extra_payment(
            settled_booking.id, Decimal("75000000.00"), today=TODAY
        )

        covered = schedule(settled_booking.id)[3:]
        assert len(covered) == 9
        for installment in covered:
            assert installment.status == InstallmentStatus.PAID
            assert installment.paid_amount == Decimal("0.00")
            assert installment.link == EXTERNALLY_COVERED
            assert installment.paid_date == TODAY
        assert outcome.updated_schedule == []
        assert outcome.reschedule.fully_covered
        assert settled_booking.status == BookingStatus.COMPLETED
        assert received_events == [("booking_completed", settled_booking.id)]


class TestSmallRemainderSpread:
    """A few cents spread over many installments rounds most shares to 0.00."""

    @pytest.fixture
    def nearly_paid_booking(self, payment_engine, booking):
        payment_engine.record_extra_payment(
            booking.id, Decimal("119999999.95"), strategy=REDUCE_AMOUNT, today=TODAY
        )
        return booking

    def test_empty_shares_are_closed_without_ledger_entries(
        self, payment_engine, nearly_paid_booking, schedule
    ):
        installments = schedule(nearly_paid_booking.id)

        for installment in installments[:11]:
            assert installment.amount == Decimal("0.00")
            assert installment.status == InstallmentStatus.PAID
            assert installment.paid_amount == Decimal("0.00")
            assert installment.link == EXTERNALLY_COVERED
        assert installments[11].amount == Decimal("0.05")
        assert not installments[11].is_paid
        assert len(payment_engine.reader.list_entries(nearly_paid_booking.id)) == 1

    def test_every_open_installment_can_be_settled_in_order(
        self, payment_engine, nearly_paid_booking, schedule
    ):
        for installment in schedule(nearly_paid_booking.id):
            if not installment.is_paid:
                payment_engine.settle_installment(installment.id, today=TODAY)

        assert all(i.is_paid for i in schedule(nearly_paid_booking.id))
        assert payment_engine.get_remaining(nearly_paid_booking.id).remaining == Decimal("0.00")
        assert nearly_paid_booking.status == BookingStatus.COMPLETED

    def test_reconcile_recloses_a_reopened_empty_installment(
        self, payment_engine, nearly_paid_booking, schedule
    ):
        first = schedule(nearly_paid_booking.id)[0]

        payment_engine.reverse_settlement(first.id, today=TODAY)

        assert first.status == InstallmentStatus.PAID
        assert first.link == EXTERNALLY_COVERED
        last = schedule(nearly_paid_booking.id)[11]
        payment_engine.settle_installment(last.id, today=TODAY)
        assert last.is_paid


class TestExtraPaymentValidation:

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    def test_non_positive_amounts(self, payment_engine, booking, amount):
        with pytest.raises(InvalidPaymentAmountError):
            payment_engine.record_extra_payment(booking.id, amount)

        assert payment_engine.reader.list_entries(booking.id) == []

    def test_booking_without_schedule_only_records_the_payment(self, payment_engine, unit):
        booking = payment_engine.create_booking(unit.id, customer_id=3, today=TODAY)

        outcome = payment_engine.record_extra_payment(booking.id, Decimal("1000000.00"), today=TODAY)

        assert outcome.reschedule is None
        assert outcome.extra_payment.reschedule_strategy is None
        assert payment_engine.get_remaining(booking.id).remaining == Decimal("119000000.00")


class TestNewPlanStrategy:

    def test_new_plan_replaces_open_installments(self, payment_engine, booking, schedule):
        installments = schedule(booking.id)
        for installment in installments[:2]:
            payment_engine.settle_installment(installment.id, today=TODAY)
        plan = NewPlan(years=4, frequency_months=6, start_date=date(2025, 6, 1))

        outcome = payment_engine.record_extra_payment(
            booking.id, Decimal("20000000.00"), strategy=plan, today=TODAY
        )

        new_schedule = schedule(booking.id)
        unpaid = [i for i in new_schedule if not i.is_paid]
        assert [i.installment_number for i in new_schedule] == list(range(1, 11))
        assert len(unpaid) == 8
        assert unpaid[0].due_date == date(2025, 6, 1)
        assert unpaid[1].due_date == date(2025, 12, 1)
        assert {i.amount for i in unpaid} == {Decimal("10000000.00")}
        assert outcome.reschedule.removed_installments == 10
        assert outcome.extra_payment.reschedule_strategy == StrategyName.NEW_PLAN

        assert booking.payment_plan_years == 4
        assert booking.payment_frequency_months == 6
        assert booking.payment_start_date == date(2025, 6, 1)
        assert booking.monthly_amount == Decimal("1666666.67")
        assert booking.installment_amount == Decimal("10000000.02")
        assert booking.total_installments == 10

    def test_new_plan_cannot_start_before_a_paid_installment(
        self, payment_engine, booking, schedule
    ):
        first = schedule(booking.id)[0]
        payment_engine.settle_installment(first.id, today=TODAY)
        plan = NewPlan(years=4, frequency_months=1, start_date=date(2025, 1, 1))

        with pytest.raises(InvalidPlanStartDateError):
            payment_engine.record_extra_payment(booking.id, Decimal("1.00"), strategy=plan)

        assert len(schedule(booking.id)) == 12
        assert len(payment_engine.reader.list_entries(booking.id)) == 1

    def test_new_plan_closes_numbering_gaps(self, payment_engine, booking, schedule):
        installments = schedule(booking.id)
        for installment in installments[:3]:
            payment_engine.settle_installment(installment.id, today=TODAY)
        payment_engine.reverse_settlement(installments[1].id, today=TODAY)
        plan = NewPlan(years=5, frequency_months=12, start_date=date(2026, 1, 1))

        payment_engine.reschedule_only(booking.id, plan, today=TODAY)

        new_schedule = schedule(booking.id)
        assert [i.installment_number for i in new_schedule] == list(range(1, 8))
        assert [i.is_paid for i in new_schedule[:2]] == [True, True]
        assert money_sum(i.amount for i in new_schedule[2:]) == Decimal("100000000.00")

    def test_reduce_amount_on_booking_without_schedule_is_rejected(
        self, payment_engine, unit
    ):
        booking = payment_engine.create_booking(unit.id, customer_id=3, today=TODAY)

        with pytest.raises(InvalidRescheduleStrategyError):
            payment_engine.reschedule_only(booking.id, REDUCE_AMOUNT, today=TODAY)


class TestPreview:

    def test_preview_does_not_write(self, payment_engine, booking, schedule):
        preview = payment_engine.preview_reschedule(
            booking.id, REDUCE_AMOUNT, Decimal("30000000.00")
        )

        assert preview.remaining_after == Decimal("90000000.00")
        assert preview.installment_count == 12
        assert preview.installment_amount == Decimal("7500000.00")
        assert {i.amount for i in schedule(booking.id)} == {Decimal("10000000.00")}

    def test_preview_new_plan(self, payment_engine, booking):
        plan = NewPlan(years=5, frequency_months=3, start_date=date(2025, 3, 1))

        preview = payment_engine.preview_reschedule(booking.id, plan)

        assert preview.installment_count == 20
        assert preview.installment_amount == Decimal("6000000.00")

    def test_preview_amount_above_remaining_is_rejected(self, payment_engine, booking):
        with pytest.raises(AmountExceedsRemainingError):
            payment_engine.preview_reschedule(
                booking.id, REDUCE_AMOUNT, Decimal("120000000.01")
            )

    def test_preview_negative_amount_is_rejected(self, payment_engine, booking):
        with pytest.raises(InvalidPaymentAmountError):
            payment_engine.preview_reschedule(booking.id, REDUCE_AMOUNT, Decimal("-1.00"))

    def test_preview_of_the_full_remaining(self, payment_engine, booking):
        preview = payment_engine.preview_reschedule(
            booking.id, REDUCE_AMOUNT, Decimal("120000000.00")
        )

        assert preview.remaining_after == Decimal("0.00")
        assert preview.installment_count == 0
