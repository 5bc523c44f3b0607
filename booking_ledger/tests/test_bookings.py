from datetime import date
from decimal import Decimal

import pytest

from booking_ledger.bookings.exceptions import UnitNotFoundError
from booking_ledger.bookings.models import BookingStatus
from booking_ledger.ledger.exceptions import AmountExceedsRemainingError, InvalidPaymentAmountError
from booking_ledger.ledger.models import PaymentKind
from booking_ledger.rescheduling.strategies import NewPlan
from booking_ledger.utils.money import money_sum

TODAY = date(2025, 1, 15)


class TestCreateBooking:

    def test_deposit_and_quarterly_plan(self, payment_engine, unit, schedule):
        plan = NewPlan(years=4, frequency_months=3, start_date=date(2025, 3, 1))

        booking = payment_engine.create_booking(
            unit.id,
            customer_id=42,
            plan=plan,
            deposit_amount=Decimal("20000000.00"),
            booking_date=date(2025, 1, 10),
            customer_name="Customer 42",
            today=TODAY,
        )

        installments = schedule(booking.id)
        assert len(installments) == 16
        assert money_sum(i.amount for i in installments) == Decimal("100000000.00")
        assert installments[0].amount == Decimal("6250000.00")
        assert installments[1].due_date == date(2025, 6, 1)
        assert installments[-1].due_date == date(2028, 12, 1)
        assert booking.total_installments == 16
        assert booking.monthly_amount == Decimal("2083333.33")
        assert booking.installment_amount == Decimal("6249999.99")
        assert booking.status == BookingStatus.ACTIVE

        entries = payment_engine.reader.list_entries(booking.id)
        assert [(e.kind, e.amount, e.payment_date) for e in entries] == [
            (PaymentKind.BOOKING, Decimal("20000000.00"), date(2025, 1, 10))
        ]
        assert payment_engine.get_remaining(booking.id).remaining == Decimal("100000000.00")

    def test_plan_starting_in_the_past_opens_overdue_installments(
        self, payment_engine, unit, schedule
    ):
        plan = NewPlan(years=4, frequency_months=12, start_date=date(2024, 6, 1))

        booking = payment_engine.create_booking(unit.id, customer_id=1, plan=plan, today=TODAY)

        statuses = [i.status.value for i in schedule(booking.id)]
        assert statuses == ["overdue", "pending", "pending", "pending"]

    def test_deposit_of_the_full_price_completes_the_booking(
        self, payment_engine, unit, schedule, received_events
    ):
        plan = NewPlan(years=5, frequency_months=1, start_date=date(2025, 2, 1))

        booking = payment_engine.create_booking(
            unit.id, customer_id=1, plan=plan, deposit_amount=unit.price, today=TODAY
        )

        assert schedule(booking.id) == []
        assert booking.status == BookingStatus.COMPLETED
        assert received_events == [("booking_completed", booking.id)]

    def test_deposit_above_price_is_rejected(self, payment_engine, unit):
        with pytest.raises(AmountExceedsRemainingError):
            payment_engine.create_booking(
                unit.id, customer_id=1, deposit_amount=Decimal("120000000.01")
            )

    def test_negative_deposit_is_rejected(self, payment_engine, unit):
        with pytest.raises(InvalidPaymentAmountError):
            payment_engine.create_booking(unit.id, customer_id=1, deposit_amount=Decimal("-1"))

    def test_unknown_unit(self, payment_engine, unit):
        with pytest.raises(UnitNotFoundError):
            payment_engine.create_booking(unit.id + 100, customer_id=1)
