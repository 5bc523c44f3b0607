from datetime import date
from decimal import Decimal

from booking_ledger.installments.gate import can_reverse, can_settle
from booking_ledger.installments.models import Installment, InstallmentStatus


def build_schedule(statuses):
    return [
        Installment(
            booking_id=1,
            installment_number=number,
            due_date=date(2025, number, 1),
            amount=Decimal("100.00"),
            paid_amount=Decimal("100.00") if status == InstallmentStatus.PAID else Decimal("0.00"),
            status=status,
        )
        for number, status in enumerate(statuses, start=1)
    ]


class TestSettlementGate:
    """The gate is a pure function over a booking's installments."""

    def test_first_installment_is_always_eligible(self):
        schedule = build_schedule([InstallmentStatus.OVERDUE, InstallmentStatus.PENDING])

        decision = can_settle(schedule[0], schedule)

        assert decision.allowed
        assert decision.reason is None

    def test_next_installment_allowed_once_predecessors_paid(self):
        schedule = build_schedule(
            [InstallmentStatus.PAID, InstallmentStatus.PAID, InstallmentStatus.PENDING]
        )

        assert can_settle(schedule[2], schedule).allowed

    def test_reason_names_lowest_unpaid_predecessor(self):
        schedule = build_schedule(
            [
                InstallmentStatus.PAID,
                InstallmentStatus.OVERDUE,
                InstallmentStatus.PENDING,
                InstallmentStatus.PENDING,
            ]
        )

        decision = can_settle(schedule[3], schedule)

        assert not decision.allowed
        assert decision.blocking_installment_number == 2
        assert decision.reason == "installment #2 must be settled first"

    def test_order_of_the_collection_does_not_matter(self):
        schedule = build_schedule(
            [InstallmentStatus.PENDING, InstallmentStatus.PENDING, InstallmentStatus.PENDING]
        )

        decision = can_settle(schedule[2], list(reversed(schedule)))

        assert decision.blocking_installment_number == 1

    def test_paid_installment_is_never_settleable(self):
        schedule = build_schedule([InstallmentStatus.PAID, InstallmentStatus.PENDING])

        decision = can_settle(schedule[0], schedule)

        assert not decision.allowed
        assert "already paid" in decision.reason

    def test_partially_paid_predecessor_blocks(self):
        schedule = build_schedule(
            [InstallmentStatus.PARTIALLY_PAID, InstallmentStatus.PENDING]
        )

        assert not can_settle(schedule[1], schedule).allowed


class TestReversalGate:

    def test_only_paid_installments_can_be_reversed(self):
        schedule = build_schedule([InstallmentStatus.PAID, InstallmentStatus.PENDING])

        assert can_reverse(schedule[0]).allowed
        decision = can_reverse(schedule[1])
        assert not decision.allowed
        assert decision.reason == "installment #2 is not paid"
