from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import delete

from booking_ledger.bookings.models import BookingStatus
from booking_ledger.core.config import settings
from booking_ledger.core.exceptions import LedgerIntegrityError, PaymentValidationError
from booking_ledger.installments.exceptions import (
    AttachmentRequiredError,
    InstallmentNotFoundError,
    InvalidReversalError,
    SettlementNotAllowedError,
)
from booking_ledger.installments.links import LedgerEntryLink, LinkType
from booking_ledger.installments.models import InstallmentStatus
from booking_ledger.ledger.exceptions import AmountExceedsRemainingError
from booking_ledger.ledger.models import LedgerEntry, PaymentKind

TODAY = date(2025, 1, 15)


class TestSettleInstallment:
    """
    Settling writes exactly one ledger entry and marks the installment paid.
    """

    def test_settle_first_installment(self, payment_engine, booking, schedule):
        first = schedule(booking.id)[0]

        entry = payment_engine.settle_installment(
            first.id, payment_date=date(2025, 2, 1), today=TODAY
        )

        assert entry.kind == PaymentKind.INSTALLMENT
        assert entry.amount == Decimal("10000000.00")
        assert first.status == InstallmentStatus.PAID
        assert first.paid_amount == first.amount
        assert first.paid_date == date(2025, 2, 1)
        assert first.link == LedgerEntryLink(entry.id)
        assert payment_engine.get_remaining(booking.id).remaining == Decimal("110000000.00")

    def test_out_of_order_settlement_is_rejected_without_writes(
        self, payment_engine, booking, schedule
    ):
        installments = schedule(booking.id)
        payment_engine.settle_installment(installments[0].id, today=TODAY)

        with pytest.raises(SettlementNotAllowedError) as exc_info:
            payment_engine.settle_installment(installments[2].id, today=TODAY)

        assert str(exc_info.value) == "installment #2 must be settled first"
        assert exc_info.value.blocking_number == 2
        assert len(payment_engine.reader.list_entries(booking.id)) == 1
        assert schedule(booking.id)[2].status == InstallmentStatus.PENDING

    def test_paid_installment_cannot_be_settled_twice(self, payment_engine, booking, schedule):
        first = schedule(booking.id)[0]
        payment_engine.settle_installment(first.id, today=TODAY)

        with pytest.raises(SettlementNotAllowedError):
            payment_engine.settle_installment(first.id, today=TODAY)

        assert payment_engine.get_remaining(booking.id).total_paid == Decimal("10000000.00")

    def test_unknown_installment(self, payment_engine, booking):
        with pytest.raises(InstallmentNotFoundError):
            payment_engine.settle_installment(4242)

    def test_settling_every_installment_completes_the_booking(
        self, payment_engine, booking, schedule
    ):
        for installment in schedule(booking.id):
            payment_engine.settle_installment(installment.id, today=TODAY)

        balance = payment_engine.get_remaining(booking.id)
        assert balance.remaining == Decimal("0.00")
        assert booking.status == BookingStatus.COMPLETED
        assert all(i.link_type == LinkType.LEDGER_ENTRY for i in schedule(booking.id))


class TestAttachmentPolicy:

    def test_call_site_can_require_attachment(self, payment_engine, booking, schedule):
        first = schedule(booking.id)[0]

        with pytest.raises(AttachmentRequiredError):
            payment_engine.settle_installment(first.id, require_attachment=True)

        assert first.status == InstallmentStatus.PENDING
        assert payment_engine.reader.list_entries(booking.id) == []

    def test_attachment_reference_is_stored(self, payment_engine, booking, schedule):
        first = schedule(booking.id)[0]

        entry = payment_engine.settle_installment(
            first.id, attachment_ref="receipts/0001.pdf", require_attachment=True
        )

        assert entry.attachment_ref == "receipts/0001.pdf"

    def test_configured_policy_and_override(self, payment_engine, booking, schedule, monkeypatch):
        monkeypatch.setattr(settings, "require_settlement_attachment", True)
        first = schedule(booking.id)[0]

        with pytest.raises(AttachmentRequiredError):
            payment_engine.settle_installment(first.id)

        entry = payment_engine.settle_installment(first.id, require_attachment=False)
        assert entry.attachment_ref is None


class TestReverseSettlement:

    def test_reversal_restores_pending_installment(self, payment_engine, booking, schedule):
        first = schedule(booking.id)[0]
        before = payment_engine.get_remaining(booking.id).remaining
        entry = payment_engine.settle_installment(first.id, today=TODAY)

        deleted_entry_id = payment_engine.reverse_settlement(first.id, today=TODAY)

        assert deleted_entry_id == entry.id
        assert first.status == InstallmentStatus.PENDING
        assert first.paid_amount == Decimal("0.00")
        assert first.paid_date is None
        assert first.link_type == LinkType.NONE
        assert payment_engine.get_remaining(booking.id).remaining == before
        assert payment_engine.reader.list_entries(booking.id) == []

    def test_reversal_of_past_due_installment_restores_overdue(
        self, payment_engine, make_booking, schedule
    ):
        booking = make_booking(start=date(2024, 11, 1))
        first = schedule(booking.id)[0]
        payment_engine.settle_installment(first.id, today=TODAY)

        payment_engine.reverse_settlement(first.id, today=TODAY)

        assert first.status == InstallmentStatus.OVERDUE

    def test_reversing_unpaid_installment_is_an_integrity_error(
        self, payment_engine, booking, schedule
    ):
        first = schedule(booking.id)[0]

        with pytest.raises(InvalidReversalError) as exc_info:
            payment_engine.reverse_settlement(first.id)

        assert isinstance(exc_info.value, LedgerIntegrityError)

    def test_missing_ledger_entry_is_a_no_op_for_the_ledger(
        self, db_session, payment_engine, booking, schedule
    ):
        first = schedule(booking.id)[0]
        entry = payment_engine.settle_installment(first.id, today=TODAY)
        db_session.execute(delete(LedgerEntry).where(LedgerEntry.id == entry.id))
        db_session.commit()
        db_session.expire_all()

        deleted_entry_id = payment_engine.reverse_settlement(first.id, today=TODAY)

        assert deleted_entry_id is None
        assert first.status == InstallmentStatus.PENDING
        assert payment_engine.get_remaining(booking.id).remaining == Decimal("120000000.00")

    def test_later_installment_can_be_reversed_alone(self, payment_engine, booking, schedule):
        installments = schedule(booking.id)
        for installment in installments[:3]:
            payment_engine.settle_installment(installment.id, today=TODAY)

        payment_engine.reverse_settlement(installments[1].id, today=TODAY)

        assert [i.status for i in schedule(booking.id)[:3]] == [
            InstallmentStatus.PAID,
            InstallmentStatus.PENDING,
            InstallmentStatus.PAID,
        ]
        assert payment_engine.get_remaining(booking.id).remaining == Decimal("100000000.00")


class TestOnAccountPayment:

    def test_partial_payment_spreads_over_open_installments(
        self, payment_engine, booking, schedule
    ):
        entry = payment_engine.record_payment(booking.id, Decimal("6000000.00"), today=TODAY)

        assert entry.kind == PaymentKind.INSTALLMENT
        assert {i.amount for i in schedule(booking.id)} == {Decimal("9500000.00")}

    def test_full_payoff_closes_every_installment(self, payment_engine, booking, schedule):
        payment_engine.settle_installment(schedule(booking.id)[0].id, today=TODAY)

        entry = payment_engine.record_payment(booking.id, Decimal("110000000.00"), today=TODAY)

        assert entry.kind == PaymentKind.FINAL
        balance = payment_engine.get_remaining(booking.id)
        assert balance.total_paid == balance.unit_price
        assert all(i.is_paid for i in schedule(booking.id))
        assert booking.status == BookingStatus.COMPLETED

    def test_overpayment_is_rejected(self, payment_engine, booking):
        with pytest.raises(AmountExceedsRemainingError) as exc_info:
            payment_engine.record_payment(booking.id, Decimal("120000000.01"))

        assert isinstance(exc_info.value, PaymentValidationError)
        assert payment_engine.reader.list_entries(booking.id) == []
