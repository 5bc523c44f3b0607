"""
Shared test fixtures: an in-memory SQLite database per test and factories
for units, bookings and schedules.
"""

from datetime import date
from decimal import Decimal
from typing import List

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Import models to ensure they are registered with Base
import booking_ledger.bookings.models
import booking_ledger.extra_payments.models
import booking_ledger.installments.models
import booking_ledger.ledger.models
import booking_ledger.units.models
from booking_ledger.bookings.models import Booking, BookingStatus
from booking_ledger.core.db import Base
from booking_ledger.events.registry import (
    BOOKING_COMPLETED,
    BOOKING_REOPENED,
    event_handler,
    remove_event_handler,
)
from booking_ledger.installments.models import Installment, InstallmentStatus
from booking_ledger.installments.repository import InstallmentRepository
from booking_ledger.payments.engine import PaymentEngine
from booking_ledger.units.models import Unit
from booking_ledger.utils.dates import due_dates

UNIT_PRICE = Decimal("120000000.00")
INSTALLMENT_AMOUNT = Decimal("10000000.00")


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints for SQLite."""
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Database session fixture."""
    TestingSessionLocal = sessionmaker(
        bind=db_engine, autoflush=False, expire_on_commit=False
    )
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def payment_engine(db_session) -> PaymentEngine:
    return PaymentEngine(db_session)


@pytest.fixture
def unit(db_session) -> Unit:
    unit = Unit(unit_number="A-101", name="Tower A, unit 101", price=UNIT_PRICE)
    db_session.add(unit)
    db_session.commit()
    return unit


def seed_schedule(
    db: Session,
    unit: Unit,
    amounts: List[Decimal],
    start: date = date(2025, 2, 1),
    frequency_months: int = 1,
    status: InstallmentStatus = InstallmentStatus.PENDING,
    customer_id: int = 7,
) -> Booking:
    """
    Inserts a booking and its schedule directly, without going through the
    engine, so that tests can start from any schedule shape.
    """
    booking = Booking(
        unit=unit,
        customer_id=customer_id,
        customer_name="Test Customer",
        booking_date=date(2025, 1, 1),
        payment_frequency_months=frequency_months,
        payment_start_date=start,
        total_installments=len(amounts),
        status=BookingStatus.ACTIVE,
    )
    db.add(booking)
    db.flush()

    for number, (due_date, amount) in enumerate(
        zip(due_dates(start, frequency_months, len(amounts)), amounts), start=1
    ):
        db.add(
            Installment(
                booking_id=booking.id,
                installment_number=number,
                due_date=due_date,
                amount=amount,
                paid_amount=Decimal("0.00"),
                status=status,
            )
        )
    db.commit()
    return booking


@pytest.fixture
def booking(db_session, unit) -> Booking:
    """120,000,000 unit, no deposit, 12 monthly installments of 10,000,000."""
    return seed_schedule(db_session, unit, [INSTALLMENT_AMOUNT] * 12)


@pytest.fixture
def make_booking(db_session, unit):
    """Factory fixture wrapping `seed_schedule` for the default unit."""

    def _make(amounts=None, **kwargs) -> Booking:
        return seed_schedule(db_session, unit, amounts or [INSTALLMENT_AMOUNT] * 12, **kwargs)

    return _make


@pytest.fixture
def schedule(db_session):
    """Returns the installments of a booking ordered by number."""

    def _schedule(booking_id: int) -> List[Installment]:
        return InstallmentRepository(db_session).list_for_booking(booking_id)

    return _schedule


@pytest.fixture
def received_events():
    """Records booking events delivered to subscribers during a test."""
    received = []

    def record_completed(ctx):
        received.append((ctx.event_key, ctx.booking_id))

    def record_reopened(ctx):
        received.append((ctx.event_key, ctx.booking_id))

    event_handler(BOOKING_COMPLETED)(record_completed)
    event_handler(BOOKING_REOPENED)(record_reopened)
    yield received
    remove_event_handler(BOOKING_COMPLETED, record_completed)
    remove_event_handler(BOOKING_REOPENED, record_reopened)
