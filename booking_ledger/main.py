# booking_ledger/main.py

"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from booking_ledger.bookings.router import router as bookings_router
from booking_ledger.core.config import settings
from booking_ledger.core.db import Base, engine
from booking_ledger.events.registry import import_event_subscribers
from booking_ledger.extra_payments.router import router as extra_payments_router
from booking_ledger.installments.router import router as installments_router
from booking_ledger.ledger.router import router as ledger_router
from booking_ledger.utils.logger import get_logger

# Import models to ensure they are registered with Base
import booking_ledger.bookings.models
import booking_ledger.extra_payments.models
import booking_ledger.installments.models
import booking_ledger.ledger.models
import booking_ledger.units.models

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Creates missing tables and imports event subscribers on startup."""
    Base.metadata.create_all(bind=engine)
    import_event_subscribers(settings.event_subscriber_modules)
    logger.info("Booking ledger API started", environment=settings.environment)
    yield


app = FastAPI(
    title=settings.app_name,
    description="Installment ledger and rescheduling engine for installment sales",
    lifespan=lifespan,
)

app.include_router(bookings_router)
app.include_router(installments_router)
app.include_router(ledger_router)
app.include_router(extra_payments_router)


@app.get("/health", tags=["Health"])
def health_check():
    return {"status": "ok", "environment": settings.environment}
