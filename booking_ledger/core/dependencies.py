# booking_ledger/core/dependencies.py

from fastapi import Depends
from sqlalchemy.orm import Session

from booking_ledger.core.db import get_db
from booking_ledger.payments.engine import PaymentEngine


def get_payment_engine(db: Session = Depends(get_db)) -> PaymentEngine:
    """Provides an instance of PaymentEngine with the current DB session."""
    return PaymentEngine(db)
