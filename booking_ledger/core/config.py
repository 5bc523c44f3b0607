# booking_ledger/core/config.py

from decimal import Decimal
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


#
# =====================================================
#                    SETTINGS CLASS
# =====================================================
#


class Settings(BaseSettings):
    """
    Application Settings
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    environment: str = "development"
    app_name: str = "Booking Ledger"

    # Database
    database_url: str = "sqlite:///./booking_ledger.db"
    db_echo: bool = False
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # Settlement policy
    # When True every installment settlement must carry an attachment reference
    # (receipt scan, transfer slip). Callers may override per request.
    require_settlement_attachment: bool = False

    # Lifecycle policy: signal "unit available again" when a completed booking
    # falls back below the unit price.
    release_unit_on_reopen: bool = True

    # Largest allowed gap between the unpaid schedule and the ledger remaining
    schedule_tolerance: Decimal = Decimal("0.01")

    # Default look-ahead for the upcoming installments listing
    upcoming_window_days: int = 30

    # Due-date reminders go out once per installment, this many days ahead
    reminder_window_days: int = 3

    # Celery
    celery_broker: str = "redis://localhost:6379/0"
    celery_backend: str = "redis://localhost:6379/1"

    # Logging configuration
    log_level: str = "INFO"
    log_json: bool = False

    extra_payment_default_note: Optional[str] = "Out-of-plan extra payment"

    # Modules whose @event_handler subscribers are imported at start-up
    event_subscriber_modules: List[str] = []


@lru_cache
def get_settings() -> Settings:
    """Return a process-wide Settings instance."""
    return Settings()


settings = get_settings()
