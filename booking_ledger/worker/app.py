### booking_ledger/worker/app.py

"""
Main Celery application.
"""

# Third party imports
from celery import Celery

# Import all models so that SQLAlchemy can resolve relationships in tasks
import booking_ledger.bookings.models
import booking_ledger.extra_payments.models
import booking_ledger.installments.models
import booking_ledger.ledger.models
import booking_ledger.units.models
from booking_ledger.core.config import settings
from booking_ledger.events.registry import import_event_subscribers

import_event_subscribers(settings.event_subscriber_modules)

# Create Celery Instance
app = Celery("booking_ledger")

# Configure celery from separate config file
app.config_from_object("booking_ledger.worker.config")

# Looks for tasks.py in each listed package
app.autodiscover_tasks(["booking_ledger.installments"])

if __name__ == "__main__":
    app.start()
