### booking_ledger/worker/config.py

"""
Celery configuration settings: broker, serialization and the beat schedule.
"""

# Third party imports
from celery.schedules import crontab

# Local imports
from booking_ledger.core.config import settings

# Broker and result backend configurations
broker_url = settings.celery_broker
result_backend = settings.celery_backend

# Task serialization
task_serializer = "json"
accept_content = ["json"]
result_serializer = "json"
timezone = "UTC"
enable_utc = True

# Task settings
task_track_started = True
task_time_limit = 30 * 60
task_soft_time_limit = 25 * 60
worker_prefetch_multiplier = 1
task_acks_late = True

broker_connection_retry_on_startup = True

# Beat schedule configuration
beat_schedule = {
    "mark-overdue-installments": {
        "task": "installments.mark_overdue",
        "schedule": crontab(hour=0, minute=15),
        "options": {"timezone": "UTC"},
    },
    "send-installment-reminders": {
        "task": "installments.send_due_reminders",
        "schedule": crontab(hour=6, minute=0),
        "options": {"timezone": "UTC"},
    },
}
