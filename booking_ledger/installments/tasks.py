# booking_ledger/installments/tasks.py

"""
Celery task definitions for the installments module.
"""

from typing import Optional

from celery import shared_task

from booking_ledger.core.db import SessionLocal
from booking_ledger.installments.services import Urgency
from booking_ledger.payments.engine import PaymentEngine
from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)


@shared_task(name="installments.mark_overdue")
def mark_overdue_installments_task():
    """
    Daily sweep flagging pending installments whose due date has passed.
    """
    logger.info("Executing Celery task: mark_overdue_installments")

    db = SessionLocal()
    try:
        count = PaymentEngine(db).mark_overdue()
        logger.info("Overdue sweep finished", marked_overdue=count)
        return {"status": "success", "marked_overdue": count}
    except Exception as e:
        logger.error(
            "Celery task mark_overdue_installments failed",
            error=str(e),
            exc_info=True,
        )
        raise
    finally:
        db.close()


@shared_task(name="installments.send_due_reminders")
def send_installment_reminders_task(days_ahead: Optional[int] = None):
    """
    Sends a one-time reminder for each open installment that is due within
    the reminder window (or already overdue) and has not been reminded yet.
    """
    logger.info("Executing Celery task: send_installment_reminders")

    db = SessionLocal()
    try:
        reminders = PaymentEngine(db).send_due_reminders(days_ahead)

        for reminder in reminders:
            logger.info(
                "Sent installment due reminder",
                booking_id=reminder.booking_id,
                installment_number=reminder.installment_number,
                due_date=reminder.due_date.isoformat(),
                outstanding=float(reminder.outstanding),
                urgency=reminder.urgency.value,
            )

        overdue = sum(1 for r in reminders if r.urgency == Urgency.OVERDUE)
        due_today = sum(1 for r in reminders if r.urgency == Urgency.DUE_TODAY)
        logger.info(
            "Installment due reminders completed",
            reminders_sent=len(reminders),
            overdue=overdue,
            due_today=due_today,
        )
        return {
            "status": "success",
            "reminders_sent": len(reminders),
            "overdue": overdue,
            "due_today": due_today,
        }
    except Exception as e:
        logger.error(
            "Celery task send_installment_reminders failed",
            error=str(e),
            exc_info=True,
        )
        raise
    finally:
        db.close()
