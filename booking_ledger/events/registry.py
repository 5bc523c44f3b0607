# booking_ledger/events/registry.py

"""
Booking event registry.

The engine emits lifecycle events and due-date reminders once a unit of work
has committed; external collaborators (inventory, sales records, customer
messaging) subscribe with the decorator:

      @event_handler(BOOKING_COMPLETED)
      def mark_unit_sold(ctx: BookingEventContext):
          ...
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from booking_ledger.utils.logger import get_logger

logger = get_logger(__name__)

BOOKING_COMPLETED = "booking_completed"
BOOKING_REOPENED = "booking_reopened"
INSTALLMENT_DUE_REMINDER = "installment_due_reminder"

KNOWN_EVENTS = (BOOKING_COMPLETED, BOOKING_REOPENED, INSTALLMENT_DUE_REMINDER)


@dataclass(frozen=True)
class BookingEventContext:
    event_key: str
    booking_id: int
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    params: Dict[str, Any] = field(default_factory=dict)


Handler = Callable[[BookingEventContext], None]

_EVENT_HANDLERS: Dict[str, List[Handler]] = {}


def event_handler(event_key: str) -> Callable[[Handler], Handler]:
    """Registers `fn` as a subscriber of `event_key`."""

    def decorator(fn: Handler) -> Handler:
        if event_key not in KNOWN_EVENTS:
            raise ValueError(f"Unknown booking event_key={event_key}")
        handlers = _EVENT_HANDLERS.setdefault(event_key, [])
        if fn in handlers:
            raise ValueError(
                f"Duplicate handler {fn.__name__} for event_key={event_key}"
            )
        handlers.append(fn)
        return fn

    return decorator


def get_event_handlers(event_key: str) -> List[Handler]:
    return list(_EVENT_HANDLERS.get(event_key, []))


def remove_event_handler(event_key: str, fn: Handler) -> None:
    handlers = _EVENT_HANDLERS.get(event_key, [])
    if fn in handlers:
        handlers.remove(fn)


def dispatch(ctx: BookingEventContext) -> int:
    """
    Delivers an event to every subscriber and returns how many succeeded.

    The ledger write that caused the event is already committed, so a failing
    subscriber is logged and the remaining subscribers still run.
    """
    handlers = get_event_handlers(ctx.event_key)
    if not handlers:
        logger.info("No subscribers for event", event_key=ctx.event_key, booking_id=ctx.booking_id)
        return 0

    delivered = 0
    for handler in handlers:
        try:
            handler(ctx)
            delivered += 1
        except Exception as e:
            logger.error(
                "Event handler failed",
                handler=handler.__name__,
                event_key=ctx.event_key,
                booking_id=ctx.booking_id,
                error=str(e),
                exc_info=True,
            )
    logger.info(
        "Dispatched event",
        event_key=ctx.event_key,
        booking_id=ctx.booking_id,
        delivered=delivered,
        total_handlers=len(handlers),
    )
    return delivered


def import_event_subscribers(module_names: List[str]) -> None:
    """
    Imports subscriber modules so that their @event_handler decorators run.
    Module names come from configuration, e.g. ["inventory.subscribers"].
    """
    for module_name in module_names:
        logger.info("Importing event subscriber module", module=module_name)
        importlib.import_module(module_name)

    logger.info(
        "Event subscriber discovery complete",
        registered_handlers={key: len(value) for key, value in _EVENT_HANDLERS.items()},
    )
