# booking_ledger/utils/logger.py

import logging
import sys

import structlog

from booking_ledger.core.config import settings

_configured = False


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Routes structlog through the standard library so that uvicorn, Celery and
    SQLAlchemy records share one handler. Runs once per process.
    """
    global _configured
    if _configured:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            # Routers log "... %s" with positional args.
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Returns a structured logger bound to `name`."""
    configure_logging(settings.log_level, settings.log_json)
    return structlog.get_logger(name)
