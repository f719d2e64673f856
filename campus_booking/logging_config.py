"""Structured logging for the booking service.

Events are JSON lines through structlog on top of the standard library, each
stamped with the service name so they can be told apart in shared log sinks.
"""
import logging
import sys

import structlog

from . import config

SERVICE_NAME = "campus-booking"

_configured = False


def _add_service(logger, method_name, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_structured_logging(log_level: str | None = None) -> None:
    """
    Configure structlog and the root logger once per process.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR; defaults to ``LOG_LEVEL``
    """
    global _configured
    if _configured:
        return

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _add_service,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    level = (log_level or config.LOG_LEVEL).upper()
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )
    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
