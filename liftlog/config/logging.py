import logging
import sys
from typing import Any

import structlog

from .settings import Settings

# Client libraries that log every request or statement at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "asyncpg", "uvicorn.access")


def _add_process_fields(service: str, role: str):
    """Processor stamping every event with the service and process role."""

    def processor(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service)
        event_dict.setdefault("role", role)
        return event_dict

    return processor


def setup_logging(settings: Settings, role: str = "api") -> None:
    """
    Configure structured logging with structlog.

    role is "api" for the HTTP process (which may also host embedded
    workers) and "worker" for a standalone `liftlog worker` process.
    """
    level = getattr(logging, settings.log_level)

    # Configure standard library logging
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors = [
        # Add correlation IDs and timestamps
        structlog.contextvars.merge_contextvars,
        _add_process_fields(settings.app_name, role),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]
    if settings.debug:
        # Caller information and pretty printing in development
        processors += [
            structlog.processors.CallsiteParameterAdder(
                parameters=[structlog.processors.CallsiteParameter.FUNC_NAME]
            ),
            structlog.dev.ConsoleRenderer(),
        ]
    else:
        # Worker failures are logged with exc_info; render them into the JSON line
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def add_request_context(request_id: str, **context: Any) -> None:
    """Add request-specific context to all log messages."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **context)
