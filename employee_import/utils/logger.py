"""
Structured Logging Configuration
================================

structlog setup for the import service.

Every event carries the service name and version. Request and import job
identifiers are bound through context variables, so a log line written
anywhere in the pipeline can be traced back to the HTTP request and ledger
job that produced it. Credentials and raw file payloads never reach the
output.
"""

import logging
import sys
from contextlib import AbstractContextManager
from typing import Any, MutableMapping

import structlog

from employee_import import __version__
from employee_import.config.settings import get_settings

SERVICE_NAME = "employee-import"

REDACTED = "[redacted]"

# Event keys whose values are never written to the log.
SENSITIVE_KEYS = frozenset(
    {
        "authorization",
        "token",
        "api_key",
        "apikey",
        "secret_access_key",
        "file_data",
    }
)


def add_service_info(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("version", __version__)
    return event_dict


def redact_sensitive(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask values of credential and payload keys, matched case-insensitively."""
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
    return event_dict


def bind_request_context(request_id: str, **values: Any) -> None:
    """Start a fresh logging context for one HTTP request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, **values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def job_context(job_id: str) -> AbstractContextManager[None]:
    """Bind ``job_id`` to every event logged inside the block."""
    return structlog.contextvars.bound_contextvars(job_id=job_id)


def configure_logging() -> None:
    """
    Configure structured logging for the application.

    Production renders JSON with structured tracebacks, other environments
    use the colored console renderer.
    """
    settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_info,
        redact_sensitive,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_production:
        processors = [
            *shared_processors,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a logger named after the calling module."""
    return structlog.get_logger(name)
