"""
Structured Logging (structlog).

Every event is tagged with the machine id. While a job is being handled its
id and target tool are bound through contextvars, so log lines emitted from
inside a tool handler are correlated with the job that triggered them.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

from relay_config.settings import Settings


def setup_logging(settings: Settings, machine_id: str | None = None) -> None:
    """
    Configure structlog for structured logging.

    Output format: JSON (default) or text (dev)
    Includes: machine_id, job_id, function, timestamp
    """
    logging.basicConfig(
        format="%(message)s", stream=sys.stdout, level=settings.LOG_LEVEL.upper()
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if machine_id:
        structlog.contextvars.bind_contextvars(machine_id=machine_id)


@contextmanager
def job_context(job_id: str, function: str) -> Iterator[None]:
    """Bind job_id/function to every log event emitted inside the block."""
    tokens = structlog.contextvars.bind_contextvars(job_id=job_id, function=function)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get configured logger."""
    return structlog.get_logger(name)
