"""
structlog configuration and per-operation log context.

Fields bound with ``operation_context`` live in contextvars, so every module
logger tags its events with them. The output reader threads start from a copy
of the caller's context and carry the same fields.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import structlog


def configure_logging(level: int | str = logging.INFO, json_output: bool = True) -> None:
    """Configure structlog/standard logging bridge."""

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if isinstance(level, str):
        level = level.upper()

    # Logs go to stderr; stdout is reserved for command output
    logging.basicConfig(level=level, format="%(message)s")


@contextmanager
def operation_context(**fields: Any) -> Iterator[None]:
    """Attach ``fields`` to every log event emitted inside the block."""
    with structlog.contextvars.bound_contextvars(**fields):
        yield
