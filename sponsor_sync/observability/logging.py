"""
Structured logging for sync cycles.

Cron runs in production emit one JSON object per line so the scheduler's
log collector can index them; local runs get coloured console output.
Every line written during an ingestion cycle carries the cycle's bound
fields (``cycle``, ``snapshot_date``).
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from structlog.types import Processor

from sponsor_sync.config.settings import get_settings

QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def build_processors(json_output: bool) -> list[Processor]:
    """Processor chain ending in a JSON or console renderer."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return processors


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and stdlib logging for a CLI invocation.

    Args:
        level: Log level override (defaults to settings.log_level)
        json_output: Force JSON lines on or off (defaults to production only)
    """
    settings = get_settings()
    level = level or settings.log_level
    if json_output is None:
        json_output = settings.is_production

    structlog.configure(
        processors=build_processors(json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Leaf modules and asyncpg log through stdlib
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Bind fields to every following log line of the current cycle."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def cycle_context(**fields) -> Iterator[None]:
    """
    Scope log context to one cycle.

    Fields bound here, and any bound later with ``bind_context``, are
    cleared when the block exits.

    Usage:
        with cycle_context(cycle="ingest"):
            bind_context(snapshot_date="2024-06-01")
            logger.info("Retired old snapshots")
    """
    clear_context()
    bind_context(**fields)
    try:
        yield
    finally:
        clear_context()
