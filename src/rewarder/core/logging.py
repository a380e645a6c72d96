# src/rewarder/core/logging.py
"""Structured logging for rewarder.

structlog and stdlib logging share one ProcessorFormatter, so records from
SQLAlchemy or a chain client library render exactly like our own events.

Every event emitted inside an epoch_context() block carries the ``epoch_run``
id, which ties a run's batch outcomes to the report it produced.
"""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any

import structlog
from structlog.stdlib import ProcessorFormatter

from rewarder.core.config import LoggingSettings

# Clamped to WARNING even in DEBUG runs.
_NOISY_LOGGERS: tuple[str, ...] = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "urllib3",
    "httpx",
    "httpcore",
    "asyncio",
)


def _drop_formatter_bookkeeping(
    logger: logging.Logger | None,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Strip the keys ProcessorFormatter always injects.

    del, not pop(): if either key is missing the integration is broken.
    """
    del event_dict["_record"]
    del event_dict["_from_structlog"]
    return event_dict


def _renderer(json_output: bool) -> list[Any]:
    if json_output:
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=False)]


def configure_logging(
    *,
    json_output: bool = False,
    level: str = "INFO",
    stream: IO[str] | None = None,
) -> None:
    """Route structlog and stdlib logging through one handler.

    Args:
        json_output: Emit JSON lines instead of console output
        level: Root level name (DEBUG, INFO, WARNING, ERROR)
        stream: Output stream, stdout by default
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        raise ValueError(f"Unknown log level: {level!r}")

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=[*shared, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Tests reconfigure logging; cached loggers would keep the old chain
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        ProcessorFormatter(
            processors=[_drop_formatter_bookkeeping, *_renderer(json_output)],
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    noisy_level = max(log_level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)


def configure_from_settings(settings: LoggingSettings, *, stream: IO[str] | None = None) -> None:
    """configure_logging() driven by the ``logging`` section of the settings file."""
    configure_logging(json_output=settings.json_output, level=settings.level, stream=stream)


@contextmanager
def epoch_context(epoch_run: str | None = None) -> Iterator[str]:
    """Tag every event logged inside the block with an ``epoch_run`` id.

    Uses contextvars, so concurrent dispatch tasks spawned inside the block
    inherit the id.
    """
    run_id = epoch_run or uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(epoch_run=run_id):
        yield run_id


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Bound logger for a module; pass __name__."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
