"""Structured logging setup for packsmith.

Engine modules log through ``structlog.get_logger(__name__)`` with
snake_case event names (``tree_synced``, ``file_updated``,
``transpile_failed``). The CLI calls :func:`configure_logging` once per
invocation; records are rendered by structlog and written to stderr
through the standard library so they never mix with command output.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

# watchdog logs every inotify buffer operation at DEBUG
NOISY_LOGGERS = ("watchdog",)


def _renderer(json_format: bool) -> Any:
    if json_format:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    *,
    log_level: str = "WARNING",
    json_format: bool = False,
    add_timestamp: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        log_level: Minimum level name (DEBUG, INFO, WARNING, ERROR).
        json_format: Render one JSON object per line instead of the
            console format.
        add_timestamp: Prefix records with an ISO timestamp.

    Example:
        >>> configure_logging(log_level="DEBUG")
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    processors: list[Any] = [structlog.stdlib.filter_by_level]
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(json_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
