"""Structured logging configuration.

Every module asks for its logger through ``get_logger(__name__)`` so the
processor chain is configured in exactly one place. Events are JSON lines
on stderr; stdout stays free for command output. The threshold comes from
``WT_LOG_LEVEL`` (default WARNING).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

_CONFIGURED = False


def _level() -> int:
    name = os.environ.get("WT_LOG_LEVEL", "WARNING").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.WARNING


def _configure() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_level()),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog bound logger emitting JSON lines.
    """
    _configure()
    return structlog.get_logger(name)
