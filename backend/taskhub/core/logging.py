"""
Structured logging configuration (structlog on top of stdlib logging).

Usage:
    from taskhub.core.logging import get_logger, setup_logging

    setup_logging("INFO")          # once, at startup
    logger = get_logger(__name__)
    logger.info("Task created", task_id=7)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

# Request and unhandled-error events; also written to `<log_dir>/requests.log`.
REQUEST_LOGGER = "http"


def setup_logging(
    level: str = "INFO",
    *,
    json_output: bool = False,
    log_dir: str | Path | None = None,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Development gets a coloured console renderer; everything else
    gets one JSON object per line.  With `log_dir`, request log lines
    are also appended to `requests.log` there.
    """
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
        force=True,
    )

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if log_dir is not None:
        _attach_file_handler(REQUEST_LOGGER, Path(log_dir) / "requests.log")


def _attach_file_handler(name: str, path: Path) -> None:
    """Point `name` at `path`, replacing a file handler from an earlier setup."""
    path.parent.mkdir(parents=True, exist_ok=True)
    target = logging.getLogger(name)
    for handler in list(target.handlers):
        if isinstance(handler, logging.FileHandler):
            target.removeHandler(handler)
            handler.close()
    target.addHandler(logging.FileHandler(path, mode="a", encoding="utf-8"))


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to `name`."""
    return structlog.get_logger(name)
