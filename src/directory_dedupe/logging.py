"""Structlog-based logging for the directory dedupe engine.

Library code logs through structlog only, to stderr so command output on
stdout stays machine-readable. No print() outside the CLI.
"""
from __future__ import annotations

import sys
from typing import Literal, TextIO

import logging
import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(
    level: LogLevel = "INFO",
    *,
    json: bool = True,
    stream: TextIO | None = None,
) -> None:
    logging.basicConfig(format="%(message)s", level=getattr(logging, level))
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "directory_dedupe"):
    return structlog.get_logger(name)


# Initialize default config
configure_logging()
