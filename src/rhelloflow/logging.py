"""Logging utilities for the scorecard services."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with JSON output on stderr.

    Stdout is left to command output, so CLI results stay machine-readable.
    Scorecard and answer ids bound with ``structlog.contextvars`` are merged
    into every event.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=True,
    )


def _stderr_logger(*args: Any) -> structlog.PrintLogger:
    # resolved per logger so a swapped sys.stderr (CLI runners, capture) is honoured
    return structlog.PrintLogger(sys.stderr)
