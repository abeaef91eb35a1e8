"""Logging utilities for the assessment engine."""

from __future__ import annotations

import logging
from typing import Literal

import structlog


def configure_logging(level: str = "INFO", *, renderer: Literal["json", "console"] = "json") -> None:
    """Configure structlog; JSON lines by default, key=value for local runs."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(level=log_level, format="%(message)s")

    final_processor = (
        structlog.processors.JSONRenderer()
        if renderer == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            structlog.processors.dict_tracebacks,
            final_processor,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )
