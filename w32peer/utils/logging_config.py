"""Structured logging configuration for w32peer."""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog


def setup_logging(
    level: str = "INFO",
    component: Optional[str] = None,
    json_logs: bool = False,
) -> structlog.BoundLogger:
    """Configure structured logging and return a bound logger.

    Records go to the current ``sys.stdout`` so that an active transcript
    (see ``w32peer.utils.transcript``) captures them with the rest of the
    console output.
    """

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    logger = structlog.get_logger("w32peer")
    if component:
        logger = logger.bind(component=component)
    return logger
