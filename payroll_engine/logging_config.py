"""Logging setup for the service process."""
from __future__ import annotations

import logging
import os

LOGGER_NAME = "payroll_engine"
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Attach one stream handler to the package logger; safe to call repeatedly."""

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel((level or os.getenv("LOG_LEVEL") or "INFO").upper())
    if not any(getattr(handler, "_payroll_engine", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._payroll_engine = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
