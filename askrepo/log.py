"""Logging setup: everything goes to stderr so stdout stays clean for JSON."""

from __future__ import annotations

import logging
import os

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "askrepo"
ENV_DEBUG = "ASKREPO_DEBUG"

_TRUTHY = {"1", "true", "yes", "on"}


def _debug_requested() -> bool:
    return os.getenv(ENV_DEBUG, "").strip().lower() in _TRUTHY


def configure_logging(*, verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Attach a single stderr RichHandler to the package logger."""

    if _debug_requested():
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_askrepo_handler", False):
            logger.removeHandler(handler)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    handler._askrepo_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
