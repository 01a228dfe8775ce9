"""Logging setup."""

import logging

from rich.logging import RichHandler

from .config import settings

_configured = False


def configure_logging(level: str | None = None) -> None:
    """Install a rich handler on the package logger (idempotent)."""
    global _configured

    logger = logging.getLogger("video_summarizer")
    logger.setLevel((level or settings.log_level).upper())

    if _configured:
        return

    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    _configured = True
