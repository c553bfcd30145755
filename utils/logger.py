"""Shared logger initialization for the sync CLI.

Usage:
    from utils.logger import get_logger
    log = get_logger(__name__)
    log.info("message")
"""
from __future__ import annotations

import logging
from typing import Optional

from rich.logging import RichHandler


_FORMAT = "%(message)s"  # rich handler already adds time & level


def _has_rich_handler(logger: logging.Logger) -> bool:
    return any(isinstance(h, RichHandler) for h in logger.handlers)


def configure_logging(level: int = logging.INFO) -> None:
    """Idempotently configure the root logger with a RichHandler.

    Calling again with a different level only adjusts the level, so the CLI
    can switch to DEBUG after modules have already grabbed their loggers.
    """
    root = logging.getLogger()
    root.setLevel(level)
    if _has_rich_handler(root):
        for handler in root.handlers:
            handler.setLevel(level)
        return
    handler = RichHandler(rich_tracebacks=True, markup=False, show_path=False)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)


def get_logger(name: str = __name__, level: Optional[int] = None) -> logging.Logger:
    """Return a module-level logger (configuring root on first call)."""
    if not _has_rich_handler(logging.getLogger()):
        configure_logging()
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger
