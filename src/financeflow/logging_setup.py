"""Logging configuration for the ``financeflow`` package.

Library modules only call ``get_logger(__name__)``. The CLI (or any host
application) calls ``configure_logging`` once at startup to attach a single
rich handler to the package root logger.
"""

import logging
import os
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

_PKG_LOGGER_NAME = "financeflow"
_CONFIGURED = False


def _parse_level(level: Union[int, str, None]) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level = level.strip().upper()
        if level.isdigit():
            return int(level)
        numeric = getattr(logging, level, None)
        if isinstance(numeric, int):
            return numeric
        return logging.INFO
    env_val = os.getenv("FINANCEFLOW_LOG_LEVEL")
    if env_val:
        return _parse_level(env_val)
    return logging.WARNING


def configure_logging(
    level: Union[int, str, None] = None,
    console: Optional[Console] = None,
) -> None:
    """Attach a RichHandler to the package logger, once per process.

    Args:
        level: Level as int or name. Falls back to FINANCEFLOW_LOG_LEVEL,
            then WARNING.
        console: Optional rich console to render into (defaults to stderr)
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    resolved = _parse_level(level)
    handler.setLevel(resolved)
    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger, keeping the package silent until configured"""
    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
