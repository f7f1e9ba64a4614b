"""
utils/log.py
Logging setup for CCFRank. Modules log through logging.getLogger(__name__);
setup_logging() routes the "ccfrank" logger tree to a rich console handler.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "ccfrank"

_handler: Optional[RichHandler] = None


def setup_logging(level: str = "INFO", console: Optional[Console] = None) -> logging.Logger:
    """
    Attach a RichHandler to the package logger. Calling it again only
    updates the level, so embedding applications can call it freely.
    """
    global _handler

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if _handler is None:
        _handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        _handler.setFormatter(logging.Formatter("%(name)s | %(message)s"))
        logger.addHandler(_handler)
        logger.propagate = False

    _handler.setLevel(logger.level)
    return logger


def reset_logging():
    """Detach the rich handler (useful for testing)."""
    global _handler
    if _handler is not None:
        logger = logging.getLogger(ROOT_LOGGER)
        logger.removeHandler(_handler)
        logger.propagate = True
        _handler = None
