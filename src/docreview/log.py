"""Logging setup for docreview.

Modules log through ``logging.getLogger(__name__)``; handlers are only
attached by :func:`configure_logging`, which the CLI calls on startup.
"""

import logging
from typing import Optional

from rich.logging import RichHandler

from docreview.config import settings

PACKAGE_LOGGER = "docreview"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a rich console handler to the package logger.

    Args:
        level: Log level name (DEBUG, INFO, ...). Defaults to settings.log_level.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    log_level = (level or settings.log_level).upper()
    logger.setLevel(getattr(logging, log_level))

    # Avoid duplicate handlers on repeated calls
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s", datefmt="[%X]"))
        logger.addHandler(handler)

    return logger
