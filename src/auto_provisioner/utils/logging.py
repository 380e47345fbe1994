"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional

_LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"
_LOGGING_CONFIGURED = False


def configure_logging(verbose: bool = False) -> None:
    """Install the root handler once; later calls only adjust the level."""
    global _LOGGING_CONFIGURED
    level = logging.DEBUG if verbose else logging.INFO
    if not _LOGGING_CONFIGURED:
        logging.basicConfig(level=level, format=_LOG_FORMAT)
        _LOGGING_CONFIGURED = True
    else:
        logging.getLogger().setLevel(level)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    if not _LOGGING_CONFIGURED:
        configure_logging()
    return logging.getLogger(name)


def mask_secret(secret: Optional[str]) -> str:
    """Render a secret as one asterisk per character."""
    return "*" * len(secret or "")
