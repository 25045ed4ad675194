"""
Process-wide logging setup.
"""

from __future__ import annotations

import logging

from config import get_settings

_LOGGING_CONFIGURED = False


def configure_logging() -> None:
    """Configure root logging once, using the level from settings."""

    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    level = getattr(logging, get_settings().log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    _LOGGING_CONFIGURED = True
