"""
Logging configuration helpers.
It centralizes cross-cutting concerns like settings, logging, and database access used by the import pipeline.
Keeping these helpers isolated reduces duplication and keeps ingestion modules focused on the data contract.
"""

from __future__ import annotations

import logging

from affirm_name.common.settings import get_settings

_LOGGING_CONFIGURED = False


def configure_logging() -> None:
    """Configure process-wide logging from environment settings."""

    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    settings = get_settings()
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    _LOGGING_CONFIGURED = True
