"""Logging setup."""

import logging

from pdfforms.core.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """Configure root logging from settings."""
    level = "DEBUG" if settings.debug else settings.log_level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
