"""Core module package."""

from pdfforms.core.config import Settings, get_settings
from pdfforms.core.exceptions import (
    CatalogCorruption,
    ConcurrentModification,
    FieldEngineError,
    NotFound,
    RenderFailure,
    ValidationFailure,
)
from pdfforms.core.logging import configure_logging

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
    "CatalogCorruption",
    "ConcurrentModification",
    "FieldEngineError",
    "NotFound",
    "RenderFailure",
    "ValidationFailure",
]
