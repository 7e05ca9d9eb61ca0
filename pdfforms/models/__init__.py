"""Database models package."""

from pdfforms.models.base import (
    AsyncSessionLocal,
    Base,
    engine,
    get_db,
    init_db,
)
from pdfforms.models.models import (
    CatalogEvent,
    CatalogEventType,
    FieldKind,
    GeneratedDocument,
    GenerationStatus,
    Template,
    TemplateField,
)

__all__ = [
    "AsyncSessionLocal",
    "Base",
    "engine",
    "get_db",
    "init_db",
    "CatalogEvent",
    "CatalogEventType",
    "FieldKind",
    "GeneratedDocument",
    "GenerationStatus",
    "Template",
    "TemplateField",
]
