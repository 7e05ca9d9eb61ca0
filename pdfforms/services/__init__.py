"""Services package."""

from pdfforms.services.audit import audit_service
from pdfforms.services.catalog import catalog_store
from pdfforms.services.document import document_service
from pdfforms.services.filling import fill_service
from pdfforms.services.merge import merge_coordinator
from pdfforms.services.renderer import document_renderer
from pdfforms.services.storage import storage_service

__all__ = [
    "audit_service",
    "catalog_store",
    "document_service",
    "fill_service",
    "merge_coordinator",
    "document_renderer",
    "storage_service",
]
