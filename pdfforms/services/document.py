"""Document processing service for uploaded template PDFs."""

from dataclasses import dataclass

import fitz  # PyMuPDF

from pdfforms.core.exceptions import RenderFailure


@dataclass
class PdfInfo:
    """Basic geometry of a PDF."""
    page_count: int
    page_width: float | None
    page_height: float | None


class DocumentProcessingService:
    """Service for inspecting PDF documents."""

    def inspect(self, content: bytes) -> PdfInfo:
        """
        Read page count and the size of page 1, in points.

        Raises:
            RenderFailure: the bytes are not a readable PDF
        """
        try:
            doc = fitz.open(stream=content, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise RenderFailure(f"Cannot open document: {e}") from e

        try:
            if doc.page_count == 0:
                raise RenderFailure("Document has no pages")
            first = doc[0].rect
            return PdfInfo(
                page_count=doc.page_count,
                page_width=first.width,
                page_height=first.height,
            )
        finally:
            doc.close()


# Singleton instance
document_service = DocumentProcessingService()
