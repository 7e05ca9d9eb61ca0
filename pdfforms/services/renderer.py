"""Document renderer: writes draw instructions into a PDF."""

import logging
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import fitz  # PyMuPDF

from pdfforms.core.config import get_settings
from pdfforms.core.exceptions import RenderFailure
from pdfforms.services.identity.resolver import DrawInstruction

logger = logging.getLogger(__name__)

settings = get_settings()


@dataclass
class RenderResult:
    """Filled document bytes plus per-instruction outcome counts."""
    content: bytes
    drawn: int
    skipped: int
    warnings: list[str] = field(default_factory=list)
    incremental: bool = True


class DocumentRenderer:
    """
    Thin PyMuPDF wrapper.

    Draw instructions use PDF point space (origin bottom-left). Changes are
    saved incrementally so the original bytes stay untouched as a prefix of
    the output.
    """

    def __init__(self, font_name: str | None = None):
        self.font_name = font_name or settings.render_font
        self._font = fitz.Font(self.font_name)

    def _check_glyphs(self, text: str) -> None:
        # Base-14 fonts are written with a single-byte encoding; anything past
        # Latin-1 comes out as a placeholder even when the font reports a glyph
        for char in text:
            code = ord(char)
            if code <= 127 or not char.isprintable():
                continue
            if code > 255 or not self._font.has_glyph(code):
                raise RenderFailure(f"Unsupported glyph {char!r} for font {self.font_name}")

    def _draw(self, doc: fitz.Document, instruction: DrawInstruction) -> None:
        """Draw a single instruction or raise RenderFailure."""
        if instruction.page < 1 or instruction.page > doc.page_count:
            raise RenderFailure(
                f"Page {instruction.page} out of range (document has {doc.page_count})"
            )
        if instruction.font_size <= 0:
            raise RenderFailure(f"Invalid font size {instruction.font_size}")
        self._check_glyphs(instruction.text)

        page = doc[instruction.page - 1]
        # PDF space (bottom-left origin) to MuPDF page space (top-left origin)
        point = fitz.Point(instruction.x, instruction.y) * page.transformation_matrix

        try:
            page.insert_text(
                point,
                instruction.text,
                fontsize=instruction.font_size,
                fontname=self.font_name,
                color=(0, 0, 0),
            )
        except (RuntimeError, ValueError) as e:
            raise RenderFailure(str(e)) from e

    def render(self, original: bytes, instructions: list[DrawInstruction]) -> RenderResult:
        """
        Apply instructions to a copy of the original PDF.

        A failing instruction is skipped and reported as a warning; an
        unreadable input raises RenderFailure.
        """
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "document.pdf"
            path.write_bytes(original)

            try:
                doc = fitz.open(path)
            except (RuntimeError, ValueError) as e:
                raise RenderFailure(f"Cannot open document: {e}") from e

            try:
                if not doc.is_pdf or doc.page_count == 0:
                    raise RenderFailure("Input is not a readable PDF document")

                drawn = 0
                warnings = []
                for instruction in instructions:
                    try:
                        self._draw(doc, instruction)
                        drawn += 1
                    except RenderFailure as e:
                        warnings.append(f"Field {instruction.field_id}: {e}")
                        logger.warning(
                            "Skipped draw instruction for field %s on page %d: %s",
                            instruction.field_id, instruction.page, e,
                        )

                incremental = doc.can_save_incrementally()
                if incremental:
                    doc.save(path, incremental=True, encryption=fitz.PDF_ENCRYPT_KEEP)
                    doc.close()
                    content = path.read_bytes()
                else:
                    logger.warning("Document cannot be saved incrementally; rewriting it")
                    content = doc.tobytes()
                    doc.close()
            finally:
                if not doc.is_closed:
                    doc.close()

        return RenderResult(
            content=content,
            drawn=drawn,
            skipped=len(warnings),
            warnings=warnings,
            incremental=incremental,
        )


# Singleton instance
document_renderer = DocumentRenderer()
