"""Fill service: resolves submitted values and renders the filled PDF."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from sqlalchemy.ext.asyncio import AsyncSession

from pdfforms.models import (
    CatalogEventType,
    GeneratedDocument,
    GenerationStatus,
)
from pdfforms.models.base import generate_uuid
from pdfforms.services.audit import audit_service
from pdfforms.services.catalog import catalog_store
from pdfforms.services.identity.resolver import DrawInstruction, resolve
from pdfforms.services.merge import merge_coordinator
from pdfforms.services.renderer import document_renderer
from pdfforms.services.storage import storage_service

logger = logging.getLogger(__name__)


@dataclass
class FillResult:
    """A generated document and how it went."""
    document: GeneratedDocument
    content: bytes
    instructions: list[DrawInstruction]
    warnings: list[str]


class FillService:
    """Orchestrates resolve, render and persistence of a filled document."""

    async def preview(
        self,
        db: AsyncSession,
        template_id: str,
        values: Mapping[str, Any],
    ) -> list[DrawInstruction]:
        """Resolve values without rendering."""
        await catalog_store.get_template(db, template_id)
        fields = await catalog_store.load_fields(db, template_id)
        return resolve(fields, values)

    async def generate(
        self,
        db: AsyncSession,
        template_id: str,
        values: Mapping[str, Any],
    ) -> FillResult:
        """
        Produce a filled PDF for a template.

        Raises CatalogCorruption before anything is rendered when the
        catalog's groups are inconsistent.
        """
        start_time = time.perf_counter()

        template = await catalog_store.get_template(db, template_id)
        # Snapshot through event append runs under the template lock
        async with merge_coordinator.lock_for(template_id):
            fields = await catalog_store.load_fields(db, template_id)
            instructions = resolve(fields, values)

            original = await storage_service.read_file(Path(template.file_path))
            rendered = document_renderer.render(original, instructions)

            document_id = generate_uuid()
            output_path = storage_service.get_generated_path(template_id, document_id)
            _, file_size = await storage_service.save_file(rendered.content, output_path)

            processing_time_ms = (time.perf_counter() - start_time) * 1000
            document = GeneratedDocument(
                id=document_id,
                template_id=template_id,
                file_path=str(output_path),
                file_size=file_size,
                fields_filled=rendered.drawn,
                render_warnings=rendered.skipped,
                processing_time_ms=processing_time_ms,
                status=GenerationStatus.PARTIAL if rendered.skipped else GenerationStatus.SUCCESS,
            )
            db.add(document)
            await audit_service.record_event(
                db,
                template_id,
                CatalogEventType.DOCUMENT_GENERATED,
                {
                    "document_id": document_id,
                    "fields_filled": rendered.drawn,
                    "render_warnings": rendered.skipped,
                },
            )
            await db.commit()

        logger.info(
            "Generated document %s for template %s: %d drawn, %d skipped in %.1f ms",
            document_id, template_id, rendered.drawn, rendered.skipped, processing_time_ms,
        )
        return FillResult(
            document=document,
            content=rendered.content,
            instructions=instructions,
            warnings=rendered.warnings,
        )


# Singleton instance
fill_service = FillService()
