"""Document generation API routes."""

import re

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from pdfforms.models import get_db
from pdfforms.schemas import DrawInstructionResponse, FillRequest, ResolveResponse
from pdfforms.services.catalog import catalog_store
from pdfforms.services.filling import fill_service

router = APIRouter(prefix="/templates/{template_id}", tags=["generate"])


def _download_name(template_name: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", template_name).strip("_") or "document"
    if stem.lower().endswith(".pdf"):
        stem = stem[:-4]
    return f"{stem}-filled.pdf"


@router.post("/resolve", response_model=ResolveResponse)
async def resolve_values(
    template_id: str,
    request: FillRequest,
    db: AsyncSession = Depends(get_db),
):
    """Preview the draw instructions a submission would produce."""
    instructions = await fill_service.preview(db, template_id, request.values)
    return ResolveResponse(
        template_id=template_id,
        instructions=[DrawInstructionResponse(**i.to_dict()) for i in instructions],
    )


@router.post("/generate")
async def generate_document(
    template_id: str,
    request: FillRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Fill the template with submitted values and return the PDF.

    Values are keyed by canonical field name; one value fills every field
    of its merge group. Draw calls the renderer rejects are skipped and
    counted in the X-Render-Warnings header.
    """
    template = await catalog_store.get_template(db, template_id)
    result = await fill_service.generate(db, template_id, request.values)

    return Response(
        content=result.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{_download_name(template.name)}"',
            "X-Document-Id": result.document.id,
            "X-Fields-Filled": str(result.document.fields_filled),
            "X-Render-Warnings": str(result.document.render_warnings),
        },
    )
