"""Template API routes."""

from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pdfforms.core.config import get_settings
from pdfforms.models import Template, get_db
from pdfforms.schemas import (
    CatalogEventResponse,
    EventTrailVerification,
    FieldResponse,
    GeneratedDocumentResponse,
    TemplateDetailResponse,
    TemplateResponse,
)
from pdfforms.services.audit import audit_service
from pdfforms.services.catalog import catalog_store
from pdfforms.services.document import document_service
from pdfforms.services.storage import storage_service

settings = get_settings()

router = APIRouter(prefix="/templates", tags=["templates"])


@router.post("", response_model=TemplateResponse)
async def upload_template(
    file: UploadFile = File(...),
    name: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Upload a new PDF template."""
    if file.content_type != "application/pdf":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Allowed types: ['application/pdf']",
        )

    content = await file.read()
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {settings.max_upload_bytes} bytes",
        )

    # Rejects unreadable PDFs before anything is stored
    info = document_service.inspect(content)

    template = Template(
        name=name or file.filename or "Untitled Template",
        original_filename=file.filename or "template.pdf",
        file_path="",  # Will update after saving
        file_size=0,
        page_count=info.page_count,
        page_width=info.page_width,
        page_height=info.page_height,
    )
    db.add(template)
    await db.flush()

    file_path = storage_service.get_template_path(template.id, template.original_filename)
    file_hash, file_size = await storage_service.save_file(content, file_path)

    template.file_path = str(file_path)
    template.file_hash = file_hash
    template.file_size = file_size

    await db.commit()
    await db.refresh(template)

    return template


@router.get("", response_model=list[TemplateResponse])
async def list_templates(db: AsyncSession = Depends(get_db)):
    """List all templates, newest first."""
    result = await db.execute(select(Template).order_by(Template.created_at.desc()))
    return result.scalars().all()


@router.get("/{template_id}", response_model=TemplateDetailResponse)
async def get_template(
    template_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get a template with its fields."""
    template = await catalog_store.get_template(db, template_id)
    rows = await catalog_store.get_rows(db, template_id)

    return TemplateDetailResponse(
        id=template.id,
        name=template.name,
        original_filename=template.original_filename,
        file_size=template.file_size,
        page_count=template.page_count,
        page_width=template.page_width,
        page_height=template.page_height,
        created_at=template.created_at,
        updated_at=template.updated_at,
        fields=[FieldResponse.from_orm_field(row) for row in rows],
    )


@router.delete("/{template_id}")
async def delete_template(
    template_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a template, its fields and its stored file."""
    template = await catalog_store.get_template(db, template_id)
    file_path = Path(template.file_path) if template.file_path else None

    await db.delete(template)
    await db.commit()

    if file_path is not None:
        await storage_service.delete_file(file_path)

    return {"message": "Template deleted successfully"}


@router.get("/{template_id}/generated", response_model=list[GeneratedDocumentResponse])
async def list_generated_documents(
    template_id: str,
    db: AsyncSession = Depends(get_db),
):
    """List documents generated from a template."""
    template = await catalog_store.get_template(db, template_id)
    return await template.awaitable_attrs.generated_documents


@router.get("/{template_id}/events", response_model=list[CatalogEventResponse])
async def get_catalog_events(
    template_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Get the catalog change log of a template."""
    await catalog_store.get_template(db, template_id)
    return await audit_service.get_event_trail(db, template_id)


@router.get("/{template_id}/events/verify", response_model=EventTrailVerification)
async def verify_catalog_events(
    template_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Verify the hash chain of a template's catalog change log."""
    await catalog_store.get_template(db, template_id)
    valid, errors = await audit_service.verify_event_trail(db, template_id)
    return EventTrailVerification(template_id=template_id, valid=valid, errors=errors)
