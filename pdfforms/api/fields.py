"""Fields API routes for managing template fields."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pdfforms.core.config import get_settings
from pdfforms.core.exceptions import ValidationFailure
from pdfforms.models import CatalogEventType, Template, TemplateField, get_db
from pdfforms.schemas import FieldCreate, FieldResponse, FieldUpdate
from pdfforms.services.audit import audit_service
from pdfforms.services.catalog import catalog_store
from pdfforms.services.merge import merge_coordinator

settings = get_settings()

router = APIRouter(prefix="/templates/{template_id}/fields", tags=["fields"])

# Attributes every member of a group must agree on
GROUP_LOCKED_ATTRIBUTES = ("field_type", "is_required", "validation_pattern")
REQUIRED_ATTRIBUTES = (
    "field_name",
    "field_type",
    "page_number",
    "x_coordinate",
    "y_coordinate",
    "font_size",
    "is_required",
)


def _check_page(template: Template, page_number: int) -> None:
    if page_number < 1 or page_number > template.page_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid page number {page_number}. "
            f"Template has {template.page_count} pages",
        )


def _build_field(template: Template, field_data: FieldCreate) -> TemplateField:
    return TemplateField(
        template_id=template.id,
        field_name=field_data.field_name,
        field_label=field_data.field_label,
        field_type=field_data.field_type,
        page_number=field_data.page_number,
        x_coordinate=field_data.x_coordinate,
        y_coordinate=field_data.y_coordinate,
        width=field_data.width,
        height=field_data.height,
        font_size=field_data.font_size or settings.default_font_size,
        is_required=field_data.is_required,
        default_value=field_data.default_value,
        validation_pattern=field_data.validation_pattern,
    )


async def get_field_or_404(
    template_id: str,
    field_id: str,
    db: AsyncSession,
) -> TemplateField:
    """Get field or raise 404."""
    result = await db.execute(
        select(TemplateField).where(
            TemplateField.id == field_id,
            TemplateField.template_id == template_id,
        )
    )
    field = result.scalar_one_or_none()

    if not field:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Field not found",
        )

    return field


@router.post("", response_model=FieldResponse)
async def create_field(
    template_id: str,
    field_data: FieldCreate,
    db: AsyncSession = Depends(get_db),
):
    """Declare a new field on a template."""
    template = await catalog_store.get_template(db, template_id)
    _check_page(template, field_data.page_number)

    async with merge_coordinator.lock_for(template_id):
        field = _build_field(template, field_data)
        db.add(field)
        await db.flush()
        await audit_service.record_event(
            db,
            template_id,
            CatalogEventType.FIELDS_CREATED,
            {"field_ids": [field.id]},
        )
        await db.commit()
    await db.refresh(field)

    return FieldResponse.from_orm_field(field)


@router.post("/bulk", response_model=list[FieldResponse])
async def create_fields_bulk(
    template_id: str,
    fields_data: list[FieldCreate],
    db: AsyncSession = Depends(get_db),
):
    """Declare multiple fields at once, in the given order."""
    template = await catalog_store.get_template(db, template_id)
    for field_data in fields_data:
        _check_page(template, field_data.page_number)

    created_fields = []
    async with merge_coordinator.lock_for(template_id):
        for field_data in fields_data:
            field = _build_field(template, field_data)
            db.add(field)
            # Flush one by one so creation timestamps follow declaration order
            await db.flush()
            created_fields.append(field)

        await audit_service.record_event(
            db,
            template_id,
            CatalogEventType.FIELDS_CREATED,
            {"field_ids": [f.id for f in created_fields]},
        )
        await db.commit()

    for field in created_fields:
        await db.refresh(field)

    return [FieldResponse.from_orm_field(f) for f in created_fields]


@router.get("", response_model=list[FieldResponse])
async def list_fields(
    template_id: str,
    db: AsyncSession = Depends(get_db),
):
    """List all fields of a template in declaration order."""
    await catalog_store.get_template(db, template_id)
    rows = await catalog_store.get_rows(db, template_id)
    return [FieldResponse.from_orm_field(row) for row in rows]


@router.patch("/{field_id}", response_model=FieldResponse)
async def update_field(
    template_id: str,
    field_id: str,
    field_data: FieldUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Update a field. Grouped fields keep their group's type and rules."""
    template = await catalog_store.get_template(db, template_id)

    async with merge_coordinator.lock_for(template_id):
        field = await get_field_or_404(template_id, field_id, db)
        changes = field_data.model_dump(exclude_unset=True)

        if "page_number" in changes and changes["page_number"] is not None:
            _check_page(template, changes["page_number"])

        if field.merge_metadata:
            locked = [
                name for name in GROUP_LOCKED_ATTRIBUTES
                if name in changes and changes[name] != getattr(field, name)
            ]
            if locked:
                raise ValidationFailure(
                    [
                        f"Cannot change {name} of a field in group "
                        f"{field.merge_metadata.get('group_id')}"
                        for name in locked
                    ],
                    message="Field belongs to a merge group",
                )

        for name, value in changes.items():
            if value is None and name in REQUIRED_ATTRIBUTES:
                continue
            setattr(field, name, value)

        await audit_service.record_event(
            db,
            template_id,
            CatalogEventType.FIELD_UPDATED,
            {"field_id": field_id, "changes": sorted(changes)},
        )
        await db.commit()
        await db.refresh(field)

    return FieldResponse.from_orm_field(field)


@router.delete("/{field_id}")
async def delete_field(
    template_id: str,
    field_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Delete a field. Fields in a merge group must be detached first."""
    await catalog_store.get_template(db, template_id)

    async with merge_coordinator.lock_for(template_id):
        field = await get_field_or_404(template_id, field_id, db)

        if field.merge_metadata:
            raise ValidationFailure(
                [
                    f"Field {field_id} belongs to group "
                    f"{field.merge_metadata.get('group_id')}; detach or dissolve it first"
                ],
                message="Field belongs to a merge group",
            )

        await db.delete(field)
        await audit_service.record_event(
            db,
            template_id,
            CatalogEventType.FIELD_DELETED,
            {"field_id": field_id},
        )
        await db.commit()

    return {"message": "Field deleted successfully"}
