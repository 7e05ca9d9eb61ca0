"""Field identity API routes: redundant field detection and merge groups."""

import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pdfforms.core.config import get_settings
from pdfforms.models import get_db
from pdfforms.schemas import (
    AddToGroupRequest,
    DetectionRequest,
    DetectionResponse,
    ErrorResponse,
    FieldGroupListResponse,
    FieldGroupResponse,
    GroupMemberResponse,
    MergeRequest,
    MergeResponse,
    MergeSuggestionResponse,
    MessageResponse,
    RedundantFieldEntry,
    RedundantGroupResponse,
)
from pdfforms.services.catalog import catalog_store
from pdfforms.services.identity.catalog import FieldSpec, list_groups
from pdfforms.services.identity.detector import (
    DetectionOptions,
    RedundancyDetector,
    suggest_merges,
)
from pdfforms.services.merge import merge_coordinator

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/templates/{template_id}", tags=["identity"])


def _member(spec: FieldSpec) -> GroupMemberResponse:
    return GroupMemberResponse(id=spec.id, name=spec.name, page=spec.page)


@router.post("/detect-redundant", response_model=DetectionResponse)
async def detect_redundant_fields(
    template_id: str,
    request: DetectionRequest | None = Body(None),
    db: AsyncSession = Depends(get_db),
):
    """
    Find fields that likely represent the same input across pages.

    Advisory only: the catalog is not modified. Re-run after any merge.
    """
    template = await catalog_store.get_template(db, template_id)
    fields = await catalog_store.load_fields(db, template_id)

    overrides = request.model_dump() if request else {}
    if template.page_width and template.page_height:
        overrides.setdefault("page_width", template.page_width)
        overrides.setdefault("page_height", template.page_height)
    options = DetectionOptions.from_settings(**overrides)

    groups = RedundancyDetector(options).detect(fields)
    suggestions = suggest_merges(groups, settings.auto_merge_confidence)

    logger.info(
        "Detection on template %s: %d fields, %d candidate groups",
        template_id, len(fields), len(groups),
    )

    return DetectionResponse(
        template_id=template_id,
        total_fields=len(fields),
        redundant_groups=[
            RedundantGroupResponse(
                group_id=group.group_id,
                suggested_name=group.suggested_name,
                confidence=group.confidence,
                match_reason=group.match_reason,
                fields=[
                    RedundantFieldEntry(
                        field_id=member.field.id,
                        name=member.field.name,
                        page=member.field.page,
                        x=member.field.x,
                        y=member.field.y,
                        field_type=member.field.kind,
                        match_reason=member.match_reason,
                        name_similarity=member.name_similarity,
                        position_proximity=member.position_proximity,
                    )
                    for member in group.members
                ],
            )
            for group in groups
        ],
        merge_suggestions=[
            MergeSuggestionResponse(
                group_id=s.group_id,
                suggestion=s.suggestion,
                confidence=s.confidence,
                auto_mergeable=s.auto_mergeable,
            )
            for s in suggestions
        ],
        detection_options=options.to_dict(),
    )


@router.post(
    "/merge-fields",
    response_model=MergeResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def merge_fields(
    template_id: str,
    request: MergeRequest,
    db: AsyncSession = Depends(get_db),
):
    """Merge fields into one group; the same value will fill all of them."""
    result = await merge_coordinator.merge(
        db,
        template_id,
        request.primary_field_id,
        request.alias_field_ids,
        request.group_name,
    )
    return MergeResponse(
        group_id=result.group_id,
        primary_field_id=result.primary_field_id,
        merged_count=result.merged_count,
        group_name=result.group_name,
    )


@router.get("/merge-fields", response_model=FieldGroupListResponse)
async def get_field_groups(
    template_id: str,
    db: AsyncSession = Depends(get_db),
):
    """List committed field groups of a template."""
    template = await catalog_store.get_template(db, template_id)
    fields = await catalog_store.load_fields(db, template_id)

    groups = [
        FieldGroupResponse(
            group_id=group.group_id,
            group_name=group.group_name,
            primary_field=_member(group.primary) if group.primary else None,
            merged_fields=[_member(alias) for alias in group.aliases],
            total_fields=group.total_fields,
        )
        for group in list_groups(fields)
    ]

    return FieldGroupListResponse(
        template_id=template_id,
        template_name=template.name,
        field_groups=groups,
        total_groups=len(groups),
    )


@router.post("/field-groups/{group_id}/fields", response_model=MergeResponse)
async def add_fields_to_group(
    template_id: str,
    group_id: str,
    request: AddToGroupRequest,
    db: AsyncSession = Depends(get_db),
):
    """Add more fields to an existing group."""
    result = await merge_coordinator.add_to_group(
        db, template_id, group_id, request.alias_field_ids
    )
    return MergeResponse(
        group_id=result.group_id,
        primary_field_id=result.primary_field_id,
        merged_count=result.merged_count,
        group_name=result.group_name,
    )


@router.delete("/field-groups/{group_id}/fields/{field_id}", response_model=MessageResponse)
async def detach_field(
    template_id: str,
    group_id: str,
    field_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Remove one alias from a group."""
    await catalog_store.get_template(db, template_id)
    dissolved = await merge_coordinator.detach(db, template_id, group_id, field_id)
    if dissolved:
        return MessageResponse(message=f"Field detached; group {group_id} dissolved")
    return MessageResponse(message="Field detached from group")


@router.delete("/field-groups/{group_id}", response_model=MessageResponse)
async def dissolve_group(
    template_id: str,
    group_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Dissolve a group; its fields become independent again."""
    await catalog_store.get_template(db, template_id)
    count = await merge_coordinator.dissolve(db, template_id, group_id)
    return MessageResponse(message=f"Dissolved group {group_id} ({count} fields)")
