"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field as PydanticField

from pdfforms.models.models import CatalogEventType, FieldKind, GenerationStatus


# --- Base schemas ---


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    class Config:
        from_attributes = True


# --- Template schemas ---


class TemplateResponse(BaseSchema):
    """Schema for template response."""

    id: str
    name: str
    original_filename: str
    file_size: int
    page_count: int
    page_width: float | None
    page_height: float | None
    created_at: datetime
    updated_at: datetime


class TemplateDetailResponse(TemplateResponse):
    """Schema for detailed template response with fields."""

    fields: list["FieldResponse"] = []


# --- Field schemas ---


class MergeMetadata(BaseModel):
    """Stored merge group metadata of a field."""

    group_id: str
    is_primary: bool
    primary_field_id: str | None = None
    merged_field_ids: list[str] | None = None
    group_name: str | None = None


class FieldCreate(BaseModel):
    """Schema for declaring a field."""

    field_name: str = PydanticField(min_length=1, max_length=255)
    field_label: str | None = None
    field_type: FieldKind = FieldKind.TEXT
    page_number: int = PydanticField(default=1, ge=1)
    x_coordinate: float
    y_coordinate: float
    width: float | None = None
    height: float | None = None
    font_size: float | None = PydanticField(default=None, gt=0)
    is_required: bool = False
    default_value: str | None = None
    validation_pattern: str | None = None


class FieldUpdate(BaseModel):
    """Schema for updating a field."""

    field_name: str | None = PydanticField(default=None, min_length=1, max_length=255)
    field_label: str | None = None
    field_type: FieldKind | None = None
    page_number: int | None = PydanticField(default=None, ge=1)
    x_coordinate: float | None = None
    y_coordinate: float | None = None
    width: float | None = None
    height: float | None = None
    font_size: float | None = PydanticField(default=None, gt=0)
    is_required: bool | None = None
    default_value: str | None = None
    validation_pattern: str | None = None


class FieldResponse(BaseSchema):
    """Schema for field response."""

    id: str
    template_id: str
    field_name: str
    field_label: str | None
    field_type: FieldKind
    page_number: int
    x_coordinate: float
    y_coordinate: float
    width: float | None
    height: float | None
    font_size: float
    is_required: bool
    default_value: str | None
    validation_pattern: str | None
    metadata: MergeMetadata | None = None
    created_at: datetime

    @classmethod
    def from_orm_field(cls, field) -> "FieldResponse":
        """Create response from ORM model, exposing merge metadata."""
        return cls(
            id=field.id,
            template_id=field.template_id,
            field_name=field.field_name,
            field_label=field.field_label,
            field_type=field.field_type,
            page_number=field.page_number,
            x_coordinate=field.x_coordinate,
            y_coordinate=field.y_coordinate,
            width=field.width,
            height=field.height,
            font_size=field.font_size,
            is_required=field.is_required,
            default_value=field.default_value,
            validation_pattern=field.validation_pattern,
            metadata=field.merge_metadata,
            created_at=field.created_at,
        )


# --- Detection schemas ---


class DetectionRequest(BaseModel):
    """Detection options; unset values fall back to configured defaults."""

    name_similarity_threshold: float | None = PydanticField(default=None, ge=0, le=1)
    position_proximity_threshold: float | None = PydanticField(default=None, ge=0, le=1)
    exact_match_only: bool | None = None
    fuzzy_name_floor: float | None = PydanticField(default=None, ge=0, le=1)
    name_weight: float | None = PydanticField(default=None, ge=0)
    position_weight: float | None = PydanticField(default=None, ge=0)
    combined_threshold: float | None = PydanticField(default=None, ge=0)
    include_grouped: bool | None = None


class RedundantFieldEntry(BaseModel):
    """A member of a candidate group."""

    field_id: str
    name: str
    page: int
    x: float
    y: float
    field_type: FieldKind
    match_reason: str | None = None
    name_similarity: float
    position_proximity: float


class RedundantGroupResponse(BaseModel):
    """A candidate group of likely-duplicate fields."""

    group_id: str
    suggested_name: str
    confidence: float
    match_reason: str
    fields: list[RedundantFieldEntry]


class MergeSuggestionResponse(BaseModel):
    """Operator advice for one candidate group."""

    group_id: str
    suggestion: str
    confidence: float
    auto_mergeable: bool


class DetectionResponse(BaseModel):
    """Schema for redundant field detection response."""

    template_id: str
    total_fields: int
    redundant_groups: list[RedundantGroupResponse]
    merge_suggestions: list[MergeSuggestionResponse]
    detection_options: dict[str, Any]


# --- Merge schemas ---


class MergeRequest(BaseModel):
    """Schema for merging fields into a group."""

    primary_field_id: str
    alias_field_ids: list[str] = PydanticField(min_length=1)
    group_name: str | None = None


class MergeResponse(BaseModel):
    """Schema for a committed merge or group extension.

    merged_count counts the aliases attached by this request only.
    """

    group_id: str
    primary_field_id: str
    merged_count: int
    group_name: str


class AddToGroupRequest(BaseModel):
    """Schema for adding aliases to an existing group."""

    alias_field_ids: list[str] = PydanticField(min_length=1)


class GroupMemberResponse(BaseModel):
    """Brief field reference inside a committed group."""

    id: str
    name: str
    page: int


class FieldGroupResponse(BaseModel):
    """A committed field group."""

    group_id: str
    group_name: str
    primary_field: GroupMemberResponse | None
    merged_fields: list[GroupMemberResponse]
    total_fields: int


class FieldGroupListResponse(BaseModel):
    """Committed groups of a template."""

    template_id: str
    template_name: str
    field_groups: list[FieldGroupResponse]
    total_groups: int


# --- Fill schemas ---


class FillRequest(BaseModel):
    """Submission values keyed by canonical field name."""

    values: dict[str, str | int | float | bool | None]


class DrawInstructionResponse(BaseModel):
    """A resolved draw instruction."""

    page: int
    x: float
    y: float
    font_size: float
    text: str
    field_id: str


class ResolveResponse(BaseModel):
    """Preview of the draw instructions for a submission."""

    template_id: str
    instructions: list[DrawInstructionResponse]


class GeneratedDocumentResponse(BaseSchema):
    """Schema for a generated document log row."""

    id: str
    template_id: str
    file_size: int
    fields_filled: int
    render_warnings: int
    processing_time_ms: float
    status: GenerationStatus
    created_at: datetime


# --- Catalog event schemas ---


class CatalogEventResponse(BaseSchema):
    """Schema for catalog event response."""

    id: str
    template_id: str
    sequence: int
    event_type: CatalogEventType
    timestamp: datetime
    data: dict | None


class EventTrailVerification(BaseModel):
    """Result of verifying a template's event chain."""

    template_id: str
    valid: bool
    errors: list[str]


# --- Response helpers ---


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    issues: list[str] = []


TemplateDetailResponse.model_rebuild()
