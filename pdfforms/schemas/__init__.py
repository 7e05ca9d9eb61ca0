"""API schemas package."""

from pdfforms.schemas.schemas import (
    AddToGroupRequest,
    CatalogEventResponse,
    DetectionRequest,
    DetectionResponse,
    DrawInstructionResponse,
    ErrorResponse,
    EventTrailVerification,
    FieldCreate,
    FieldGroupListResponse,
    FieldGroupResponse,
    FieldResponse,
    FieldUpdate,
    FillRequest,
    GeneratedDocumentResponse,
    GroupMemberResponse,
    MergeRequest,
    MergeResponse,
    MergeSuggestionResponse,
    MessageResponse,
    RedundantFieldEntry,
    RedundantGroupResponse,
    ResolveResponse,
    TemplateDetailResponse,
    TemplateResponse,
)

__all__ = [
    "AddToGroupRequest",
    "CatalogEventResponse",
    "DetectionRequest",
    "DetectionResponse",
    "DrawInstructionResponse",
    "ErrorResponse",
    "EventTrailVerification",
    "FieldCreate",
    "FieldGroupListResponse",
    "FieldGroupResponse",
    "FieldResponse",
    "FieldUpdate",
    "FillRequest",
    "GeneratedDocumentResponse",
    "GroupMemberResponse",
    "MergeRequest",
    "MergeResponse",
    "MergeSuggestionResponse",
    "MessageResponse",
    "RedundantFieldEntry",
    "RedundantGroupResponse",
    "ResolveResponse",
    "TemplateDetailResponse",
    "TemplateResponse",
]
