"""Field identity resolution: scoring, detection and fill-time resolution."""

from pdfforms.services.identity.catalog import (
    Alias,
    FieldRole,
    FieldSpec,
    Primary,
    Unmerged,
    UNMERGED,
)
from pdfforms.services.identity.detector import (
    DetectionOptions,
    RedundancyDetector,
    RedundantGroup,
    suggest_merges,
)
from pdfforms.services.identity.resolver import DrawInstruction, resolve
from pdfforms.services.identity.scorer import name_similarity, position_proximity

__all__ = [
    "Alias",
    "FieldRole",
    "FieldSpec",
    "Primary",
    "Unmerged",
    "UNMERGED",
    "DetectionOptions",
    "RedundancyDetector",
    "RedundantGroup",
    "suggest_merges",
    "DrawInstruction",
    "resolve",
    "name_similarity",
    "position_proximity",
]
