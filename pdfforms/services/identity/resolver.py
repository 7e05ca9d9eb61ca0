"""
Fill-time resolution of submitted values to draw instructions.

Values are keyed by canonical name: the primary field's declared name for
grouped fields, the field's own name otherwise. Every member of a group
receives its primary's value at its own coordinates.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Mapping

from pdfforms.core.exceptions import CatalogCorruption
from pdfforms.services.identity.catalog import Alias, FieldSpec, Primary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawInstruction:
    """Text to draw at one physical location."""
    page: int
    x: float
    y: float
    font_size: float
    text: str
    field_id: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def canonical_names(fields: list[FieldSpec]) -> dict[str, str]:
    """
    Map every field id to the value key it is filled from.

    Raises:
        CatalogCorruption: an alias points at a missing field, at a field
            that is not a primary, or at a primary of another group
    """
    by_id = {f.id: f for f in fields}
    names = {}

    for spec in fields:
        role = spec.role
        if not isinstance(role, Alias):
            names[spec.id] = spec.name
            continue

        primary = by_id.get(role.primary_id)
        if primary is None:
            raise CatalogCorruption(
                f"Alias field {spec.id} references missing primary {role.primary_id}"
            )
        if not isinstance(primary.role, Primary):
            raise CatalogCorruption(
                f"Alias field {spec.id} references {primary.id}, which is not a primary"
            )
        if primary.role.group_id != role.group_id:
            raise CatalogCorruption(
                f"Alias field {spec.id} (group {role.group_id}) references primary "
                f"{primary.id} of group {primary.role.group_id}"
            )
        names[spec.id] = primary.name

    return names


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text or None


def resolve(fields: list[FieldSpec], values: Mapping[str, Any]) -> list[DrawInstruction]:
    """
    Expand a value map into draw instructions, ordered by page then declaration.

    Fields without a value (missing key, None or empty string) are skipped.
    The whole catalog is checked before anything is returned, so a broken
    group never yields a partial fill.
    """
    names = canonical_names(fields)

    instructions = []
    for _, spec in sorted(enumerate(fields), key=lambda item: (item[1].page, item[0])):
        text = _as_text(values.get(names[spec.id]))
        if text is None:
            continue
        instructions.append(
            DrawInstruction(
                page=spec.page,
                x=spec.x,
                y=spec.y,
                font_size=spec.font_size,
                text=text,
                field_id=spec.id,
            )
        )

    logger.debug(
        "Resolved %d draw instructions from %d values over %d fields",
        len(instructions), len(values), len(fields),
    )
    return instructions
