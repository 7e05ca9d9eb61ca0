"""
Field catalog snapshot types.

The engine works on immutable ``FieldSpec`` values rather than ORM rows.
Merge metadata is decoded into a ``FieldRole`` so a field can never claim
to be both a primary and an alias.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Union

from pdfforms.core.exceptions import CatalogCorruption
from pdfforms.models import FieldKind, TemplateField
from pdfforms.services.identity.scorer import normalize_name


@dataclass(frozen=True)
class Unmerged:
    """Independent field, not part of any group."""


@dataclass(frozen=True)
class Primary:
    """Canonical member of a field group."""
    group_id: str
    group_name: str
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class Alias:
    """Non-canonical group member; takes its value from the primary."""
    group_id: str
    group_name: str
    primary_id: str


FieldRole = Union[Primary, Alias, Unmerged]

UNMERGED = Unmerged()


def role_from_metadata(field_id: str, metadata: dict[str, Any] | None) -> FieldRole:
    """Decode stored merge metadata into a role."""
    if not metadata or not metadata.get("group_id"):
        if metadata and ("is_primary" in metadata or "primary_field_id" in metadata):
            raise CatalogCorruption(f"Field {field_id} has group metadata without a group_id")
        return UNMERGED

    group_id = metadata["group_id"]
    group_name = metadata.get("group_name") or ""

    if metadata.get("is_primary"):
        return Primary(
            group_id=group_id,
            group_name=group_name,
            aliases=tuple(metadata.get("merged_field_ids") or ()),
        )

    primary_id = metadata.get("primary_field_id")
    if not primary_id:
        raise CatalogCorruption(
            f"Alias field {field_id} in group {group_id} has no primary_field_id"
        )
    return Alias(group_id=group_id, group_name=group_name, primary_id=primary_id)


def role_to_metadata(role: FieldRole) -> dict[str, Any] | None:
    """Encode a role into the stored metadata layout."""
    if isinstance(role, Primary):
        return {
            "group_id": role.group_id,
            "is_primary": True,
            "merged_field_ids": list(role.aliases),
            "group_name": role.group_name,
        }
    if isinstance(role, Alias):
        return {
            "group_id": role.group_id,
            "is_primary": False,
            "primary_field_id": role.primary_id,
            "group_name": role.group_name,
        }
    return None


@dataclass(frozen=True)
class FieldSpec:
    """Immutable view of one declared field."""
    id: str
    template_id: str
    name: str
    page: int
    x: float
    y: float
    font_size: float = 12.0
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    validation_pattern: str | None = None
    role: FieldRole = field(default=UNMERGED)

    @property
    def normalized_name(self) -> str:
        return normalize_name(self.name)

    @property
    def group_id(self) -> str | None:
        if isinstance(self.role, (Primary, Alias)):
            return self.role.group_id
        return None

    def with_role(self, role: FieldRole) -> "FieldSpec":
        return replace(self, role=role)


def spec_from_row(row: TemplateField) -> FieldSpec:
    """Build a snapshot from an ORM row."""
    return FieldSpec(
        id=row.id,
        template_id=row.template_id,
        name=row.field_name,
        page=row.page_number,
        x=row.x_coordinate,
        y=row.y_coordinate,
        font_size=row.font_size,
        kind=FieldKind(row.field_type),
        required=bool(row.is_required),
        validation_pattern=row.validation_pattern or None,
        role=role_from_metadata(row.id, row.merge_metadata),
    )


@dataclass
class CommittedGroup:
    """A persisted field group as seen in a catalog snapshot."""
    group_id: str
    group_name: str
    primary: FieldSpec | None
    aliases: list[FieldSpec]

    @property
    def total_fields(self) -> int:
        return len(self.aliases) + (1 if self.primary else 0)


def list_groups(fields: list[FieldSpec]) -> list[CommittedGroup]:
    """Collect committed groups from a snapshot, in first-seen order."""
    groups: dict[str, CommittedGroup] = {}
    for spec in fields:
        role = spec.role
        if isinstance(role, Unmerged):
            continue
        group = groups.get(role.group_id)
        if group is None:
            group = CommittedGroup(
                group_id=role.group_id,
                group_name=role.group_name,
                primary=None,
                aliases=[],
            )
            groups[role.group_id] = group
        if isinstance(role, Primary):
            group.primary = spec
            group.group_name = role.group_name or spec.name
        else:
            group.aliases.append(spec)
    return list(groups.values())
