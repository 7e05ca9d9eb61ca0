"""
Merge coordination for field groups.

Turns operator-approved candidate groups into committed field groups
(one primary plus aliases) and reverses them. Every operation validates
first, then writes all touched rows and its catalog event in a single
transaction; nothing is committed unless everything is.

Mutations on one template are serialized by an in-process lock, and each
row carries a version counter so concurrent writers from other processes
fail instead of silently overwriting each other.
"""

import asyncio
import logging
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from pdfforms.core.exceptions import ConcurrentModification, NotFound, ValidationFailure
from pdfforms.models import CatalogEventType, TemplateField
from pdfforms.services.audit import audit_service
from pdfforms.services.catalog import catalog_store
from pdfforms.services.identity.catalog import (
    Alias,
    FieldRole,
    FieldSpec,
    Primary,
    UNMERGED,
    role_to_metadata,
    spec_from_row,
)

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """
    Outcome of a committed merge or group extension.

    merged_count is the number of aliases attached by this call;
    alias_field_ids lists every alias the group now has.
    """
    group_id: str
    primary_field_id: str
    group_name: str
    merged_count: int
    alias_field_ids: list[str] = field(default_factory=list)


def _compatibility_issues(fields: list[FieldSpec]) -> list[str]:
    """Kind, validation pattern and required-flag rules."""
    issues = []

    kinds = sorted({f.kind.value for f in fields})
    if len(kinds) > 1:
        issues.append(f"Fields have different types: {', '.join(kinds)}")

    patterns = {f.validation_pattern for f in fields if f.validation_pattern}
    if len(patterns) > 1:
        issues.append("Fields have conflicting validation rules")

    required_flags = {f.required for f in fields}
    if len(required_flags) > 1:
        issues.append("Some fields are required while others are not")

    return issues


def _membership_issues(fields: list[FieldSpec]) -> list[str]:
    issues = []
    for spec in fields:
        if spec.group_id is not None:
            issues.append(
                f"Field '{spec.name}' ({spec.id}) already belongs to group {spec.group_id}"
            )
    return issues


def validate_merge(fields: list[FieldSpec]) -> list[str]:
    """
    Check that fields can form one new group.

    Returns every violated rule; an empty list means the merge is allowed.
    """
    issues = []

    if len(fields) < 2:
        issues.append("At least two fields are required to form a group")

    seen: set[str] = set()
    for spec in fields:
        if spec.id in seen:
            issues.append(f"Field {spec.id} is listed more than once")
        seen.add(spec.id)

    if len({f.template_id for f in fields}) > 1:
        issues.append("Fields belong to different templates")

    issues.extend(_compatibility_issues(fields))
    issues.extend(_membership_issues(fields))
    return issues


def validate_extension(members: list[FieldSpec], additions: list[FieldSpec]) -> list[str]:
    """
    Check new aliases against an existing group's established rules.

    Committed members are not re-validated against each other.
    """
    issues = []
    if not additions:
        issues.append("At least one field must be added")

    primary = next((m for m in members if isinstance(m.role, Primary)), None)
    if primary is None:
        return issues + ["Group has no primary field"]

    member_ids = {m.id for m in members}
    seen: set[str] = set()
    for spec in additions:
        if spec.id in member_ids:
            issues.append(f"Field {spec.id} is already a member of this group")
        elif spec.id in seen:
            issues.append(f"Field {spec.id} is listed more than once")
        seen.add(spec.id)

    established_pattern = next(
        (m.validation_pattern for m in members if m.validation_pattern), None
    )
    reference = FieldSpec(
        id=primary.id,
        template_id=primary.template_id,
        name=primary.name,
        page=primary.page,
        x=primary.x,
        y=primary.y,
        kind=primary.kind,
        required=primary.required,
        validation_pattern=established_pattern,
    )

    if any(spec.template_id != primary.template_id for spec in additions):
        issues.append("Fields belong to different templates")

    fresh = [spec for spec in additions if spec.id not in member_ids]
    issues.extend(_compatibility_issues([reference] + fresh))
    issues.extend(_membership_issues(fresh))
    return issues


class MergeCoordinator:
    """Commits, extends, detaches and dissolves field groups."""

    def __init__(self):
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock_for(self, template_id: str) -> asyncio.Lock:
        return self._locks[template_id]

    async def _load_requested(
        self,
        db: AsyncSession,
        template_id: str,
        field_ids: list[str],
    ) -> dict[str, TemplateField]:
        rows = await catalog_store.get_rows_by_id(db, field_ids)
        missing = [fid for fid in dict.fromkeys(field_ids) if fid not in rows]
        if missing:
            raise NotFound(f"Fields not found: {', '.join(missing)}", missing)
        return rows

    def _assign_role(self, row: TemplateField, role: FieldRole) -> None:
        row.merge_metadata = role_to_metadata(role)

    async def _commit(
        self,
        db: AsyncSession,
        template_id: str,
        event_type: CatalogEventType,
        data: dict[str, Any],
    ) -> None:
        """Record the event and commit everything touched in one transaction."""
        try:
            await audit_service.record_event(db, template_id, event_type, data)
            await db.commit()
        except (StaleDataError, IntegrityError) as e:
            # A stale version or a duplicate event sequence means another writer got in first
            await db.rollback()
            raise ConcurrentModification(
                "Fields were modified by another operation; reload and retry"
            ) from e

    async def merge(
        self,
        db: AsyncSession,
        template_id: str,
        primary_id: str,
        alias_ids: list[str],
        group_name: str | None = None,
    ) -> MergeResult:
        """Create a new group with primary_id as its canonical member."""
        async with self.lock_for(template_id):
            await catalog_store.get_template(db, template_id)

            requested = [primary_id] + list(alias_ids)
            rows = await self._load_requested(db, template_id, requested)
            specs = [spec_from_row(rows[fid]) for fid in requested]

            issues = validate_merge(specs)
            if any(spec.template_id != template_id for spec in specs):
                issues.insert(0, f"Some fields do not belong to template {template_id}")
            if issues:
                raise ValidationFailure(issues)

            primary_row = rows[primary_id]
            group_id = f"group_{uuid.uuid4().hex}"
            name = group_name or primary_row.field_name
            aliases = tuple(alias_ids)

            try:
                self._assign_role(primary_row, Primary(group_id, name, aliases))
                for alias_id in aliases:
                    self._assign_role(rows[alias_id], Alias(group_id, name, primary_id))

                await self._commit(
                    db,
                    template_id,
                    CatalogEventType.FIELDS_MERGED,
                    {
                        "group_id": group_id,
                        "group_name": name,
                        "primary_field_id": primary_id,
                        "alias_field_ids": list(aliases),
                    },
                )
            except ConcurrentModification:
                raise
            except Exception:
                await db.rollback()
                logger.exception("Merge into group %s failed; rolled back", group_id)
                raise

        logger.info(
            "Merged %d fields into group %s (%s) on template %s",
            len(aliases), group_id, name, template_id,
        )
        return MergeResult(
            group_id=group_id,
            primary_field_id=primary_id,
            group_name=name,
            merged_count=len(aliases),
            alias_field_ids=list(aliases),
        )

    async def _group_rows(
        self,
        db: AsyncSession,
        template_id: str,
        group_id: str,
    ) -> list[TemplateField]:
        rows = await catalog_store.get_rows(db, template_id)
        members = [
            row for row in rows
            if (row.merge_metadata or {}).get("group_id") == group_id
        ]
        if not members:
            raise NotFound(f"Field group {group_id} not found", [group_id])
        return members

    async def add_to_group(
        self,
        db: AsyncSession,
        template_id: str,
        group_id: str,
        alias_ids: list[str],
    ) -> MergeResult:
        """Add new aliases to an existing group."""
        async with self.lock_for(template_id):
            await catalog_store.get_template(db, template_id)
            member_rows = await self._group_rows(db, template_id, group_id)
            members = [spec_from_row(row) for row in member_rows]

            rows = await self._load_requested(db, template_id, alias_ids)
            additions = [spec_from_row(rows[fid]) for fid in alias_ids]

            issues = validate_extension(members, additions)
            if issues:
                raise ValidationFailure(issues)

            primary_row = next(
                row for row, spec in zip(member_rows, members)
                if isinstance(spec.role, Primary)
            )
            primary_role = spec_from_row(primary_row).role
            name = primary_role.group_name or primary_row.field_name
            aliases = primary_role.aliases + tuple(alias_ids)

            try:
                self._assign_role(primary_row, Primary(group_id, name, aliases))
                for alias_id in alias_ids:
                    self._assign_role(rows[alias_id], Alias(group_id, name, primary_row.id))

                await self._commit(
                    db,
                    template_id,
                    CatalogEventType.GROUP_EXTENDED,
                    {"group_id": group_id, "alias_field_ids": list(alias_ids)},
                )
            except ConcurrentModification:
                raise
            except Exception:
                await db.rollback()
                logger.exception("Extending group %s failed; rolled back", group_id)
                raise

        logger.info("Added %d fields to group %s", len(alias_ids), group_id)
        return MergeResult(
            group_id=group_id,
            primary_field_id=primary_row.id,
            group_name=name,
            merged_count=len(alias_ids),
            alias_field_ids=list(aliases),
        )

    async def detach(
        self,
        db: AsyncSession,
        template_id: str,
        group_id: str,
        field_id: str,
    ) -> bool:
        """
        Remove one alias from its group.

        Returns True when the group dissolved because its last alias left.
        """
        async with self.lock_for(template_id):
            member_rows = await self._group_rows(db, template_id, group_id)
            by_id = {row.id: row for row in member_rows}

            row = by_id.get(field_id)
            if row is None:
                raise NotFound(
                    f"Field {field_id} is not a member of group {group_id}", [field_id]
                )

            role = spec_from_row(row).role
            if isinstance(role, Primary):
                raise ValidationFailure(
                    [f"Field {field_id} is the primary of group {group_id}; dissolve the group instead"],
                    message="Cannot detach primary field",
                )

            primary_row = by_id.get(role.primary_id)
            dissolved = False
            try:
                self._assign_role(row, UNMERGED)
                if primary_row is not None:
                    primary_role = spec_from_row(primary_row).role
                    remaining = tuple(a for a in primary_role.aliases if a != field_id)
                    still_members = [
                        r for r in member_rows if r.id not in (field_id, primary_row.id)
                    ]
                    if remaining or still_members:
                        self._assign_role(
                            primary_row,
                            Primary(group_id, primary_role.group_name, remaining),
                        )
                    else:
                        self._assign_role(primary_row, UNMERGED)
                        dissolved = True

                await self._commit(
                    db,
                    template_id,
                    CatalogEventType.FIELD_DETACHED,
                    {"group_id": group_id, "field_id": field_id, "dissolved": dissolved},
                )
            except ConcurrentModification:
                raise
            except Exception:
                await db.rollback()
                logger.exception("Detaching %s from %s failed; rolled back", field_id, group_id)
                raise

        logger.info("Detached field %s from group %s", field_id, group_id)
        return dissolved

    async def dissolve(
        self,
        db: AsyncSession,
        template_id: str,
        group_id: str,
    ) -> int:
        """Strip group metadata from every member. Returns the member count."""
        async with self.lock_for(template_id):
            member_rows = await self._group_rows(db, template_id, group_id)

            try:
                for row in member_rows:
                    self._assign_role(row, UNMERGED)

                await self._commit(
                    db,
                    template_id,
                    CatalogEventType.GROUP_DISSOLVED,
                    {"group_id": group_id, "field_ids": [row.id for row in member_rows]},
                )
            except ConcurrentModification:
                raise
            except Exception:
                await db.rollback()
                logger.exception("Dissolving group %s failed; rolled back", group_id)
                raise

        logger.info("Dissolved group %s (%d fields)", group_id, len(member_rows))
        return len(member_rows)


# Singleton instance
merge_coordinator = MergeCoordinator()
