"""Audit service for tamper-evident catalog change logging."""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pdfforms.models import CatalogEvent, CatalogEventType


class AuditService:
    """Service for recording catalog mutations per template."""

    async def record_event(
        self,
        db: AsyncSession,
        template_id: str,
        event_type: CatalogEventType,
        data: dict[str, Any] | None = None,
    ) -> CatalogEvent:
        """
        Add a hash-chained event to the current transaction.

        The event is flushed but not committed: it commits or rolls back
        together with the catalog change it describes.
        """
        previous_event = await self._get_last_event(db, template_id)

        event = CatalogEvent(
            template_id=template_id,
            sequence=(previous_event.sequence + 1) if previous_event else 1,
            event_type=event_type,
            timestamp=datetime.now(timezone.utc),
            data=data,
            previous_event_hash=previous_event.event_hash if previous_event else None,
        )
        event.event_hash = self._compute_event_hash(event)

        db.add(event)
        await db.flush()

        return event

    async def _get_last_event(
        self,
        db: AsyncSession,
        template_id: str,
    ) -> CatalogEvent | None:
        """Get the most recent event for a template."""
        result = await db.execute(
            select(CatalogEvent)
            .where(CatalogEvent.template_id == template_id)
            .order_by(CatalogEvent.sequence.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def _compute_event_hash(self, event: CatalogEvent) -> str:
        """Compute SHA-256 hash of event data for tamper detection."""
        hash_data = {
            "template_id": event.template_id,
            "sequence": event.sequence,
            "event_type": CatalogEventType(event.event_type).value,
            "data": event.data,
            "previous_event_hash": event.previous_event_hash,
        }

        hash_string = json.dumps(hash_data, sort_keys=True, default=str)
        return hashlib.sha256(hash_string.encode()).hexdigest()

    async def get_event_trail(
        self,
        db: AsyncSession,
        template_id: str,
    ) -> list[CatalogEvent]:
        """Get all events for a template in chain order."""
        result = await db.execute(
            select(CatalogEvent)
            .where(CatalogEvent.template_id == template_id)
            .order_by(CatalogEvent.sequence.asc())
        )
        return list(result.scalars().all())

    async def verify_event_trail(
        self,
        db: AsyncSession,
        template_id: str,
    ) -> tuple[bool, list[str]]:
        """
        Check that a template's chain is gapless and every link is intact.

        Returns (valid, problems); an empty trail is valid.
        """
        problems = []
        previous: CatalogEvent | None = None

        for expected_sequence, event in enumerate(
            await self.get_event_trail(db, template_id), start=1
        ):
            label = f"#{event.sequence} {CatalogEventType(event.event_type).value}"

            if event.sequence != expected_sequence:
                problems.append(f"{label}: expected sequence {expected_sequence}")

            linked_to = previous.event_hash if previous else None
            if event.previous_event_hash != linked_to:
                problems.append(f"{label}: does not link to the preceding event")

            if event.event_hash != self._compute_event_hash(event):
                problems.append(f"{label}: content does not match its hash")

            previous = event

        return not problems, problems


# Singleton instance
audit_service = AuditService()
