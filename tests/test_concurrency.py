"""Concurrent writers on one template."""

import asyncio
from datetime import datetime, timezone

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from pdfforms.core.exceptions import ConcurrentModification, ValidationFailure
from pdfforms.models import CatalogEvent, CatalogEventType, Template, TemplateField
from pdfforms.services.audit import audit_service
from pdfforms.services.catalog import catalog_store
from pdfforms.services.filling import fill_service
from pdfforms.services.merge import MergeResult, merge_coordinator
from pdfforms.services.storage import storage_service


pytestmark = pytest.mark.asyncio


async def seed(sessions, names: list[str], pdf: bytes | None = None) -> tuple[str, list[str]]:
    """Create a template with one text field per name; return the ids."""
    async with sessions() as db:
        template = Template(
            name="Contract",
            original_filename="contract.pdf",
            file_path="",
            page_count=3,
            page_width=612.0,
            page_height=792.0,
        )
        db.add(template)
        await db.flush()

        if pdf is not None:
            path = storage_service.get_template_path(template.id, template.original_filename)
            await storage_service.save_file(pdf, path)
            template.file_path = str(path)
            template.file_size = len(pdf)

        fields = [
            TemplateField(
                template_id=template.id,
                field_name=name,
                page_number=page,
                x_coordinate=100.0,
                y_coordinate=700.0,
            )
            for page, name in enumerate(names, start=1)
        ]
        db.add_all(fields)
        await db.commit()
        return template.id, [f.id for f in fields]


class TestOverlappingMerges:
    """Two merges racing for the same field."""

    async def test_exactly_one_merge_wins(self, file_sessions):
        template_id, (a, b, c) = await seed(file_sessions, ["name", "name", "name"])

        async def merge(primary_id, alias_id):
            async with file_sessions() as db:
                return await merge_coordinator.merge(db, template_id, primary_id, [alias_id])

        results = await asyncio.gather(merge(a, b), merge(c, b), return_exceptions=True)

        won = [r for r in results if isinstance(r, MergeResult)]
        lost = [r for r in results if isinstance(r, ValidationFailure)]
        assert len(won) == 1
        assert len(lost) == 1
        assert any(won[0].group_id in issue for issue in lost[0].issues)

        async with file_sessions() as db:
            fields = await catalog_store.load_fields(db, template_id)
            events = await audit_service.get_event_trail(db, template_id)

        assert {f.group_id for f in fields if f.group_id} == {won[0].group_id}
        assert [e.event_type for e in events] == [CatalogEventType.FIELDS_MERGED]

    async def test_out_of_band_version_bump(self, file_sessions, monkeypatch):
        """A row changed by another writer after it was read aborts the merge."""
        template_id, (a, b) = await seed(file_sessions, ["email", "email"])
        original = catalog_store.get_rows_by_id

        async def load_then_bump(db, field_ids):
            rows = await original(db, field_ids)
            async with file_sessions() as other:
                await other.execute(
                    update(TemplateField)
                    .where(TemplateField.id == b)
                    .values(version=TemplateField.version + 1)
                )
                await other.commit()
            return rows

        monkeypatch.setattr(catalog_store, "get_rows_by_id", load_then_bump)

        async with file_sessions() as db:
            with pytest.raises(ConcurrentModification):
                await merge_coordinator.merge(db, template_id, a, [b])

        monkeypatch.undo()
        async with file_sessions() as db:
            rows = await catalog_store.get_rows(db, template_id)
            events = await audit_service.get_event_trail(db, template_id)

        assert [row.merge_metadata for row in rows] == [None, None]
        assert events == []


class TestEventSequence:
    """Event numbering under concurrent writers."""

    async def test_concurrent_generates_get_distinct_sequences(
        self, file_sessions, temp_storage, sample_pdf
    ):
        template_id, _ = await seed(file_sessions, ["name"], pdf=sample_pdf)

        async def generate(value):
            async with file_sessions() as db:
                return await fill_service.generate(db, template_id, {"name": value})

        await asyncio.gather(generate("Jane Doe"), generate("John Roe"))

        async with file_sessions() as db:
            events = await audit_service.get_event_trail(db, template_id)
            valid, errors = await audit_service.verify_event_trail(db, template_id)

        assert [e.sequence for e in events] == [1, 2]
        assert valid
        assert errors == []

    async def test_duplicate_sequence_is_rejected(self, file_sessions):
        template_id, _ = await seed(file_sessions, ["name"])

        async with file_sessions() as db:
            await audit_service.record_event(
                db, template_id, CatalogEventType.FIELDS_CREATED, {"field_ids": []}
            )
            await db.commit()

            db.add(
                CatalogEvent(
                    template_id=template_id,
                    sequence=1,
                    event_type=CatalogEventType.DOCUMENT_GENERATED,
                    timestamp=datetime.now(timezone.utc),
                )
            )
            with pytest.raises(IntegrityError):
                await db.commit()
