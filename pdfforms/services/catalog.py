"""Field catalog persistence: loading templates and field snapshots."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pdfforms.core.exceptions import NotFound
from pdfforms.models import Template, TemplateField
from pdfforms.services.identity.catalog import FieldSpec, spec_from_row


class CatalogStore:
    """Reads the field catalog of a template."""

    async def get_template(self, db: AsyncSession, template_id: str) -> Template:
        """Get a template or raise NotFound."""
        result = await db.execute(select(Template).where(Template.id == template_id))
        template = result.scalar_one_or_none()
        if template is None:
            raise NotFound(f"Template {template_id} not found", [template_id])
        return template

    async def get_rows(self, db: AsyncSession, template_id: str) -> list[TemplateField]:
        """All field rows of a template in declaration order."""
        result = await db.execute(
            select(TemplateField)
            .where(TemplateField.template_id == template_id)
            .order_by(TemplateField.created_at, TemplateField.id)
        )
        return list(result.scalars().all())

    async def get_rows_by_id(
        self,
        db: AsyncSession,
        field_ids: list[str],
    ) -> dict[str, TemplateField]:
        """Field rows keyed by id, regardless of template."""
        if not field_ids:
            return {}
        result = await db.execute(
            select(TemplateField).where(TemplateField.id.in_(set(field_ids)))
        )
        return {row.id: row for row in result.scalars().all()}

    async def load_fields(self, db: AsyncSession, template_id: str) -> list[FieldSpec]:
        """Immutable snapshot of a template's catalog."""
        return [spec_from_row(row) for row in await self.get_rows(db, template_id)]


# Singleton instance
catalog_store = CatalogStore()
