"""Core database models for the PDF forms service."""

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pdfforms.models.base import Base, TimestampMixin, uuid_pk


class FieldKind(str, enum.Enum):
    """Input kind of a template field."""

    TEXT = "text"
    DATE = "date"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    SIGNATURE = "signature"


class GenerationStatus(str, enum.Enum):
    """Outcome of a document generation."""

    SUCCESS = "success"
    PARTIAL = "partial"  # Some draw instructions were skipped


class CatalogEventType(str, enum.Enum):
    """Catalog change event types."""

    FIELDS_CREATED = "FIELDS_CREATED"
    FIELD_UPDATED = "FIELD_UPDATED"
    FIELD_DELETED = "FIELD_DELETED"
    FIELDS_MERGED = "FIELDS_MERGED"
    GROUP_EXTENDED = "GROUP_EXTENDED"
    FIELD_DETACHED = "FIELD_DETACHED"
    GROUP_DISSOLVED = "GROUP_DISSOLVED"
    DOCUMENT_GENERATED = "DOCUMENT_GENERATED"


class Template(Base, TimestampMixin):
    """Uploaded PDF template."""

    __tablename__ = "templates"

    id: Mapped[uuid_pk]
    name: Mapped[str] = mapped_column(String(255))
    original_filename: Mapped[str] = mapped_column(String(255))
    file_path: Mapped[str] = mapped_column(String(500))
    file_hash: Mapped[str | None] = mapped_column(String(64))  # SHA-256
    file_size: Mapped[int] = mapped_column(Integer, default=0)
    page_count: Mapped[int] = mapped_column(Integer, default=0)

    # Size of page 1 in points; null falls back to A4 for proximity scoring
    page_width: Mapped[float | None] = mapped_column(Float, default=None)
    page_height: Mapped[float | None] = mapped_column(Float, default=None)

    # Relationships
    fields: Mapped[list["TemplateField"]] = relationship(
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="TemplateField.created_at",
    )
    generated_documents: Mapped[list["GeneratedDocument"]] = relationship(
        back_populates="template", cascade="all, delete-orphan"
    )
    catalog_events: Mapped[list["CatalogEvent"]] = relationship(
        back_populates="template", cascade="all, delete-orphan"
    )


class TemplateField(Base, TimestampMixin):
    """One declared fillable location on a template."""

    __tablename__ = "template_fields"

    id: Mapped[uuid_pk]
    template_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("templates.id"), index=True
    )

    field_name: Mapped[str] = mapped_column(String(255))
    field_label: Mapped[str | None] = mapped_column(String(255), default=None)
    field_type: Mapped[FieldKind] = mapped_column(
        Enum(FieldKind), default=FieldKind.TEXT
    )

    # Position in PDF points, origin bottom-left
    page_number: Mapped[int] = mapped_column(Integer, default=1)
    x_coordinate: Mapped[float] = mapped_column(Float)
    y_coordinate: Mapped[float] = mapped_column(Float)
    width: Mapped[float | None] = mapped_column(Float, default=None)
    height: Mapped[float | None] = mapped_column(Float, default=None)
    font_size: Mapped[float] = mapped_column(Float, default=12.0)

    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    default_value: Mapped[str | None] = mapped_column(Text, default=None)
    validation_pattern: Mapped[str | None] = mapped_column(String(500), default=None)

    # Merge group metadata:
    # {group_id, is_primary, primary_field_id, merged_field_ids, group_name}
    merge_metadata: Mapped[dict | None] = mapped_column(
        "metadata", JSON, default=None
    )

    # Optimistic concurrency counter, bumped on every UPDATE
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    template: Mapped["Template"] = relationship(back_populates="fields")


class GeneratedDocument(Base, TimestampMixin):
    """Log row for a filled document."""

    __tablename__ = "generated_documents"

    id: Mapped[uuid_pk]
    template_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("templates.id"), index=True
    )
    file_path: Mapped[str] = mapped_column(String(500))
    file_size: Mapped[int] = mapped_column(Integer)
    fields_filled: Mapped[int] = mapped_column(Integer, default=0)
    render_warnings: Mapped[int] = mapped_column(Integer, default=0)
    processing_time_ms: Mapped[float] = mapped_column(Float, default=0.0)
    status: Mapped[GenerationStatus] = mapped_column(
        Enum(GenerationStatus), default=GenerationStatus.SUCCESS
    )

    # Relationships
    template: Mapped["Template"] = relationship(back_populates="generated_documents")


class CatalogEvent(Base):
    """Hash-chained record of a catalog mutation."""

    __tablename__ = "catalog_events"
    __table_args__ = (UniqueConstraint("template_id", "sequence"),)

    id: Mapped[uuid_pk]
    template_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("templates.id"), index=True
    )

    # Position in the template's chain, starting at 1
    sequence: Mapped[int] = mapped_column(Integer)
    event_type: Mapped[CatalogEventType] = mapped_column(Enum(CatalogEventType))
    timestamp: Mapped[datetime] = mapped_column()

    # Event-specific data
    data: Mapped[dict | None] = mapped_column(JSON, default=None)

    previous_event_hash: Mapped[str | None] = mapped_column(String(64), default=None)
    event_hash: Mapped[str | None] = mapped_column(String(64), default=None)

    # Relationships
    template: Mapped["Template"] = relationship(back_populates="catalog_events")
