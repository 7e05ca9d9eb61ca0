"""Pytest configuration and fixtures."""

import io
from pathlib import Path
from typing import AsyncGenerator, Callable, Generator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pdfforms.main import app
from pdfforms.models import FieldKind, Template, TemplateField, get_db
from pdfforms.models.base import Base, build_engine
from pdfforms.services.storage import storage_service


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def build_pdf(pages: int = 3) -> bytes:
    """Build a small letter-size PDF with one heading per page."""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    for number in range(1, pages + 1):
        c.drawString(72, 750, f"Contract page {number}")
        c.drawString(72, 700, "Name: _________________________")
        c.showPage()
    c.save()
    return buffer.getvalue()


@pytest_asyncio.fixture
async def test_db() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    engine = build_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(engine, expire_on_commit=False)

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def temp_storage(tmp_path: Path, monkeypatch) -> Generator[Path, None, None]:
    """Point file storage at a temporary directory."""
    monkeypatch.setattr(storage_service, "storage_path", tmp_path)
    storage_service.ensure_directories()
    yield tmp_path


@pytest_asyncio.fixture
async def client(
    test_db: AsyncSession,
    temp_storage: Path,
) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def sample_pdf() -> bytes:
    """A three-page sample PDF."""
    return build_pdf(pages=3)


@pytest_asyncio.fixture
async def template(
    test_db: AsyncSession,
    temp_storage: Path,
    sample_pdf: bytes,
) -> Template:
    """A stored three-page template."""
    template = Template(
        name="Contract",
        original_filename="contract.pdf",
        file_path="",
        file_size=len(sample_pdf),
        page_count=3,
        page_width=612.0,
        page_height=792.0,
    )
    test_db.add(template)
    await test_db.flush()

    path = storage_service.get_template_path(template.id, template.original_filename)
    await storage_service.save_file(sample_pdf, path)
    template.file_path = str(path)

    await test_db.commit()
    return template


@pytest.fixture
def add_field(test_db: AsyncSession) -> Callable:
    """Factory that declares a field on a template and commits it."""

    async def _add_field(
        template: Template,
        name: str,
        page: int = 1,
        x: float = 100.0,
        y: float = 700.0,
        kind: FieldKind = FieldKind.TEXT,
        **kwargs,
    ) -> TemplateField:
        field = TemplateField(
            template_id=template.id,
            field_name=name,
            page_number=page,
            x_coordinate=x,
            y_coordinate=y,
            field_type=kind,
            **kwargs,
        )
        test_db.add(field)
        await test_db.commit()
        return field

    return _add_field


@pytest_asyncio.fixture
async def file_sessions(tmp_path: Path) -> AsyncGenerator[async_sessionmaker, None]:
    """Session factory over a file database, so sessions use separate connections."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()
