"""Storage service for template and generated PDF files."""

import hashlib
from pathlib import Path

import aiofiles
import aiofiles.os

from pdfforms.core.config import get_settings

settings = get_settings()


class StorageService:
    """Service for managing file storage on the local filesystem."""

    def __init__(self, storage_path: Path | None = None):
        """Initialize storage service."""
        self.storage_path = Path(storage_path or settings.storage_path)

    def ensure_directories(self) -> None:
        """Ensure required directories exist."""
        for name in ("templates", "generated"):
            (self.storage_path / name).mkdir(parents=True, exist_ok=True)

    def get_template_path(self, template_id: str, filename: str) -> Path:
        """Get path for storing an uploaded template."""
        return self.storage_path / "templates" / template_id / Path(filename).name

    def get_generated_path(self, template_id: str, document_id: str) -> Path:
        """Get path for a filled document."""
        return self.storage_path / "generated" / template_id / f"{document_id}.pdf"

    async def save_file(self, content: bytes, dest_path: Path) -> tuple[str, int]:
        """
        Save a file and return its SHA-256 hash and size.

        Args:
            content: File content
            dest_path: Destination path

        Returns:
            Tuple of (sha256_hash, file_size)
        """
        dest_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(dest_path, "wb") as f:
            await f.write(content)

        return hashlib.sha256(content).hexdigest(), len(content)

    async def read_file(self, file_path: Path) -> bytes:
        """Read file content."""
        async with aiofiles.open(file_path, "rb") as f:
            return await f.read()

    async def delete_file(self, file_path: Path) -> None:
        """Delete a file if it exists."""
        if await aiofiles.os.path.exists(file_path):
            await aiofiles.os.remove(file_path)


# Singleton instance
storage_service = StorageService()
