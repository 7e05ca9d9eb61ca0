"""Application configuration settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "PDF Forms"
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Database
    database_url: str = "sqlite+aiosqlite:///./pdfforms.db"

    # Storage
    storage_path: Path = Path("./storage")
    max_upload_bytes: int = 25 * 1024 * 1024  # 25 MB

    # Redundant field detection defaults
    name_similarity_threshold: float = 0.85
    position_proximity_threshold: float = 0.70
    fuzzy_name_floor: float = 0.60
    name_weight: float = 0.7
    position_weight: float = 0.3
    combined_threshold: float = 0.75
    auto_merge_confidence: float = 0.95

    # Page geometry used when the true page size is unknown (ISO A4)
    default_page_width: float = 595.0
    default_page_height: float = 842.0

    # Rendering
    default_font_size: float = 12.0
    render_font: str = "helv"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
