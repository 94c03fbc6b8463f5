"""
Runtime configuration read from the environment (and an optional .env).

Each concern has its own prefix: PROCESSING_, CATALOG_, STORAGE_ and API_.
Top-level fields such as LOG_LEVEL take no prefix.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProcessingSettings(BaseSettings):
    """Upload processing configuration."""

    model_config = SettingsConfigDict(env_prefix="PROCESSING_")

    # Classification thresholds (0-100 scale)
    auto_approve_threshold: float = 80.0

    # Timeouts per item (seconds)
    match_timeout: float = 10.0
    persist_timeout: float = 10.0

    # Worker pool
    max_concurrent_uploads: int = 4
    resume_on_start: bool = True


class CatalogSettings(BaseSettings):
    """Catalog search and matching configuration."""

    model_config = SettingsConfigDict(env_prefix="CATALOG_")

    search_default_limit: int = 50
    search_max_limit: int = 100

    # Matcher
    match_top_k: int = 5
    match_min_score: float = 20.0


class StorageSettings(BaseSettings):
    """Where the database and uploaded files live."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "catmatch.db"
    uploads_dir_name: str = "uploads"

    # SQLite settings
    pool_size: int = 5
    busy_timeout: int = 30000  # milliseconds a writer waits for the lock

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / self.uploads_dir_name


class APISettings(BaseSettings):
    """HTTP server and upload limits."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]  # empty list disables CORS

    # Upload limits
    max_upload_size: int = 10 * 1024 * 1024  # 10 MB
    allowed_mime_types: list[str] = [
        "text/csv",
        "application/csv",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ]


class Settings(BaseSettings):
    """Root settings object; sub-settings read their own prefixed variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "CatMatch"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # console or json; unset picks console in development, json elsewhere
    log_format: Literal["console", "json"] | None = None

    # Sub-settings
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings, validate_default=True)
    api: APISettings = Field(default_factory=APISettings)

    @field_validator("storage", mode="after")
    @classmethod
    def create_data_dir(cls, storage: StorageSettings) -> StorageSettings:
        storage.uploads_dir.mkdir(parents=True, exist_ok=True)
        return storage


_settings: Settings | None = None


def get_settings() -> Settings:
    """Settings are read once per process; tests call reset_settings()."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
