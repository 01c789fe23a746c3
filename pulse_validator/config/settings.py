from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Station store: a database URL takes precedence over a JSON file
    database_url: str | None = None
    stations_file: Path | None = None

    probe_timeout: float = Field(default=5.0, gt=0)
    user_agent: str = "Mozilla/5.0 (compatible; RadioStreamValidator/1.0)"
    max_manifest_bytes: int = Field(default=1024 * 1024, ge=1)

    batch_size: int = Field(default=10, ge=1)
    batch_delay: float = Field(default=1.0, ge=0)
    validate_interval_minutes: int = Field(default=5, ge=1)

    log_level: str = "INFO"


settings = Settings()
