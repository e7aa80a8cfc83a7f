"""Runtime settings for the seating designer, read from ``SEATING_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SEATING_", env_file=".env", extra="ignore")

    # External collaborators
    layout_api_url: Optional[str] = None
    availability_url: str = "http://localhost:3000/api/seats/availability"
    analysis_url: str = "http://localhost:3000/api/analyze-seating-chart"
    template_url: str = "http://localhost:3000/api/generate-layout"
    http_timeout_s: float = 30.0

    # Local layout store, used when no layout API is configured
    data_dir: Path = Field(
        default_factory=lambda: Path.cwd() / "data",
        validation_alias=AliasChoices("SEATING_DATA_DIR", "VENUE_SEATING_DATA_DIR"),
    )
    db_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SEATING_DB_URL", "VENUE_SEATING_DB_URL"),
    )

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    cors_origins: list[str] = ["*"]

    def database_url(self) -> str:
        if self.db_url:
            return self.db_url
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{self.data_dir / 'seating_layouts.db'}"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
