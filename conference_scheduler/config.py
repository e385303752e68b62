"""Application settings loaded from the environment (prefix ``CONFERENCE_``)."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CONFERENCE_",
        env_file=str(Path(__file__).resolve().parents[1] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_name: str = "Conference Scheduling Service"
    api_version: str = "1.0.0"
    log_level: str = "INFO"
    log_file: str | None = None

    page_limit_max: int = Field(default=20, ge=1)
    conflict_report_limit: int = Field(default=10, ge=1)

    # Identity is resolved upstream; these headers carry the result.
    user_id_header: str = "X-User-ID"
    user_role_header: str = "X-User-Role"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
