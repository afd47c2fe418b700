"""Application settings."""

from functools import lru_cache
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "research-pipeline"
    app_env: str = "dev"
    database_url: str = ""
    queue_name: str = "research"
    queue_visibility_timeout_s: float = Field(default=900.0, gt=0)
    queue_max_receive_count: int = Field(default=2, ge=1)
    queue_retry_delay_s: float = Field(default=0.0, ge=0.0)
    worker_poll_interval_s: float = Field(default=2.0, gt=0)
    blob_root: Path = PROJECT_ROOT / "data" / "artifacts"
    artifact_prefix: str = "research/"
    topic_max_length: int = Field(default=500, ge=1)
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_max_tokens: int = Field(default=4096, ge=1)
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"
    anthropic_timeout_s: float = Field(default=120.0, ge=1.0)
    anthropic_api_key: str = ""
    secret_file: Path | None = None

    model_config = SettingsConfigDict(
        env_prefix="RESEARCH_PIPELINE_",
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )

    def resolved_database_url(self) -> str:
        return self.database_url or os.getenv("DATABASE_URL", "")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
