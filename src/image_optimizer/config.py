"""Application configuration."""

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    output_dir: Path = Path("static/optimized")
    public_url_prefix: str = "/optimized"
    cors_allow_origins: list[str] = ["*"]
    max_upload_bytes: int = Field(default=15 * 1024 * 1024, gt=0)
    max_width: int = Field(default=2048, gt=0)
    max_height: int = Field(default=2048, gt=0)
    webp_quality: int = Field(default=75, ge=0, le=100)
    storage_backend: Literal["local", "supabase"] = "local"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_bucket: str = "optimized-images"
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3655
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
