"""Application settings loaded from environment variables."""
from functools import lru_cache
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Supabase storage (attachments)
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_key: str = Field(default="", description="Supabase API key used for storage requests")
    profile_bucket: str = Field(default="profile-pictures", description="Bucket holding profile images")
    lab_records_bucket: str = Field(default="laboratory-files", description="Bucket holding laboratory files")
    signed_url_ttl_seconds: int = Field(default=3600, description="Lifetime of signed retrieval URLs")

    # Attachment fetching
    attachment_fetch_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for a single storage request"
    )
    attachment_fetch_budget_seconds: float = Field(
        default=30.0,
        description="Wall-clock cap for all attachment fetches of one report"
    )

    # PDF rendering
    pdf_font_path: Optional[str] = Field(
        default=None,
        description="TrueType font for PDF text; the built-in Helvetica only covers Latin-1"
    )
    pdf_bold_font_path: Optional[str] = Field(default=None, description="TrueType font for bold PDF text")

    # Application
    app_env: str = Field(default="development", description="Application environment")
    log_level: str = Field(default="INFO", description="Logging level")
    cors_origins: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
