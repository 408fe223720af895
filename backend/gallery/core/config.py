"""Application configuration using pydantic-settings."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GALLERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Application
    app_name: str = "Club Gallery"
    version: str = "0.1.0"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=5174, description="Server port")

    # CORS
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )

    # Paths
    gallery_config_path: Path = Field(
        default=Path("public/data/gallery.json"),
        description="JSON document describing gallery sections and their Drive folders",
    )
    frontend_dir: Path = Field(
        default=Path("dist"),
        description="Built frontend served as a single-page app when present",
    )

    # Google credentials, tried in this order. The bare GOOGLE_* names are
    # accepted as well.
    google_service_account_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "GALLERY_GOOGLE_SERVICE_ACCOUNT_KEY", "GOOGLE_SERVICE_ACCOUNT_KEY"
        ),
        description="Inline service account key JSON",
    )
    google_application_credentials: Path | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "GALLERY_GOOGLE_APPLICATION_CREDENTIALS", "GOOGLE_APPLICATION_CREDENTIALS"
        ),
        description="Path to a service account key file",
    )
    google_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GALLERY_GOOGLE_API_KEY", "GOOGLE_API_KEY"),
        description="Bare API key for public files",
    )
    api_key_listing: bool = Field(
        default=False,
        description="Let the API key capability list folders (public folders only)",
    )

    # Caching (seconds)
    folder_cache_ttl: float = Field(default=120.0, gt=0, description="Folder listing TTL")
    gallery_cache_ttl: float = Field(default=60.0, gt=0, description="Assembled gallery TTL")

    # Listing
    list_page_size: int = Field(default=100, ge=1, le=1000)
    list_max_pages: int = Field(
        default=6,
        ge=1,
        description="Safety cap on listing pages fetched per folder",
    )

    # Retry policy
    retry_max_retries: int = Field(default=3, ge=0)
    retry_initial_delay: float = Field(default=1.0, ge=0, description="First backoff delay in seconds")

    # Scraper
    scraper_min_items: int = Field(
        default=5,
        ge=0,
        description="Below this many scraped items the lax pattern is also applied",
    )
    scraper_max_name_length: int = Field(default=150, ge=1)

    # Upstream HTTP
    http_timeout: float = Field(default=30.0, gt=0)
    thumbnail_size: int = Field(default=400, ge=16)
    image_mirror_width: int = Field(default=1000, ge=16)


# Global settings instance
settings = Settings()
