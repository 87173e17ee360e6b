"""
Configuration and settings for the showcase data service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # S3-compatible blob storage
    blob_endpoint: Optional[str] = Field(default=None)
    blob_region: Optional[str] = Field(default=None)
    blob_bucket: Optional[str] = Field(default=None)
    blob_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Fixed logical name of the project document, overwritten in place.
    data_blob_name: str = Field(default="project-data.json")
    image_prefix: str = Field(default="project-images/")

    # Shared secret compared against the x-admin-password header.
    admin_password: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
