"""Media Uploads configuration: Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "Media Uploads"
    debug: bool = True
    environment: str = "development"
    log_level: str = "INFO"

    # Network
    host: str = "127.0.0.1"
    port: int = 8000
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Mode: dev = simulated transfers, prod = real upload endpoint
    mode: str = "dev"

    # Remote store (the upload endpoint is owned by another service)
    upload_url: str = "http://localhost:8080/api/resources/uploads"
    upload_auth_token: str = ""  # Passed through as Bearer, never validated here
    upload_timeout_seconds: float = 60.0
    upload_chunk_size: int = 64 * 1024  # 64 KB per progress step

    # Attachment policy
    max_attachments: int = 10
    max_file_size: int = 5 * MIB
    concurrency_limit: int = 3
    allowed_content_types: list[str] = [
        "image/jpeg",
        "image/png",
        "image/gif",
        "image/webp",
    ]

    # Dev transfer simulation
    dev_storage_url: str = "http://localhost:8000/dev-storage"
    dev_transfer_delay_seconds: float = 0.05

    # Abandoned forms: sessions untouched this long are closed by the sweeper
    session_idle_timeout_seconds: float = 30 * 60
    session_sweep_interval_seconds: float = 60.0

    @property
    def is_dev_mode(self) -> bool:
        return self.mode == "dev"

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="MEDIA_UPLOADS_",
        extra="ignore",
    )

    @field_validator("cors_origins", "allowed_content_types", mode="before")
    @classmethod
    def split_comma_separated(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str) and not value.startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        return value

    @field_validator("concurrency_limit", "max_attachments")
    @classmethod
    def at_least_one(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
