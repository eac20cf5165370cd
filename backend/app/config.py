"""Gallery configuration — Pydantic BaseSettings loaded from .env."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    app_name: str = "Media Gallery"
    debug: bool = True
    environment: str = "development"
    log_level: str = "INFO"

    # Network
    host: str = "127.0.0.1"
    port: int = 8000
    api_prefix: str = "/api"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]

    # Auth — single shared admin credential, session is a signed cookie
    secret_key: str = "change-me-in-prod"
    token_algorithm: str = "HS256"
    session_cookie_name: str = "gallery_session"
    admin_username: str = "admin"
    admin_password: str = "admin"

    # Storage backend: "local" (filesystem tree) or "s3" (bucket)
    storage_backend: str = "local"
    upload_dir: str = "./data/uploads"

    # Object storage (any S3-compatible endpoint)
    s3_bucket: str = ""
    s3_endpoint_url: str = ""
    s3_region: str = ""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    signed_url_expiry_seconds: int = 3600
    proxy_signed_url_seconds: int = 60  # upper bound for proxy fetches

    # Uploads
    max_upload_bytes: int = 50 * 1024 * 1024  # 50 MB

    # Placeholder probing during listings
    probe_max_bytes: int = 4096
    probe_timeout_seconds: float = 5.0
    probe_concurrency: int = 8

    # Storage proxy
    proxy_cache_seconds: int = 60

    uvicorn_workers: int = 1

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def uses_bucket(self) -> bool:
        return self.storage_backend.lower() == "s3"

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        env_prefix="GALLERY_",
        extra="ignore",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, value: list[str] | str) -> list[str]:
        if isinstance(value, str) and not value.startswith("["):
            return [o.strip() for o in value.split(",") if o.strip()]
        if isinstance(value, list):
            return value
        return ["http://localhost:3000"]

    @field_validator("storage_backend")
    @classmethod
    def check_storage_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in ("local", "s3"):
            raise ValueError("storage_backend must be 'local' or 's3'")
        return value

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Ensure the upload directory is absolute."""
        base = Path(__file__).resolve().parent.parent  # backend/
        if not Path(self.upload_dir).is_absolute():
            self.upload_dir = str(base / self.upload_dir)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
