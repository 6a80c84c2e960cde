"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # App
    app_name: str = "Property Listings API"
    debug: bool = False
    api_v1_prefix: str = "/v1"
    allowed_origins: str = "http://localhost:3000"

    # Database
    database_url: str = "sqlite+aiosqlite:///./properties.db"

    # Image storage
    upload_dir: Path = Path("./uploads")
    image_namespace: str = "property-images"
    image_io_timeout_seconds: float = 10.0
    max_upload_size_mb: int = 10
    max_images_per_request: int = 10
    allowed_image_extensions: str = "jpg,jpeg,png,gif"

    # Logging
    log_level: str = "INFO"
    log_format: str = "standard"

    @field_validator("image_namespace")
    @classmethod
    def validate_namespace(cls, value: str) -> str:
        value = value.strip("/")
        if not value or "/" in value or value in (".", ".."):
            raise ValueError("image_namespace must be a single path segment")
        return value

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, value: str) -> str:
        if value not in ("standard", "json"):
            raise ValueError("log_format must be 'standard' or 'json'")
        return value

    @model_validator(mode="after")
    def validate_cors(self):
        """Wildcard CORS is only tolerated in debug mode."""
        if not self.debug and "*" in self.origins:
            raise ValueError("Wildcard CORS origin (*) is not allowed when DEBUG is off")
        return self

    @property
    def origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def image_extensions(self) -> set[str]:
        return {ext.strip().lower().lstrip(".") for ext in self.allowed_image_extensions.split(",")}

    @property
    def image_root(self) -> Path:
        """Directory that holds every property's image namespace."""
        return self.upload_dir / self.image_namespace


SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql+psycopg2",
    "sqlite+aiosqlite": "sqlite",
}


def sync_database_url(url: str) -> str:
    """Swap an async driver for the sync one Alembic migrations run on."""
    scheme, sep, rest = url.partition("://")
    return f"{SYNC_DRIVERS.get(scheme, scheme)}{sep}{rest}"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
