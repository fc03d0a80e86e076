"""Service configuration loaded from environment variables or a .env file."""

from functools import lru_cache
from pathlib import Path
from typing import ClassVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration.

    Every field maps to the upper-cased environment variable of the same
    name (``WHITE_LIST``, ``OBJECT_STORE_DIR``, ...).
    """

    # Secondary image fetches
    white_list: str = Field(
        "",
        description="Comma separated hostname suffixes allowed for secondary images. Empty allows all.",
    )
    secondary_fetch_timeout: float | None = Field(
        None,
        gt=0,
        description="Timeout in seconds for secondary image fetches (None = no timeout).",
    )

    # Object store
    object_store_dir: Path = Field(Path("./objects"), description="Root of the local object store.")
    object_store_url: str | None = Field(
        None,
        description="Origin base URL. When set, objects are pulled over HTTP instead of from disk.",
    )

    # Response cache
    cache_dir: Path | None = Field(None, description="On-disk cache directory. None keeps the cache in memory.")
    cache_max_entries: int = Field(512, ge=1, description="Maximum entries kept by the in-memory cache.")
    cache_control: str = Field("public,max-age=15552000", description="Cache-Control of transformed responses.")

    # Output defaults
    default_format: str = Field("webp", description="Output format when the request names none.")
    default_quality: int = Field(75, ge=0, le=100, description="Encode quality when the request names none.")

    # Stages appended after the resolved resize/crop stages
    extra_pipeline: str = Field("", description="Pipeline mini-language, e.g. 'watermark!<url>,10,10'.")

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_format")
    @classmethod
    def validate_default_format(cls, v: str) -> str:
        if v.lower() not in ("jpeg", "jpg", "png", "webp"):
            raise ValueError(f"Unsupported default format: {v}")
        return v.lower()

    @property
    def allowed_hosts(self) -> list[str]:
        """Whitelist entries, blanks dropped."""
        return [entry.strip() for entry in self.white_list.split(",") if entry.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Return a cached Settings instance so the environment is parsed once."""
    return Settings()
