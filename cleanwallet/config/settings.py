"""
Configuration Management for CleanWallet

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here, so every external dependency
(the vision endpoint, the on-disk store) is visible in one place and
validated before the app starts using it.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class VisionSettings(BaseSettings):
    """Vision-language chat-completion endpoint configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OPENAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        min_length=20,
        description="API key sent as a Bearer token"
    )
    model: str = Field(
        default="gpt-4o",
        description="Model used for receipt extraction"
    )
    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of the chat-completion API"
    )
    max_tokens: int = Field(
        default=1000,
        ge=100,
        le=8192,
        description="Maximum tokens in the model answer"
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Read timeout for one extraction request"
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class StorageSettings(BaseSettings):
    """Local key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".cleanwallet",
        description="Directory holding the key-value document"
    )
    file_name: str = Field(
        default="storage.json",
        description="Name of the key-value document"
    )

    @property
    def path(self) -> Path:
        """Full path of the key-value document."""
        return self.data_dir / self.file_name


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    # Scanning limits
    max_scan_images: int = Field(
        default=7,
        ge=1,
        le=20,
        description="Maximum number of images scanned in one batch"
    )
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp",
        description="Comma-separated list of supported image formats"
    )

    # Display defaults
    default_currency: str = Field(
        default="USD",
        description="Currency code used for display"
    )
    default_category: str = Field(
        default="Others",
        description="Category used when none can be assigned"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class Settings(BaseSettings):
    """
    Root settings container.

    Sub-settings are loaded lazily so the app can run with only part of
    the configuration present (e.g. no API key until the user enters one).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def vision(self) -> VisionSettings:
        return VisionSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus a
    `<name>_error` entry for every part that failed.
    """
    results: dict[str, object] = {}
    settings = get_settings()

    for name in ("vision", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results


def vision_settings_for_key(api_key: str, base: Optional[VisionSettings] = None) -> VisionSettings:
    """
    Build vision settings for a key entered at runtime.

    Other fields come from `base` when given, otherwise from the defaults.
    """
    if base is None:
        return VisionSettings(api_key=api_key)
    return base.model_copy(update={"api_key": api_key})
