"""Configuration package."""

from cleanwallet.config.settings import (
    AppSettings,
    Settings,
    StorageSettings,
    VisionSettings,
    get_settings,
    validate_all_settings,
    vision_settings_for_key,
)

__all__ = [
    "AppSettings",
    "Settings",
    "StorageSettings",
    "VisionSettings",
    "get_settings",
    "validate_all_settings",
    "vision_settings_for_key",
]
