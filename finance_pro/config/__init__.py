"""Configuration package."""

from finance_pro.config.settings import (
    AppSettings,
    ConfigurationError,
    GeminiSettings,
    GoogleSheetsSettings,
    Settings,
    TelegramSettings,
    get_settings,
    require_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "ConfigurationError",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "Settings",
    "TelegramSettings",
    "get_settings",
    "require_settings",
    "validate_all_settings",
]
