"""
Configuration Management for Finance Pro

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Settings objects are frozen once loaded, so the extraction client and the
channel adapters receive an immutable snapshot instead of reading globals.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """
    Required configuration is missing or invalid.

    Carries the exact environment variable names so the startup
    diagnostic can tell the operator what to set.
    """

    def __init__(self, missing: list[str], message: Optional[str] = None):
        self.missing = missing
        super().__init__(
            message or f"Missing required configuration: {', '.join(missing)}"
        )


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    api_key: str = Field(
        ...,
        min_length=1,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-pro",
        description="Gemini model to use"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic JSON)"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    history_limit: int = Field(
        default=15,
        ge=0,
        le=15,
        description="How many recent transactions are sent as context (at most 15)"
    )


class TelegramSettings(BaseSettings):
    """Telegram bot configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    token: str = Field(
        ...,
        min_length=1,
        description="Telegram bot token from BotFather"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration (remote store for bot channels)."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for transactions"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the bots."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
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
        description="Minimum log level for structured logs"
    )

    # Local persistence (web channel)
    data_dir: Path = Field(
        default=Path(".data"),
        description="Directory holding the local JSON stores"
    )
    storage_namespace: str = Field(
        default="finance_pro",
        min_length=1,
        description="Fixed key prefix for the local stores"
    )

    # Bot channels
    max_concurrent_turns: int = Field(
        default=8,
        ge=1,
        le=256,
        description="Upper bound on extractions in flight across conversations"
    )

    @property
    def transactions_path(self) -> Path:
        """Local transaction list file."""
        return self.data_dir / f"{self.storage_namespace}_txs.json"

    @property
    def chat_history_path(self) -> Path:
        """Local chat log file."""
        return self.data_dir / f"{self.storage_namespace}_chat.json"


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the web app can run
    # without bot credentials and vice versa.

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def telegram(self) -> TelegramSettings:
        return TelegramSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


_SETTINGS_CLASSES: dict[str, type[BaseSettings]] = {
    "gemini": GeminiSettings,
    "telegram": TelegramSettings,
    "google_sheets": GoogleSheetsSettings,
    "app": AppSettings,
}


def _missing_env_vars(
    settings_cls: type[BaseSettings],
    error: ValidationError,
) -> list[str]:
    """Translate pydantic errors into environment variable names."""
    prefix = settings_cls.model_config.get("env_prefix", "") or ""
    names = []
    for err in error.errors():
        if not err.get("loc"):
            continue
        field_name = str(err["loc"][0])
        names.append(f"{prefix}{field_name}".upper())
    return names


def require_settings(*names: str) -> dict[str, BaseSettings]:
    """
    Load the named sub-settings or fail with every missing variable listed.

    Used at bot startup: the process must not start without a model
    credential and a channel credential.

    Raises:
        ConfigurationError: naming each missing/invalid variable
    """
    loaded: dict[str, BaseSettings] = {}
    missing: list[str] = []

    for name in names:
        settings_cls = _SETTINGS_CLASSES[name]
        try:
            loaded[name] = settings_cls()
        except ValidationError as e:
            missing.extend(_missing_env_vars(settings_cls, e))

    if missing:
        raise ConfigurationError(missing)

    return loaded


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks and the settings page.
    """
    results = {}

    for name in _SETTINGS_CLASSES:
        try:
            require_settings(name)
            results[name] = True
        except ConfigurationError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
