"""
Configuration Management for Pocket Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see where the ledger is stored and
ensures configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger storage and display configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    storage_backend: Literal["file", "memory", "google_sheets"] = Field(
        default="file",
        description="Where the ledger is persisted"
    )
    data_file: Path = Field(
        default=Path("data/ledger.json"),
        description="JSON file used by the 'file' backend"
    )
    slot_key: str = Field(
        default="transactions",
        min_length=1,
        description="Key of the slot the ledger is stored under"
    )

    # Pagination
    initial_visible_count: int = Field(
        default=15,
        ge=1,
        description="Transactions shown before 'show more' is used"
    )
    visible_increment: int = Field(
        default=10,
        ge=1,
        description="Transactions added to the window per 'show more'"
    )

    # Display
    balance_title: str = Field(
        default="Balance",
        description="Heading of the balance card"
    )
    currency_symbol: str = Field(
        default="$",
        max_length=5,
        description="Symbol shown before amounts"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )
    kv_sheet_name: str = Field(
        default="KeyValue",
        description="Name of the sheet holding key-value slots"
    )

    @field_validator("credentials_path", "spreadsheet_id")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Reject empty values. Whether the credentials file exists is checked on connect."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v


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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum level written to the log"
    )


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

    # Note: These are loaded lazily so the Google Sheets group is only
    # required when that backend is selected

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    "<setting_name>_error" entries for the groups that failed.
    """
    results = {}

    settings = get_settings()

    groups = {
        "ledger": lambda: settings.ledger,
        "google_sheets": lambda: settings.google_sheets,
        "app": lambda: settings.app,
    }

    for name, load in groups.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
