"""
Configuration Management for Budget Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Storage location, backup cryptography parameters and structural limits
are validated once at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Persistence backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding one JSON file per storage key"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed file write is attempted"
    )


class BackupSettings(BaseSettings):
    """Backup export/import configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_BACKUP_",
        extra="ignore"
    )

    kdf_iterations: int = Field(
        default=250_000,
        ge=250_000,
        le=2_000_000,
        description="PBKDF2-HMAC-SHA256 iterations used when encrypting"
    )
    max_import_size_mb: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum backup file size accepted for import, in MB"
    )
    app_tag: str = Field(
        default="personal-finance-dashboard",
        description="Application tag written into exported envelopes"
    )

    @property
    def max_import_size_bytes(self) -> int:
        """Get max import size in bytes."""
        return self.max_import_size_mb * 1024 * 1024


class BudgetSettings(BaseSettings):
    """Structural limits and defaults for budget data."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGET_",
        extra="ignore"
    )

    max_categories_per_period: int = Field(
        default=200,
        ge=1,
        le=1000,
        description="Maximum number of budget categories in one period"
    )
    year_window: int = Field(
        default=25,
        ge=1,
        le=100,
        description="Selectable years are clamped to current year +/- this window"
    )
    default_currency: str = Field(
        default="USD",
        description="Currency used when preferences are missing or invalid"
    )

    @field_validator('default_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        """Currency codes are stored upper-case."""
        return v.strip().upper()


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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
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

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def backup(self) -> BackupSettings:
        return BackupSettings()

    @property
    def budget(self) -> BudgetSettings:
        return BudgetSettings()

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    ``<name>_error`` entries for the sections that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "backup", "budget", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
