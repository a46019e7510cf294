"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The analytics engine never reads these settings itself; the application
layer reads them once and passes explicit objects (formatter, stores)
down to the code that needs them.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finance_tracker.models.currency import SUPPORTED_CURRENCIES
from finance_tracker.models.expense import SystemCategory


class StorageSettings(BaseSettings):
    """Local key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_STORAGE_",
        extra="ignore"
    )

    backend: str = Field(
        default="file",
        pattern="^(memory|file)$",
        description="Key-value backend: 'memory' or 'file'"
    )
    data_path: str = Field(
        default="data/finance_tracker.json",
        description="Path of the JSON file used by the file backend"
    )
    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed file write is attempted"
    )

    @field_validator('data_path')
    @classmethod
    def validate_data_path(cls, v: str) -> str:
        """Warn if the parent directory doesn't exist (it is created on first write)."""
        parent = Path(v).expanduser().parent
        if not parent.exists():
            import warnings
            warnings.warn(
                f"Data directory {parent} does not exist yet. "
                "It will be created on the first write."
            )
        return v


class DisplaySettings(BaseSettings):
    """
    Presentation settings.

    These only affect how numbers are rendered, never how they are computed.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_DISPLAY_",
        extra="ignore"
    )

    currency_code: str = Field(
        default="EUR",
        description="ISO code of the currency used to format amounts"
    )
    default_category: SystemCategory = Field(
        default=SystemCategory.FOOD,
        description="Category preselected for new expenses"
    )

    @field_validator('currency_code')
    @classmethod
    def validate_currency_code(cls, v: str) -> str:
        """Only currencies we know a symbol for are accepted."""
        code = v.strip().upper()
        if code not in SUPPORTED_CURRENCIES:
            raise ValueError(
                f"Unsupported currency: {v}. "
                f"Supported: {', '.join(sorted(SUPPORTED_CURRENCIES))}"
            )
        return code


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
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Minimum level for structured logs"
    )

    # Wallet limits
    max_wallet_count: int = Field(
        default=6,
        ge=1,
        le=50,
        description="Maximum number of local wallets"
    )

    # Audit trail
    audit_max_events: int = Field(
        default=1000,
        ge=1,
        description="Number of newest audit events kept in storage"
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
    def display(self) -> DisplaySettings:
        return DisplaySettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "display", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
