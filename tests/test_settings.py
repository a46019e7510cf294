"""
Tests for configuration and formatting.
"""

import pytest

from pydantic import ValidationError

from finance_tracker.config import (
    AppSettings,
    DisplaySettings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)
from finance_tracker.models.expense import SystemCategory
from finance_tracker.presentation import CurrencyFormatter


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestStorageSettings:
    """Tests for FINANCE_STORAGE_* settings."""

    def test_backend_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("FINANCE_STORAGE_DATA_PATH", str(tmp_path / "data.json"))
        settings = StorageSettings()
        assert settings.backend == "memory"
        assert settings.data_path == str(tmp_path / "data.json")

    def test_unknown_backend_rejected(self, monkeypatch):
        monkeypatch.setenv("FINANCE_STORAGE_BACKEND", "s3")
        with pytest.raises(ValidationError):
            StorageSettings()

    def test_write_attempts_bounded(self):
        with pytest.raises(ValidationError):
            StorageSettings(write_attempts=0)


class TestDisplaySettings:
    """Tests for FINANCE_DISPLAY_* settings."""

    def test_currency_upper_cased(self, monkeypatch):
        monkeypatch.setenv("FINANCE_DISPLAY_CURRENCY_CODE", "usd")
        assert DisplaySettings().currency_code == "USD"

    def test_unsupported_currency_rejected(self):
        with pytest.raises(ValidationError):
            DisplaySettings(currency_code="XYZ")

    def test_default_category(self, monkeypatch):
        monkeypatch.setenv("FINANCE_DISPLAY_DEFAULT_CATEGORY", "rent")
        assert DisplaySettings().default_category == SystemCategory.RENT


class TestAppSettings:
    """Tests for application settings."""

    def test_defaults(self):
        settings = AppSettings()
        assert settings.max_wallet_count == 6
        assert settings.audit_max_events == 1000
        assert settings.log_level in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            AppSettings(log_level="LOUD")


class TestSettingsAggregate:
    """Tests for get_settings() and validate_all_settings()."""

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_validate_all_settings_reports_errors(self, monkeypatch):
        monkeypatch.setenv("FINANCE_DISPLAY_CURRENCY_CODE", "XYZ")
        results = validate_all_settings()
        assert results["display"] is False
        assert "Unsupported currency" in results["display_error"]
        assert results["app"] is True


class TestCurrencyFormatter:
    """Tests for amount formatting."""

    def test_thousands_separator(self):
        assert CurrencyFormatter("EUR").format(1234.5) == "€1,234.50"

    def test_negative_amount(self):
        assert CurrencyFormatter("USD").format(-5) == "-$5.00"

    def test_unknown_code_uses_code_as_symbol(self):
        assert CurrencyFormatter("xyz").format(1) == "XYZ 1.00"

    def test_decimals(self):
        assert CurrencyFormatter("JPY", decimals=0).format(1500) == "¥1,500"

    def test_from_settings(self):
        formatter = CurrencyFormatter.from_settings(DisplaySettings(currency_code="GBP"))
        assert formatter.currency_code == "GBP"
        assert formatter.format(3) == "£3.00"
