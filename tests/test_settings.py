"""Tests for configuration loading."""

import pytest
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from src.config import (
    EngineSettings,
    LoggingSettings,
    get_settings,
    validate_all_settings,
)


class TestEngineSettings:
    """Tests for EngineSettings."""

    def test_defaults(self):
        """Test default thresholds."""
        settings = EngineSettings()
        assert settings.timezone == "UTC"
        assert settings.default_category == "Uncategorized"
        assert settings.distribution_edges == [100, 500, 1000, 5000, 10000]
        assert settings.trend_increase_factor == 1.1
        assert settings.trend_decrease_factor == 0.9
        assert settings.violation_grace_days == 30
        assert settings.upcoming_dues_horizon_days == 30

    def test_environment_override(self, monkeypatch):
        """Test that FINANCE_ variables override defaults."""
        monkeypatch.setenv("FINANCE_TIMEZONE", "Asia/Kolkata")
        monkeypatch.setenv("FINANCE_TOP_EXPENSES_LIMIT", "5")
        settings = EngineSettings()
        assert settings.timezone == "Asia/Kolkata"
        assert settings.tzinfo == ZoneInfo("Asia/Kolkata")
        assert settings.top_expenses_limit == 5

    def test_unknown_timezone_rejected(self):
        """Test that an unknown zone fails validation."""
        with pytest.raises(ValidationError):
            EngineSettings(timezone="Mars/Olympus_Mons")

    def test_distribution_edges_must_increase(self):
        """Test that edges must be strictly increasing."""
        with pytest.raises(ValidationError):
            EngineSettings(distribution_edges=[500, 100])
        with pytest.raises(ValidationError):
            EngineSettings(distribution_edges=[])

    def test_trend_factors_bounded(self):
        """Test that the decrease factor stays below 1."""
        with pytest.raises(ValidationError):
            EngineSettings(trend_decrease_factor=1.2)


class TestLoggingSettings:
    """Tests for LoggingSettings."""

    def test_level_is_normalized(self):
        """Test that level names are upper-cased."""
        assert LoggingSettings(level="debug").level == "DEBUG"

    def test_unknown_level_rejected(self):
        """Test that unknown levels fail validation."""
        with pytest.raises(ValidationError):
            LoggingSettings(level="verbose")


class TestSettingsContainer:
    """Tests for the root settings."""

    def test_sub_settings(self):
        """Test that sub-settings are reachable."""
        settings = get_settings()
        assert isinstance(settings.engine, EngineSettings)
        assert isinstance(settings.logging, LoggingSettings)

    def test_validate_all_settings(self):
        """Test that default settings validate."""
        results = validate_all_settings()
        assert results["engine"] is True
        assert results["logging"] is True
