"""
Configuration Management for the Finance Reporting Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable thresholds are centralized here.
Formulas and report rules read them from get_settings() instead of
hard-coding numbers at each call site.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Aggregation, trend and report rule configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Time handling
    timezone: str = Field(
        default="UTC",
        description="Reporting timezone; bare dates are midnight in this zone"
    )

    # Labels and display
    default_category: str = Field(
        default="Uncategorized",
        description="Category used when a record has none"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Currency symbol used in insights and HTML export"
    )

    # Aggregation
    distribution_edges: list[int] = Field(
        default=[100, 500, 1000, 5000, 10000],
        description="Upper edges of the amount distribution buckets"
    )
    top_expenses_limit: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Number of expenses listed in a monthly report"
    )
    category_trend_limit: int = Field(
        default=6,
        ge=1,
        description="Number of category trend series in analytics reports"
    )

    # Trend classification
    trend_increase_factor: float = Field(
        default=1.1,
        gt=1.0,
        description="recent > earlier * factor means increasing"
    )
    trend_decrease_factor: float = Field(
        default=0.9,
        gt=0.0,
        lt=1.0,
        description="recent < earlier * factor means decreasing"
    )
    trend_window_cap: int = Field(
        default=3,
        ge=1,
        description="Maximum number of points averaged at each end of a series"
    )

    # Obligations
    violation_grace_days: int = Field(
        default=30,
        ge=0,
        description="Days after a violation before its fine is due"
    )
    upcoming_dues_horizon_days: int = Field(
        default=30,
        ge=1,
        description="Look-ahead window for upcoming dues"
    )
    urgent_due_days: int = Field(
        default=7,
        ge=0,
        description="Dues within this many days are flagged high urgency"
    )

    # Recommendation rules (percentages)
    expense_ratio_alert_percent: float = Field(
        default=80.0,
        ge=0.0,
        description="Expense-to-income ratio that triggers a recommendation"
    )
    category_concentration_percent: float = Field(
        default=30.0,
        ge=0.0,
        le=100.0,
        description="Share of spend in one category that triggers a recommendation"
    )
    budget_warning_percent: float = Field(
        default=80.0,
        ge=0.0,
        le=100.0,
        description="Budget usage above which the budget status is a warning"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject unknown IANA zone names at startup."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @field_validator('distribution_edges')
    @classmethod
    def validate_edges(cls, v: list[int]) -> list[int]:
        """Edges must be positive and strictly increasing."""
        if not v:
            raise ValueError("At least one distribution edge is required")
        if any(edge <= 0 for edge in v):
            raise ValueError("Distribution edges must be positive")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("Distribution edges must be strictly increasing")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        """The reporting timezone as a tzinfo object."""
        return ZoneInfo(self.timezone)


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Root log level"
    )
    render_json: bool = Field(
        default=True,
        description="Render logs as JSON (False renders for the console)"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {v}")
        return level


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

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )

    # Sub-settings are loaded lazily so a broken section only fails when used

    @property
    def engine(self) -> EngineSettings:
        return EngineSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


@lru_cache()
def get_engine_settings() -> EngineSettings:
    """Engine settings, cached separately because every formula reads them."""
    return get_settings().engine


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries describing failures.
    """
    results: dict[str, object] = {}

    settings = get_settings()

    for name in ("engine", "logging"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
