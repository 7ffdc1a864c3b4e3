"""Configuration package."""

from src.config.settings import (
    EngineSettings,
    LoggingSettings,
    Settings,
    get_engine_settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "EngineSettings",
    "LoggingSettings",
    "Settings",
    "get_engine_settings",
    "get_settings",
    "validate_all_settings",
]
