"""Configuration package."""

from src.config.settings import (
    AppSettings,
    AuditSettings,
    DatabaseSettings,
    ImportSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "AuditSettings",
    "DatabaseSettings",
    "ImportSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
