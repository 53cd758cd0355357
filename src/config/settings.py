"""
Configuration Management for Syphon Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Relational ledger store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    url: str = Field(
        default="sqlite:///syphon.db",
        description="SQLAlchemy database URL"
    )
    echo: bool = Field(
        default=False,
        description="Log every SQL statement"
    )

    @field_validator('url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Reject obviously malformed URLs before the engine sees them."""
        if "://" not in v:
            raise ValueError(f"Not a database URL: {v}")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class ImportSettings(BaseSettings):
    """CSV statement import configuration."""

    model_config = SettingsConfigDict(
        env_prefix="IMPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    retention_days: int = Field(
        default=90,
        ge=1,
        le=3650,
        description="Rows older than this many days are dropped on import"
    )
    max_rows: int = Field(
        default=10000,
        ge=1,
        description="Maximum number of data rows accepted in one import"
    )


class AuditSettings(BaseSettings):
    """Audit trail configuration."""

    model_config = SettingsConfigDict(
        env_prefix="AUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    persist_events: bool = Field(
        default=True,
        description="Also write audit events to the audit_events table"
    )


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
    service_name: str = Field(
        default="syphon-app",
        description="Service name reported by the health check"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Version reported by the health check"
    )

    # New-user defaults
    default_currency: str = Field(
        default="GBP",
        min_length=3,
        max_length=3,
        description="Currency for users whose country is unknown"
    )
    default_timezone: str = Field(
        default="Europe/London",
        description="Timezone assigned to new users"
    )

    # Listing limits
    max_page_size: int = Field(
        default=500,
        ge=1,
        le=5000,
        description="Upper bound for ?limit= on list endpoints"
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
    def database(self) -> DatabaseSettings:
        return DatabaseSettings()

    @property
    def imports(self) -> ImportSettings:
        return ImportSettings()

    @property
    def audit(self) -> AuditSettings:
        return AuditSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}
    settings = get_settings()

    for name in ("database", "imports", "audit", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
