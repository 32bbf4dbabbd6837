# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""
Application Settings

Configuration management using pydantic-settings.
Supports environment variables and .env files.
"""

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Session store configuration."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: str = Field(
        default="sqlite+aiosqlite:///./sessionguard.db",
        description="SQLAlchemy async connection URL (sqlite+aiosqlite or postgresql+asyncpg)",
    )
    pool_size: int = Field(default=10, ge=1, le=100)
    max_overflow: int = Field(default=20, ge=0, le=100)
    echo: bool = Field(default=False, description="Echo SQL queries")


class SessionSettings(BaseSettings):
    """Session lifecycle, retention and risk configuration."""

    model_config = SettingsConfigDict(env_prefix="SESSION_")

    # Lifecycle
    retention_hours: int = Field(
        default=24,
        ge=1,
        description="Absolute session lifetime, idle sweep window and purge window",
    )
    max_concurrent_sessions: int = Field(default=5, ge=1, le=100)
    activity_log_limit: int = Field(default=100, ge=1)
    detail_activity_limit: int = Field(default=50, ge=1)

    # Background cleanup
    cleanup_interval_seconds: float = Field(default=300.0, gt=0)

    # Store access
    store_timeout_seconds: float = Field(default=10.0, gt=0)
    max_update_retries: int = Field(default=3, ge=1, le=20)

    # Risk
    admin_roles: list[str] = Field(default=["administrator", "admin"])
    risk_low_threshold: int = Field(default=25, ge=0, le=100)
    risk_medium_threshold: int = Field(default=50, ge=0, le=100)
    risk_high_threshold: int = Field(default=75, ge=0, le=100)

    # Termination reasons that land in the "terminated" status instead of
    # "logged_out". Empty keeps the binary timeout/other mapping.
    terminated_reasons: list[str] = Field(default_factory=list)

    @field_validator("admin_roles", "terminated_reasons")
    @classmethod
    def normalize_names(cls, v: list[str]) -> list[str]:
        return [item.strip().lower() for item in v if item and item.strip()]

    @model_validator(mode="after")
    def validate_thresholds(self) -> "SessionSettings":
        if not (
            self.risk_low_threshold < self.risk_medium_threshold < self.risk_high_threshold
        ):
            raise ValueError(
                "Risk thresholds must be strictly increasing "
                f"(low={self.risk_low_threshold}, medium={self.risk_medium_threshold}, "
                f"high={self.risk_high_threshold})"
            )
        return self

    @property
    def retention_window(self) -> timedelta:
        return timedelta(hours=self.retention_hours)


class ObservabilitySettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="json")  # json or human

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in {"json", "human"}:
            raise ValueError("Log format must be 'json' or 'human'")
        return fmt


class Settings(BaseSettings):
    """
    Main application settings.

    Usage:
        settings = get_settings()
        print(settings.sessions.retention_hours)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="SessionGuard")
    app_version: str = Field(default="1.0.0")
    environment: str = Field(default="development")  # development, staging, production

    # Sub-settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    sessions: SessionSettings = Field(default_factory=SessionSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for the application lifetime.
    """
    return Settings()


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "Settings",
    "DatabaseSettings",
    "SessionSettings",
    "ObservabilitySettings",
    "get_settings",
]
