"""
Runtime configuration for the Clinic Slot Scheduler.

Loaded from environment variables (prefix ``SCHEDULER_``) or a local .env file.
"""

import json
from decimal import Decimal
from functools import lru_cache
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchedulerSettings(BaseSettings):
    """Settings for storage, alternative search and billing lookups."""

    # --- Storage ---
    DATABASE_URL: str = Field("sqlite:///./clinic_scheduler.db", description="SQLAlchemy database URL")
    DB_ECHO: bool = Field(False, description="Log every SQL statement (debug only)")
    DB_POOL_SIZE: int = Field(10, description="Connection pool size (non-SQLite)")
    DB_MAX_OVERFLOW: int = Field(20, description="Connections allowed above the pool size")
    DB_POOL_RECYCLE: int = Field(300, description="Recycle connections after N seconds")
    DB_POOL_TIMEOUT: int = Field(30, description="Seconds to wait for a pooled connection")
    DB_SLOW_QUERY_THRESHOLD: Optional[float] = Field(1.0, description="Warn on queries slower than N seconds")

    # --- Alternative Search ---
    ALTERNATIVES_LIMIT: int = Field(10, ge=1, description="Maximum alternatives returned")
    ALTERNATIVES_WINDOW_DAYS: int = Field(14, ge=1, description="Days searched, today inclusive")
    ALTERNATIVE_SLOTS_PER_OPTION: int = Field(3, ge=1, description="Slots shown per alternative")
    ALTERNATIVES_TIMEOUT_SECONDS: Optional[float] = Field(None, description="Stop searching after N seconds")

    # --- Billing Collaborator ---
    COPAY_SCHEDULE: Dict[str, Decimal] = Field(
        default_factory=dict,
        description="Copay by appointment type, e.g. {\"consultation\": 50}"
    )

    LOG_LEVEL: str = Field("INFO")

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULER_",
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("COPAY_SCHEDULE", mode="before")
    @classmethod
    def parse_copay_schedule(cls, value):
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> SchedulerSettings:
    """Cached settings instance, so the environment is read once."""
    return SchedulerSettings()
