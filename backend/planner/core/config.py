"""
Application configuration using Pydantic Settings.

Values are read from environment variables (or a local .env file).
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from planner.models.enums import Priority


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ===========================================
    # Environment
    # ===========================================
    ENVIRONMENT: Literal["local", "production"] = "local"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ===========================================
    # Server
    # ===========================================
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"]
    )

    # ===========================================
    # Scheduling engine
    # ===========================================
    # Planning horizon used by the distribution endpoint when no end date is sent
    DEFAULT_PLAN_DAYS: int = 30
    # Longest planning window accepted in a single run (inclusive days)
    MAX_PLAN_DAYS: int = 366
    # Re-check every result with the ScheduleValidator before returning it
    VALIDATE_SCHEDULES: bool = True

    # Estimated effort for tasks that arrive without an estimate
    DEFAULT_ESTIMATE_MINUTES_URGENT: int = 6 * 60
    DEFAULT_ESTIMATE_MINUTES_HIGH: int = 4 * 60
    DEFAULT_ESTIMATE_MINUTES_MEDIUM: int = 3 * 60
    DEFAULT_ESTIMATE_MINUTES_LOW: int = 2 * 60

    # ===========================================
    # Task distribution (legacy response shape)
    # ===========================================
    DISTRIBUTION_ASSIGNEE: str = "Usuario Principal"

    def default_estimate_minutes(self, priority: Priority) -> int:
        """Fallback estimate for a task of the given priority."""
        return {
            Priority.URGENT: self.DEFAULT_ESTIMATE_MINUTES_URGENT,
            Priority.HIGH: self.DEFAULT_ESTIMATE_MINUTES_HIGH,
            Priority.MEDIUM: self.DEFAULT_ESTIMATE_MINUTES_MEDIUM,
            Priority.LOW: self.DEFAULT_ESTIMATE_MINUTES_LOW,
        }.get(priority, self.DEFAULT_ESTIMATE_MINUTES_MEDIUM)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are loaded only once.
    """
    return Settings()
