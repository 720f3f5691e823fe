"""Application configuration using pydantic-settings."""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = "sqlite:///./bridge_sync.db"

    # Bridge client
    BRIDGE_TIMEOUT_SECONDS: float = 30.0
    BRIDGE_HISTORY_DAYS: int = 90

    # Connection health thresholds (independent of each other)
    STALE_SYNC_DAYS: int = 3
    STALE_TRANSACTION_DAYS: int = 14
    STALE_PENDING_DAYS: int = 8
    RATE_LIMIT_PHRASES: list[str] = [
        "make fewer requests",
        "only refreshed once every 24 hours",
        "rate limit",
    ]

    # Per-account sync fan-out
    ACCOUNT_SYNC_MAX_WORKERS: int = 4

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    @field_validator("ACCOUNT_SYNC_MAX_WORKERS")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        """Require at least one worker for the account sync pool."""
        if v < 1:
            raise ValueError("ACCOUNT_SYNC_MAX_WORKERS must be >= 1")
        return v

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
