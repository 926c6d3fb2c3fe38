"""Configuration settings for the Ops Hub automation core."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from environment variables (or a .env file)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["development", "test", "production"] = Field(
        default="development", validation_alias="ENVIRONMENT"
    )

    # Secrets
    encryption_key: SecretStr | None = Field(default=None, validation_alias="ENCRYPTION_KEY")
    resend_api_key: SecretStr | None = Field(default=None, validation_alias="RESEND_API_KEY")
    session_secret: SecretStr | None = Field(default=None, validation_alias="SESSION_SECRET")

    # Email
    app_name: str = Field(default="Ops Hub", validation_alias="APP_NAME")
    resend_api_url: str = Field(
        default="https://api.resend.com", validation_alias="RESEND_API_URL"
    )
    reports_from_email: str = Field(
        default="Ops Hub <noreply@opshub.app>", validation_alias="REPORTS_FROM_EMAIL"
    )
    alerts_from_email: str = Field(
        default="Ops Hub <alerts@opshub.app>", validation_alias="ALERTS_FROM_EMAIL"
    )

    # Automations
    low_cash_threshold: int = Field(
        default=500_000, description="Cents", validation_alias="LOW_CASH_THRESHOLD"
    )
    sync_interval_minutes: float = Field(default=15.0, validation_alias="SYNC_INTERVAL_MINUTES")
    low_cash_interval_minutes: float = Field(
        default=60.0, validation_alias="LOW_CASH_INTERVAL_MINUTES"
    )
    weekly_report_weekday: int = Field(
        default=0, ge=0, le=6, description="Monday = 0", validation_alias="WEEKLY_REPORT_WEEKDAY"
    )
    weekly_report_hour: int = Field(default=8, ge=0, le=23, validation_alias="WEEKLY_REPORT_HOUR")
    overdue_check_hour: int = Field(default=9, ge=0, le=23, validation_alias="OVERDUE_CHECK_HOUR")
    scheduler_timezone: str = Field(default="UTC", validation_alias="SCHEDULER_TIMEZONE")

    # HTTP
    http_timeout: float = Field(default=30.0, validation_alias="HTTP_TIMEOUT")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(default="console", validation_alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
