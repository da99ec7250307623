from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Vacation Service"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    database_url: str = "postgresql+asyncpg://vacation:vacation@db:5432/vacation"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]

    # Acquisition-period rules (CLT art. 130, 134, 143)
    default_days_entitled: int = 30
    max_days_sold_per_period: int = 10
    expiration_months: int = 11

    # Dashboard thresholds
    alert_urgent_days: int = 30
    alert_warning_days: int = 60
    risk_threshold_days: int = 40


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
