"""
Application settings and configuration management using Pydantic BaseSettings.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .environment import Environment


class DatabaseConfig(BaseSettings):
    """Database configuration settings."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    path: str = Field(default="spendwise.db", validation_alias="DATABASE_PATH")
    connection_timeout: float = Field(default=30.0, validation_alias="DATABASE_TIMEOUT")


class SecurityConfig(BaseSettings):
    """Security configuration settings."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    secret_key: str = Field(
        default="dev-secret-key-change-in-production-0000", validation_alias="SECRET_KEY"
    )
    encryption_key: Optional[str] = Field(default=None, validation_alias="ENCRYPTION_KEY")
    bcrypt_rounds: int = Field(default=12, ge=4, le=15, validation_alias="BCRYPT_ROUNDS")
    session_cookie_name: str = Field(
        default="spendwise_session", validation_alias="SESSION_COOKIE_NAME"
    )
    session_max_age_seconds: int = Field(
        default=60 * 60 * 24 * 30, validation_alias="SESSION_MAX_AGE_SECONDS"
    )

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if not v:
            import secrets

            return secrets.token_urlsafe(32)
        if len(v) < 32:
            raise ValueError("Secret key must be at least 32 characters long")
        return v


class RateLimitConfig(BaseSettings):
    """API rate limiting configuration."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    window_ms: int = Field(default=60_000, gt=0, validation_alias="API_RATE_LIMIT_WINDOW_MS")
    max_requests: int = Field(default=120, gt=0, validation_alias="API_RATE_LIMIT_MAX_REQUESTS")


class AutomationConfig(BaseSettings):
    """Background automation (recurring materialization) configuration."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    interval_ms: int = Field(default=5 * 60 * 1000, gt=0, validation_alias="AUTOMATION_INTERVAL_MS")
    restart_delay_ms: int = Field(
        default=10_000, ge=0, validation_alias="AUTOMATION_RESTART_DELAY_MS"
    )
    disabled: bool = Field(default=False, validation_alias="AUTOMATION_DISABLED")

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000

    @property
    def restart_delay_seconds(self) -> float:
        return self.restart_delay_ms / 1000


class AppConfig(BaseSettings):
    """Application configuration settings."""

    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")

    environment: Environment = Field(default=Environment.DEVELOPMENT, validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING


class Settings(BaseSettings):
    """Centralized application settings manager using Pydantic BaseSettings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    automation: AutomationConfig = Field(default_factory=AutomationConfig)
    app: AppConfig = Field(default_factory=AppConfig)

    def __init__(self, **kwargs):
        self._load_env_file()
        super().__init__(**kwargs)

    @staticmethod
    def _load_env_file() -> None:
        """Load environment variables from .env file."""
        env_file = Path(".env")
        if env_file.exists():
            from dotenv import load_dotenv

            load_dotenv(env_file)
