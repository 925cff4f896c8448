"""
Application Configuration

Centralized configuration management using Pydantic settings.
Handles environment variables, credentials and pipeline tuning.
"""

from typing import Optional
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from jobpipeline.core.exceptions import ConfigMissingError


class Settings(BaseSettings):
    """Pipeline settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "LinkedIn Job Pipeline"
    VERSION: str = "1.0.0"
    DEBUG: bool = Field(False)
    LOG_LEVEL: str = Field("INFO")
    LOG_FILE: Optional[str] = Field(None)

    # LinkedIn credentials
    LINKEDIN_EMAIL: Optional[str] = Field(None)
    LINKEDIN_PASSWORD: Optional[str] = Field(None)

    # Browser
    HEADLESS_BROWSER: bool = Field(True)
    CHROME_EXECUTABLE_PATH: Optional[str] = Field(None)
    USER_DATA_DIR: str = Field("./chrome-profile")

    # Redis
    REDIS_HOST: str = Field("localhost")
    REDIS_PORT: int = Field(6379)
    REDIS_PASSWORD: Optional[str] = Field(None)
    REDIS_DB: int = Field(0)
    REDIS_CACHE_TTL: int = Field(3600, ge=1)
    REDIS_JOB_EXISTS_TTL: int = Field(300, ge=1)

    # Backend API
    API_BASE_URL: str = Field("")
    API_KEY: str = Field("")
    API_TIMEOUT_SECONDS: float = Field(30.0, gt=0, le=30)

    # Pacing
    DELAY_BETWEEN_REQUESTS: float = Field(2.0, ge=0)
    CONCURRENT_WORKERS: int = Field(1, ge=1)

    def require_pipeline(self) -> None:
        """Fail fast when the backend cannot be reached at all."""
        missing = [
            name for name in ("API_BASE_URL", "API_KEY")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigMissingError(missing)


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
