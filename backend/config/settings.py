"""
Centralized Settings Management using Pydantic Settings
Configuration with environment variable support.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Use .env file for local development.
    """

    # Application
    APP_NAME: str = "OneShot Form Coach API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Environment: development, staging, production")

    # CORS
    CORS_ORIGINS: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed origins"
    )
    CORS_ALLOW_CREDENTIALS: bool = False

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR, CRITICAL")
    LOG_JSON: bool = Field(default=False, description="Emit JSON logs (production)")
    LOG_FILE: Optional[str] = Field(default=None, description="Optional JSON log file path")

    # Shot capture
    SHOT_COOLDOWN_SEC: float = Field(default=2.0, ge=0, description="Minimum interval between captured shots")

    # Sessions
    IDLE_SESSION_TTL_SEC: float = Field(default=1800.0, gt=0, description="Sessions idle longer than this are dropped")
    MAX_SESSIONS: int = Field(default=500, gt=0, description="Maximum concurrently held sessions")

    # Form thresholds
    THRESHOLDS_FILE: Optional[str] = Field(default=None, description="JSON file overriding the default threshold table")

    @property
    def allowed_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore"
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Settings are loaded once per process.
    """
    return Settings()
