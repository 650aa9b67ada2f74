"""
Application Configuration
Pydantic Settings for environment-based configuration
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

import json
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    API settings loaded from environment variables.

    Calculator policies live in dermis_billing.core.config.BillingSettings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # ============================================================================
    # Application Settings
    # ============================================================================
    ENVIRONMENT: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment: development, staging, production, testing"
    )
    DEBUG: bool = Field(default=False, description="Debug mode (NEVER enable in production)")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FILE: str | None = Field(default=None, description="Optional log file path")

    # ============================================================================
    # FastAPI Configuration
    # ============================================================================
    API_HOST: str = Field(default="0.0.0.0", description="API host")  # nosec B104
    API_PORT: int = Field(default=8000, description="API port")

    # CORS Configuration
    CORS_ORIGINS: list[str] = Field(
        default=["http://localhost:3000"],
        description="CORS allowed origins",
    )
    CORS_CREDENTIALS: bool = Field(default=True, description="Allow credentials")
    CORS_METHODS: list[str] = Field(default=["*"], description="Allowed methods")
    CORS_HEADERS: list[str] = Field(default=["*"], description="Allowed headers")

    @staticmethod
    def _parse_list_field(value: Any) -> Any:
        """Allow JSON arrays or comma-separated strings for list settings."""
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                return []
            if stripped.startswith("[") and stripped.endswith("]"):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return parsed
                except json.JSONDecodeError:
                    # Fall back to CSV parsing below when JSON parse fails
                    pass
            return [item.strip() for item in stripped.split(",") if item.strip()]
        return value

    @field_validator("CORS_ORIGINS", "CORS_METHODS", "CORS_HEADERS", mode="before")
    @classmethod
    def parse_cors_fields(cls, v: Any) -> Any:
        """Normalize CORS list fields from env strings."""
        return cls._parse_list_field(v)

    # ============================================================================
    # Helper Properties
    # ============================================================================
    @property
    def is_development(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.ENVIRONMENT.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
