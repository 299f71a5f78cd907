"""
Environment configuration for the spa booking engine.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

import json
from datetime import time
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Application configuration
    APP_NAME: str = Field(default="Spa Booking Engine", alias="PROJECT_NAME")
    API_VERSION: str = Field(default="v1", alias="PROJECT_VERSION")
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    TIMEZONE: str = "UTC"
    CORS_ORIGINS: List[str] = Field(default=["*"], alias="BACKEND_CORS_ORIGINS")

    # Database configuration
    DATABASE_URL: str = "sqlite:///./spa.db"
    DATABASE_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_POOL_OVERFLOW: int = 10

    # Redis / cache configuration
    CACHE_BACKEND: str = "memory"
    CACHE_NAMESPACE: str = "availability"
    REDIS_URL: str = "redis://localhost:6379/0"

    # Slot grid
    SLOT_GRANULARITY_MINUTES: int = 30
    BUSINESS_HOURS_START: time = time(9, 0)
    BUSINESS_HOURS_END: time = time(19, 0)
    DEFAULT_SERVICE_DURATION_MINUTES: int = 60

    # Booking window
    MAX_ADVANCE_BOOKING_DAYS: int = 90
    MIN_ADVANCE_BOOKING_HOURS: int = 2
    BOOKING_INITIAL_STATUS: str = "confirmed"
    ENFORCE_STAFF_SPECIALIZATION: bool = True

    # Date summaries
    DEFAULT_SUMMARY_DAYS: int = 14
    MAX_SUMMARY_DAYS: int = 90

    # Cache lifetimes
    DATE_SUMMARY_CACHE_TTL_SECONDS: int = 300
    SLOT_CACHE_TTL_SECONDS: int = 120

    # Monitoring and logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = False

    # Validators
    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS_ORIGINS from string to list"""
        if isinstance(v, str):
            # Handle JSON string format from .env
            if v.startswith('[') and v.endswith(']'):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator('BUSINESS_HOURS_START', 'BUSINESS_HOURS_END', mode='before')
    @classmethod
    def parse_business_hours(cls, v: Union[str, time]) -> time:
        """Accept 'HH:MM' strings for business hours"""
        if isinstance(v, str):
            hours, _, minutes = v.strip().partition(":")
            return time(int(hours), int(minutes or 0))
        return v

    @field_validator('SLOT_GRANULARITY_MINUTES')
    @classmethod
    def validate_granularity(cls, v: int) -> int:
        if v < 5 or (24 * 60) % v != 0:
            raise ValueError("SLOT_GRANULARITY_MINUTES must be >= 5 and divide a day evenly")
        return v

    @field_validator('BOOKING_INITIAL_STATUS')
    @classmethod
    def validate_initial_status(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("pending", "confirmed"):
            raise ValueError("BOOKING_INITIAL_STATUS must be 'pending' or 'confirmed'")
        return v

    @field_validator('CACHE_BACKEND')
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("memory", "redis"):
            raise ValueError("CACHE_BACKEND must be 'memory' or 'redis'")
        return v

    @model_validator(mode='after')
    def validate_business_hours(self) -> "Settings":
        if self.BUSINESS_HOURS_START >= self.BUSINESS_HOURS_END:
            raise ValueError("BUSINESS_HOURS_START must be before BUSINESS_HOURS_END")
        return self

    # Helpers
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() in ("development", "dev", "local")

    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    def get_database_url(self) -> str:
        return self.DATABASE_URL


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
