from pydantic_settings import BaseSettings
from pydantic import field_validator
from decimal import Decimal
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./sellerpay.db"

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes
    DB_ISOLATION_LEVEL: str = "READ COMMITTED"  # PostgreSQL only, ignored for SQLite

    # App Settings
    APP_NAME: str = "Marketplace Seller Payouts"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Commission Settings
    DEFAULT_COMMISSION_RATE: Decimal = Decimal("0.15")  # Platform default, 15%
    DEFAULT_MINIMUM_PAYOUT_THRESHOLD: int = 0  # Smallest currency unit (cents)

    # Payout creation duplicate resolution
    PAYOUT_CREATE_MAX_RETRIES: int = 5  # Lookup attempts after a duplicate key
    PAYOUT_CREATE_RETRY_DELAY_MS: int = 10  # First backoff delay, doubles per attempt

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('DEFAULT_COMMISSION_RATE')
    @classmethod
    def validate_commission_rate(cls, v):
        if v < 0 or v > 1:
            raise ValueError("DEFAULT_COMMISSION_RATE must be between 0 and 1")
        return v

    @field_validator('PAYOUT_CREATE_MAX_RETRIES')
    @classmethod
    def validate_max_retries(cls, v):
        if v < 1:
            raise ValueError("PAYOUT_CREATE_MAX_RETRIES must be at least 1")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
