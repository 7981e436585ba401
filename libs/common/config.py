from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "test", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    APP_NAME: str = "Noor"
    FRONTEND_URL: str = "http://localhost:3000"
    SUPPORT_EMAIL: str = "support@noor.ae"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "https://noor.ae",
        "https://www.noor.ae",
    ]

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth (tokens are issued by the auth provider, we only verify them)
    JWT_SECRET: str = "test-jwt-secret"
    JWT_ALGORITHM: str = "HS256"
    ADMIN_ROLES: list[str] = ["admin", "service_role"]

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_API_BASE: str = "https://api.stripe.com/v1"
    STRIPE_CURRENCY: str = "aed"
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    # Redis (arq worker, shared rate limit storage)
    REDIS_URL: str = "redis://localhost:6379/0"
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # Email (SMTP relay)
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    DEFAULT_FROM_EMAIL: str = "orders@noor.ae"
    DEFAULT_FROM_NAME: str = "Noor"

    # Store rules
    SHIPPING_FLAT_RATE: Decimal = Decimal("10")
    FREE_SHIPPING_THRESHOLD: Decimal = Decimal("200")
    TAX_RATE: Decimal = Decimal("0.10")
    RETURN_WINDOW_DAYS: int = 30
    LOW_STOCK_THRESHOLD: int = 5

    # Accounts
    INVITATION_EXPIRY_DAYS: int = 7

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
