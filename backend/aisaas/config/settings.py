"""
Application Settings for the AI SaaS backend

Centralized configuration using Pydantic Settings with .env support.
All environment variables are validated at startup.
"""

from functools import lru_cache
from typing import Dict, Optional
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Billing runs on Polar: POLAR_WEBHOOK_SECRET signs incoming webhooks and
    the POLAR_PRODUCT_* variables map Polar product IDs to plan names.
    """

    # Application Settings
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # CORS Configuration
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration (SQLModel/SQLAlchemy)
    database_url: Optional[str] = None
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_echo: bool = False

    # Identity tokens (issued by the auth provider, verified here)
    auth_jwt_secret: Optional[str] = None
    auth_jwt_issuer: Optional[str] = None
    auth_jwt_audience: Optional[str] = None

    # Polar billing
    polar_webhook_secret: Optional[str] = None
    polar_product_free: Optional[str] = None
    polar_product_pro: Optional[str] = None
    polar_product_startup: Optional[str] = None

    # Transactional email (Resend)
    resend_api_key: Optional[str] = None
    resend_sender_email: str = "noreply@example.com"
    resend_api_url: str = "https://api.resend.com/emails"
    email_timeout_seconds: float = 10.0

    # Operational endpoints
    admin_api_key: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def normalize_database_url(self) -> "Settings":
        """Rewrite plain PostgreSQL URLs to the asyncpg driver."""
        url = self.database_url
        if url:
            if url.startswith("postgresql://"):
                self.database_url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgres://"):
                self.database_url = url.replace("postgres://", "postgresql+asyncpg://", 1)
        return self

    @property
    def product_plan_map(self) -> Dict[str, str]:
        """Static Polar product ID -> plan name mapping (unset products skipped)."""
        mapping = {
            self.polar_product_free: "free",
            self.polar_product_pro: "pro",
            self.polar_product_startup: "startup",
        }
        return {product_id: plan for product_id, plan in mapping.items() if product_id}

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export for direct import
settings = get_settings()
