"""
Application configuration.

Loads settings from environment variables with sensible defaults.
The JWT secret is the one setting without a silent default: production
refuses to start without it.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from venuefinder.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Development-only signing secret. Never used when ENVIRONMENT=production.
DEV_JWT_SECRET = "secret123"


class Settings(BaseSettings):
    """Application settings loaded from environment."""
    
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")
    
    # ==========================================================================
    # Environment
    # ==========================================================================
    
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    
    # ==========================================================================
    # API Server
    # ==========================================================================
    
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: str = "http://localhost:3000"
    
    # ==========================================================================
    # Authentication
    # ==========================================================================
    
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 30 * 24 * 60
    
    # ==========================================================================
    # Listing
    # ==========================================================================
    
    default_page_limit: int = 10
    nested_page_limit: int = 25
    max_page_limit: int | None = None  # None keeps page size unbounded
    
    # ==========================================================================
    # Optional Services
    # ==========================================================================
    
    sentry_dsn: str = ""
    
    # ==========================================================================
    # Helpers
    # ==========================================================================
    
    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
    
    @property
    def is_production(self) -> bool:
        return self.environment == "production"
    
    def resolve_jwt_secret(self) -> str:
        """
        Return the secret used to sign and verify tokens.
        
        Raises:
            ConfigurationError: JWT_SECRET is unset in production
        """
        if self.jwt_secret:
            return self.jwt_secret
        if self.is_production:
            raise ConfigurationError("JWT_SECRET must be set in production")
        logger.warning(
            f"JWT_SECRET not set - using the insecure development secret ({self.environment} mode)"
        )
        return DEV_JWT_SECRET


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_jwt_secret() -> str:
    """Resolve the signing secret once per process."""
    return get_settings().resolve_jwt_secret()
