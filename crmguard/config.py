"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


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
    api_port: int = 8000
    
    # ==========================================================================
    # Session tokens
    # ==========================================================================
    
    jwt_secret_key: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    session_token_expire_minutes: int = 30
    
    # ==========================================================================
    # Dynamic permissions
    # ==========================================================================
    
    # Slow stores fall back to the static role table after this long
    permission_fetch_timeout_seconds: float = 5.0
    
    # YAML grant files seeded into the permission store at startup
    grants_dir: str = ""
    
    # ==========================================================================
    # Optional Services
    # ==========================================================================
    
    sentry_dsn: str = ""
    
    # ==========================================================================
    # Helpers
    # ==========================================================================
    
    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
