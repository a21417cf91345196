"""Configuration settings for PrepTrack."""

from functools import lru_cache
from typing import Dict, List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PT_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Application
    app_name: str = "PrepTrack"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Database
    # Default to Postgres; tests may override via PT_DB_URL
    db_url: str = "postgresql+asyncpg://localhost/preptrack"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    operation_timeout_seconds: float = 10.0

    # Auth
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "preptrack"
    jwt_audience: str = "preptrack"
    jwt_expire_minutes: int = 60 * 24

    # Credential map: username -> secret, e.g. PT_AUTH_USERS='{"alice": "pw"}'
    auth_users: Dict[str, str] = {}
    admin_usernames: List[str] = []

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Rate Limiting
    rate_limit_requests: int = 120
    rate_limit_window: int = 60  # seconds

    @field_validator("auth_users")
    @classmethod
    def _validate_auth_users(cls, value: Dict[str, str]) -> Dict[str, str]:
        cleaned: Dict[str, str] = {}
        for username, secret in value.items():
            name = username.strip()
            if not name:
                raise ValueError("auth_users contains an empty username")
            if not secret:
                raise ValueError(f"auth_users has an empty secret for '{name}'")
            cleaned[name] = secret
        return cleaned

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
