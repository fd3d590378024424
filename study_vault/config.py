"""
Application configuration using Pydantic Settings.

Centralizes all environment variables and app settings.
Using Pydantic BaseSettings gives us validation and type safety for config.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Used only when JWT_SECRET is not configured; main.py warns loudly at startup.
DEV_JWT_SECRET = "dev-secret-key-change-me"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    All sensitive/configurable values should live here.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars not defined here
    )

    # Application
    app_name: str = "Study AI Vault API"
    environment: str = "development"
    debug: bool = False
    cors_origins: str = "*"

    # MongoDB - Motor (async driver) connection string
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_database: str = "study_ai_vault"

    # JWT - HS256 tokens issued by /api/auth/signup and /api/auth/signin
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

    @field_validator("jwt_secret", mode="before")
    @classmethod
    def strip_jwt_secret(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not isinstance(v, str):
            return v
        return v.strip() or None

    # Passwords and account lockout
    bcrypt_rounds: int = 12
    max_login_attempts: int = 5
    lock_minutes: int = 15

    # File upload - local storage paths
    upload_dir: str = "uploads/pdfs"
    max_upload_size_mb: int = 50
    avatar_dir: str = "uploads/avatars"
    max_avatar_size_mb: int = 5

    # Listing pagination
    default_page_size: int = 20
    max_page_size: int = 100

    @property
    def signing_key(self) -> str:
        return self.jwt_secret or DEV_JWT_SECRET

    @property
    def allowed_origins(self) -> List[str]:
        """Parse comma-separated CORS_ORIGINS into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings instance.
    Using lru_cache avoids re-reading .env on every request.
    """
    return Settings()
