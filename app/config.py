"""Configuration settings for Roomie."""

import os
import secrets
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./roomie.db")

    # JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", str(90 * 24 * 60)))

    # Passwords
    BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))
    PASSWORD_RESET_EXPIRE_MINUTES: int = int(os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "10"))
    PASSWORD_RESET_DISCLOSE_UNKNOWN_EMAIL: bool = _env_bool("PASSWORD_RESET_DISCLOSE_UNKNOWN_EMAIL", "true")

    # Email
    EMAIL_BACKEND: str = os.getenv("EMAIL_BACKEND", "console")  # console, smtp
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "Roomie <no-reply@roomie.local>")
    SMTP_HOST: str = os.getenv("SMTP_HOST", "localhost")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
    SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
    SMTP_USE_TLS: bool = _env_bool("SMTP_USE_TLS", "true")
    SMTP_TIMEOUT_SECONDS: int = int(os.getenv("SMTP_TIMEOUT_SECONDS", "10"))

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if not os.getenv("JWT_SECRET_KEY"):
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if self.EMAIL_BACKEND not in ("console", "smtp"):
            errors.append(f"Unknown EMAIL_BACKEND '{self.EMAIL_BACKEND}' - falling back to console")
        if self.EMAIL_BACKEND == "smtp" and not self.SMTP_PASSWORD:
            errors.append("SMTP_PASSWORD is not set - email delivery will likely fail")
        return errors


@dataclass(frozen=True)
class AuthConfig:
    """Immutable token and reset-window settings handed to the auth services."""

    secret_key: str
    algorithm: str
    token_expire_minutes: int
    reset_token_expire_minutes: int

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthConfig":
        return cls(
            secret_key=settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM,
            token_expire_minutes=settings.JWT_EXPIRE_MINUTES,
            reset_token_expire_minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_auth_config() -> AuthConfig:
    """Get the auth configuration derived from settings."""
    return AuthConfig.from_settings(get_settings())
