"""Configuration settings for Forum Auth."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self) -> None:
        # Database
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./forum_auth.db")

        # Session tokens
        self.JWT_SECRET: str = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_DAYS: int = int(os.getenv("JWT_EXPIRE_DAYS", "7"))

        # Passwords and reset tokens
        self.BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "10"))
        self.RESET_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("RESET_TOKEN_EXPIRE_MINUTES", "60"))
        self.RESET_URL_BASE: str = os.getenv("RESET_URL_BASE", "http://localhost:5173/reset-password")
        self.EXPOSE_RESET_TOKEN: bool = _env_flag("EXPOSE_RESET_TOKEN")

        # Application
        self.APP_ENV: str = os.getenv("APP_ENV", "development")
        self.DEBUG: bool = _env_flag("DEBUG")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        self._generated_secret = not self.JWT_SECRET
        if self._generated_secret:
            self.JWT_SECRET = secrets.token_urlsafe(32)

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @property
    def expose_reset_token(self) -> bool:
        """Whether forgot-password may echo the raw reset token. Never true in production."""
        return self.EXPOSE_RESET_TOKEN and not self.is_production

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        warnings = []
        if self._generated_secret:
            warnings.append("JWT_SECRET is not set - using auto-generated key (not persistent across restarts)")
        if self.EXPOSE_RESET_TOKEN and self.is_production:
            warnings.append("EXPOSE_RESET_TOKEN is ignored when APP_ENV=production")
        elif self.EXPOSE_RESET_TOKEN:
            warnings.append("EXPOSE_RESET_TOKEN is enabled - reset tokens are returned in API responses")
        if self.BCRYPT_ROUNDS < 4 or self.BCRYPT_ROUNDS > 31:
            warnings.append(f"BCRYPT_ROUNDS={self.BCRYPT_ROUNDS} is outside bcrypt's 4-31 range")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
