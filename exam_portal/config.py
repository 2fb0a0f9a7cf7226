from __future__ import annotations

import sys
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings


_DEFAULT_SESSION_SECRET = "exam-portal-secret-key-change-in-production"


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./data/exam_portal.db"
    log_sql: bool = False
    db_timeout_seconds: int = 15

    # Server
    environment: str = "development"
    log_level: str = "info"
    log_format: str = "json"
    allow_cors_origins: List[str] = ["*"]

    # Sessions
    session_secret: str = _DEFAULT_SESSION_SECRET
    session_ttl_minutes: int = 1440  # 24 hours, absolute

    # Admin passwords
    bcrypt_rounds: int = 10
    admin_username: str = "admin"
    admin_password: str = "admin123"

    # Rate limiting
    rate_limit_enabled: bool = True
    login_rate_limit: str = "30/minute"
    login_max_attempts: int = 5
    login_window_minutes: int = 15

    # Materials
    upload_dir: str = "./uploads"

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_bcrypt_rounds(cls, v: int) -> int:
        if v < 10:
            raise ValueError("bcrypt_rounds must be at least 10.")
        return v

    @field_validator("session_secret")
    @classmethod
    def validate_session_secret(cls, v: str, info) -> str:
        """Refuse to start in production with the default session secret."""
        env = info.data.get("environment", "development")
        if env != "development" and v == _DEFAULT_SESSION_SECRET:
            print(
                "\n🚨 FATAL: EXAMPORTAL_SESSION_SECRET is set to the default value.\n"
                "   Set EXAMPORTAL_SESSION_SECRET to a strong random string before "
                "running in production.\n",
                file=sys.stderr,
            )
            raise ValueError(
                "Session secret must be changed from default in non-development environments. "
                "Set EXAMPORTAL_SESSION_SECRET env var."
            )
        return v

    class Config:
        env_prefix = "EXAMPORTAL_"


@lru_cache
def get_settings() -> Settings:
    return Settings()


# Module-level singleton for convenience
settings = get_settings()
