"""
Runtime settings for the travel blog API.

Everything the service reads from the environment lives here so routes and
stores receive one explicit Settings object instead of calling os.getenv.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    secret_key: str = "dev-secret-key-change"
    algorithm: str = "HS256"
    token_expire_minutes: int = 60
    database_url: str = ""
    database_name: str = "travel_blog"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 5000


def _int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    level = (os.getenv("LOG_LEVEL") or "INFO").upper()
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        secret_key=os.getenv("SECRET_KEY", "dev-secret-key-change"),
        token_expire_minutes=_int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"), 60),
        database_url=os.getenv("DATABASE_URL", ""),
        database_name=os.getenv("DATABASE_NAME", "travel_blog"),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()] or ["*"],
        log_level=level if level in _LOG_LEVELS else "INFO",
        port=_int(os.getenv("PORT", "5000"), 5000),
    )
