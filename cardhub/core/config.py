"""
Configuration helpers for the cardhub backend.

Routers and services read settings through get_settings() instead of touching
os.environ, so tests can swap the environment and call cache_clear().
"""

from dataclasses import dataclass
from functools import lru_cache
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    store_backend: str
    free_card_limit: int
    pro_card_limit: int
    log_level: str
    rate_limit_per_minute: int

    def default_limit_for(self, plan: str | None) -> int:
        return self.pro_card_limit if (plan or "free") == "pro" else self.free_card_limit


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", ""),
        store_backend=(os.getenv("STORE_BACKEND") or "sql").strip().lower(),
        free_card_limit=_int(os.getenv("FREE_CARD_LIMIT", "1"), 1),
        pro_card_limit=_int(os.getenv("PRO_CARD_LIMIT", "10"), 10),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        rate_limit_per_minute=_int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"), 60),
    )
