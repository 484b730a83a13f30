"""
core/config.py
--------------
Centralised settings management using pydantic-settings.
All configuration is loaded from environment variables / .env file.
This is the single source of truth for application configuration.

DATA_ROOT is read once here and handed to TenantStorage at construction;
nothing below the facade looks up a filesystem location on its own.
"""

from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── App ──────────────────────────────────────────────────────────────
    APP_NAME: str = "gpslog"
    APP_ENV: str = "development"
    DEBUG: bool = False

    # ── Storage ──────────────────────────────────────────────────────────
    DATA_ROOT: Path = Path("./data")
    SQLITE_BUSY_TIMEOUT: float = 5.0  # seconds SQLite waits on a locked file
    GPX_CREATOR: str = "gpslog"

    # ── Reconciliation ───────────────────────────────────────────────────
    RECONCILE_ON_STARTUP: bool = True
    PRUNE_ORPHANS_ON_STARTUP: bool = False

    # ── CORS ─────────────────────────────────────────────────────────────
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_origins(cls, v):
        if isinstance(v, str):
            import json
            return json.loads(v)
        return v

    @field_validator("SQLITE_BUSY_TIMEOUT")
    @classmethod
    def non_negative_timeout(cls, v: float) -> float:
        if v < 0:
            raise ValueError("SQLITE_BUSY_TIMEOUT must be >= 0")
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings factory.
    Use this everywhere to avoid re-reading .env on every call.
    """
    return Settings()


settings = get_settings()
