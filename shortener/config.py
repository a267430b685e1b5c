"""Configuration management for the short-link service.

This module provides centralized configuration management using Pydantic BaseSettings
with environment variable support and caching for performance.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache  │
    │ (lru_cache)  │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from shortener.config import get_settings

**Step 2 — Get settings**::
    settings = get_settings()
    db_url = settings.DATABASE_URL

**Step 3 — Override from the environment**::
    DATABASE_URL=postgresql+asyncpg://user:pass@db:5432/links \\
    REDIS_URL=redis://redis:6379/0 \\
    uvicorn shortener.main:app

Key Behaviours
===============
- Settings are cached after first access for performance.
- Environment variables (and a local .env file) override defaults automatically.
- REDIS_URL is optional; leaving it unset disables the lookup cache.
- Invalid values (e.g. a non-redirect status code) raise ValidationError.

Classes:
    Settings:  Pydantic model for all configuration values.

"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

REDIRECT_STATUS_CODES = frozenset({301, 302, 307, 308})


class Settings(BaseSettings):
    APP_NAME: str = "shortener"
    LOG_LEVEL: str = "INFO"
    # Public prefix for generated short URLs; falls back to the request base URL.
    BASE_URL: str | None = None

    # Database (SQLite for local runs, postgresql+asyncpg in production)
    DATABASE_URL: str = "sqlite+aiosqlite:///./links.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_ECHO: bool = False

    # Redis lookup cache
    REDIS_URL: str | None = None
    CACHE_TTL_SECONDS: int = Field(3600, ge=1)

    # Code allocation policy
    SHORT_CODE_LENGTH: int = Field(8, ge=4, le=64)
    SLUG_MAX_LENGTH: int = Field(64, ge=1, le=64)
    CODE_GENERATION_MAX_ATTEMPTS: int = Field(5, ge=1)

    # Redirect and stats surface
    REDIRECT_STATUS_CODE: int = 301
    STATS_RECENT_VISITS_LIMIT: int = Field(10, ge=0)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("REDIRECT_STATUS_CODE")
    @classmethod
    def validate_redirect_status(cls, v: int) -> int:
        if v not in REDIRECT_STATUS_CODES:
            raise ValueError(f"REDIRECT_STATUS_CODE must be one of {sorted(REDIRECT_STATUS_CODES)}")
        return v

    @property
    def cache_enabled(self) -> bool:
        return bool(self.REDIS_URL)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
