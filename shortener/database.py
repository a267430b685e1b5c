"""Database configuration and session management for the short-link service.

This module provides SQLAlchemy async engine setup, session factories,
and database lifecycle operations. SQLite (aiosqlite) is the default backend;
PostgreSQL (asyncpg) is selected by pointing DATABASE_URL at it.

Flow Diagram — Database Operations
=================================
::
    ┌─────────────┐
    │  LinkStore  │
    │  operation  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ async_session│
    │ factory     │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ One session │
    │ per store   │
    │ operation   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Auto-close   │
    │ (async with) │
    └─────────────┘

How to Use
===========
**Step 1 — Initialize on startup**::
    await init_db()  # Creates tables

**Step 2 — Hand the session factory to the store**::
    store = LinkStore(async_session)

**Step 3 — Cleanup on shutdown**::
    await close_db()

Key Behaviours
===============
- Every store operation runs in its own short-lived session.
- Connection pooling options are only applied to server databases.
- Tables are created automatically on application startup.
- Engine is properly disposed on application shutdown.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    build_engine():  Creates an async engine for a database URL.
    build_session_factory():  Creates an async_sessionmaker for an engine.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortener.config import get_settings

__all__ = ["Base", "async_session", "build_engine", "build_session_factory", "close_db", "engine", "init_db"]

settings = get_settings()


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    options: dict[str, Any] = {"echo": echo}
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return create_async_engine(database_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

async_session = build_session_factory(engine)


async def init_db(bind: AsyncEngine | None = None) -> None:
    # Importing the models registers their tables on Base.metadata.
    import shortener.models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
