"""Durable link storage with atomic insert-if-absent semantics.

The store is the only component that talks to the database. Its two write
paths that race under load are both delegated to the database engine:

- ``insert_if_absent`` issues a single INSERT and lets the primary-key
  constraint on ``links.code`` decide. A unique violation is the conflict
  signal; there is no existence check beforehand.
- ``increment_click_count`` issues ``UPDATE ... SET click_count = click_count + 1``.

Flow Diagram — insert_if_absent()
=================================
::
    ┌─────────────┐
    │ INSERT link │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │   COMMIT    │
    └──────┬──────┘
    UNIQUE │ VIOLATION?
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌──────────┐
│ True    │  │ ROLLBACK │
│ (Ok)    │  │ False    │
└─────────┘  │(Conflict)│
             └──────────┘

Key Behaviours
===============
- One short-lived session per operation, so the store can be used from
  request handlers and from background analytics tasks alike.
- Connectivity failures (OperationalError, InterfaceError, pool timeouts,
  socket errors) are raised as StoreUnavailable, chained to the original.
- Lookups return None for unknown codes; an unreachable database is never
  reported as "not found".

Classes:
    LinkStore:  Async repository over the links and visit_events tables.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import func, select, text, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from shortener.errors import StoreUnavailable
from shortener.models import Link, VisitEvent

__all__ = ["LinkStore"]

_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError, OSError)


class LinkStore:
    """Async repository for links and visit events.

    Example:
        >>> store = LinkStore(async_session)
        >>> await store.insert_if_absent("abc123", "https://example.com")
        True
        >>> await store.insert_if_absent("abc123", "https://other.example.com")
        False
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._logger = logger or logging.getLogger("shortener")

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except _UNAVAILABLE_ERRORS as exc:
            self._logger.error(f"Link store unavailable during {operation}: {exc}")
            raise StoreUnavailable(f"Link store unavailable during {operation}") from exc

    async def insert_if_absent(self, code: str, target_url: str) -> bool:
        """Insert a new link unless ``code`` already exists.

        Returns:
            bool: True when this call created the link, False on conflict.
        """
        async with self._guard("insert_if_absent"):
            async with self._session_factory() as session:
                session.add(Link(code=code, target_url=target_url, click_count=0))
                try:
                    await session.commit()
                except IntegrityError:
                    await session.rollback()
                    self._logger.debug(f"Insert conflict for code: {code}")
                    return False
        return True

    async def get(self, code: str) -> Link | None:
        async with self._guard("get"):
            async with self._session_factory() as session:
                return await session.get(Link, code)

    async def increment_click_count(self, code: str) -> bool:
        """Atomically add one click; False when no link has this code."""
        async with self._guard("increment_click_count"):
            async with self._session_factory() as session:
                result = await session.execute(
                    update(Link)
                    .where(Link.code == code)
                    .values(click_count=Link.click_count + 1)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
        return result.rowcount > 0

    async def record_visit(self, event: VisitEvent) -> None:
        async with self._guard("record_visit"):
            async with self._session_factory() as session:
                session.add(event)
                await session.commit()

    async def recent_visits(self, code: str, limit: int) -> list[VisitEvent]:
        if limit <= 0:
            return []
        async with self._guard("recent_visits"):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(VisitEvent)
                    .where(VisitEvent.link_code == code)
                    .order_by(VisitEvent.occurred_at.desc(), VisitEvent.id.desc())
                    .limit(limit)
                )
                return list(result.scalars().all())

    async def count_visits(self, code: str) -> int:
        async with self._guard("count_visits"):
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count()).select_from(VisitEvent).where(VisitEvent.link_code == code)
                )
                return int(result.scalar_one())

    async def ping(self) -> None:
        async with self._guard("ping"):
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
