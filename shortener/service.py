"""Short-link service layer - creation and resolution.

This module holds the business logic that sits between the HTTP routes and
the link store: validating requests, allocating codes, and resolving codes to
their targets.

Architecture Overview
=====================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                  LinkShorteningService                      │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │    shorten()    │  │    resolve()    │  │ statistics() │ │
    │  │ • validate URL  │  │ • Redis cache   │  │ • link row   │ │
    │  │ • custom slug   │  │ • store.get()   │  │ • recent     │ │
    │  │ • bounded retry │  │                 │  │   visits     │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                │                    │                    │
                ▼                    ▼                    ▼
    ┌─────────────────┐  ┌─────────────────┐  ┌─────────────────┐
    │  codes.py       │  │   LinkStore     │  │  Redis (opt.)   │
    │  (generator)    │  │  (SQLAlchemy)   │  │  lookup cache   │
    └─────────────────┘  └─────────────────┘  └─────────────────┘

Link Creation Flow
------------------
::
    Validating ──► Validating-Slug ──► Inserting ──► Success
        │               │                  │
        │               │                  └─ conflict ──► SlugTaken
        │               └─ bad slug ──► InvalidSlugFormat
        └─ bad URL ──► InvalidUrl

    Validating ──► Generating ──► Inserting ──► Success
                       ▲              │
                       └── conflict ──┤ (attempt < max)
                                      └─ attempt == max ──► GenerationExhausted

Key Behaviours
===============
- Validation failures never touch the store.
- A taken custom slug is reported, not retried: the caller chose that name.
- Random codes are retried with fresh candidates, at most
  CODE_GENERATION_MAX_ATTEMPTS inserts in total.
- Resolution is a read: cache (when configured), then store. Cache failures
  fall through to the store and are only logged.
- StoreUnavailable propagates unchanged from every operation.

Usage Examples
==============
```python
service = LinkShorteningService(store, cache=redis_client)
code = await service.shorten("https://example.com/docs", slug="docs-home")
target = await service.resolve(code)
```
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import redis.asyncio as redis
import validators
from prometheus_client import Counter, Histogram
from redis.exceptions import RedisError

from shortener.codes import generate_random, validate_custom
from shortener.config import Settings, get_settings
from shortener.enums import CacheStatus, RequestStatus
from shortener.errors import (
    GenerationExhausted,
    InvalidSlugFormat,
    InvalidUrl,
    LinkNotFound,
    ShortenerError,
    SlugTaken,
)
from shortener.models import Link, VisitEvent
from shortener.store import LinkStore

if TYPE_CHECKING:
    from shortener.dependencies import RequestContext

__all__ = ["LinkShorteningService", "LinkStatistics", "validate_target_url"]

ALLOWED_SCHEMES = ("http", "https")


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

LINK_CREATION_REQUESTS_TOTAL = Counter(
    "shortener_creation_requests_total",
    "Total link creation requests",
    ["status"],
)
LINK_CREATION_DURATION = Histogram(
    "shortener_creation_duration_seconds",
    "Time taken to create short links",
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)
CODE_COLLISIONS_TOTAL = Counter(
    "shortener_code_collisions_total",
    "Randomly generated codes that already existed",
)
RESOLVE_REQUESTS_TOTAL = Counter(
    "shortener_resolve_requests_total",
    "Total code resolutions",
    ["status", "cache"],
)
RESOLVE_DURATION = Histogram(
    "shortener_resolve_duration_seconds",
    "Time taken to resolve a code",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)


def validate_target_url(url: str) -> str:
    """Return ``url`` if it is an absolute http(s) URL, else raise InvalidUrl."""
    if not isinstance(url, str) or not url.strip():
        raise InvalidUrl("URL is required")
    if urlsplit(url).scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidUrl("URL must be an absolute http:// or https:// URL")
    if not validators.url(url, simple_host=True):
        raise InvalidUrl("URL is not well-formed")
    return url


@dataclass
class LinkStatistics:
    link: Link
    recent_visits: list[VisitEvent]


class LinkShorteningService:
    """Creates short links and resolves codes back to their targets.

    Example:
        >>> service = LinkShorteningService(store)
        >>> code = await service.shorten("https://example.com", slug="example")
        >>> await service.resolve(code)
        'https://example.com'
    """

    def __init__(
        self,
        store: LinkStore,
        cache: redis.Redis | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        settings: Settings | None = None,
        code_generator: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._logger = logger or logging.getLogger("shortener")
        self._settings = settings or get_settings()
        self._generate_code = code_generator or (lambda: generate_random(self._settings.SHORT_CODE_LENGTH))

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkShorteningService":
        return cls(
            store=ctx.store,
            cache=ctx.cache,
            logger=ctx.logger,
            settings=ctx.settings,
        )

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def shorten(self, target_url: str, slug: str | None = None) -> str:
        """Create a link for ``target_url`` and return its code.

        Raises:
            InvalidUrl: ``target_url`` is not an absolute http(s) URL.
            InvalidSlugFormat: ``slug`` breaks the slug policy.
            SlugTaken: another link already uses ``slug``.
            GenerationExhausted: every random candidate collided.
            StoreUnavailable: the database failed.
        """
        start_time = time.perf_counter()
        try:
            target_url = validate_target_url(target_url)
            if slug is not None:
                code = await self._insert_custom_slug(target_url, slug)
            else:
                code = await self._insert_random_code(target_url)
        except (InvalidUrl, InvalidSlugFormat) as exc:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            self._logger.warning(f"Link creation rejected: {exc}")
            raise
        except SlugTaken as exc:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.CONFLICT).inc()
            self._logger.warning(f"Link creation conflict: {exc}")
            raise
        except ShortenerError as exc:
            LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Link creation failed: {exc}")
            raise
        finally:
            LINK_CREATION_DURATION.observe(time.perf_counter() - start_time)

        LINK_CREATION_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(f"Link created: {code} -> {target_url}")
        await self._cache_target(code, target_url)
        return code

    async def resolve(self, code: str) -> str:
        """Return the target URL for ``code``.

        Raises:
            LinkNotFound: no link has this code.
            StoreUnavailable: the database failed.
        """
        start_time = time.perf_counter()
        try:
            cached = await self._lookup_from_cache(code)
            if cached is not None:
                RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache=CacheStatus.HIT).inc()
                return cached

            cache_status = CacheStatus.MISS if self._cache is not None else CacheStatus.DISABLED
            link = await self._store.get(code)
            if link is None:
                RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache=cache_status).inc()
                raise LinkNotFound(code)

            RESOLVE_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache=cache_status).inc()
            await self._cache_target(link.code, link.target_url)
            return link.target_url
        finally:
            RESOLVE_DURATION.observe(time.perf_counter() - start_time)

    async def get_link_statistics(self, code: str) -> LinkStatistics:
        link = await self._store.get(code)
        if link is None:
            raise LinkNotFound(code)
        visits = await self._store.recent_visits(code, self._settings.STATS_RECENT_VISITS_LIMIT)
        return LinkStatistics(link=link, recent_visits=visits)

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _insert_custom_slug(self, target_url: str, slug: str) -> str:
        code = validate_custom(slug, self._settings.SLUG_MAX_LENGTH)
        if not await self._store.insert_if_absent(code, target_url):
            raise SlugTaken(code)
        return code

    async def _insert_random_code(self, target_url: str) -> str:
        max_attempts = self._settings.CODE_GENERATION_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            candidate = self._generate_code()
            if await self._store.insert_if_absent(candidate, target_url):
                return candidate
            CODE_COLLISIONS_TOTAL.inc()
            self._logger.warning(f"Code collision on attempt {attempt}/{max_attempts}: {candidate}")
        raise GenerationExhausted(max_attempts)

    @staticmethod
    def _cache_key(code: str) -> str:
        return f"link:{code}"

    async def _lookup_from_cache(self, code: str) -> str | None:
        if self._cache is None:
            return None
        try:
            return await self._cache.get(self._cache_key(code))
        except RedisError as exc:
            self._logger.error(f"Cache read failed for {code}: {exc}")
            return None

    async def _cache_target(self, code: str, target_url: str) -> None:
        # Links never change after creation, so entries only need a TTL.
        if self._cache is None:
            return
        try:
            await self._cache.setex(self._cache_key(code), self._settings.CACHE_TTL_SECONDS, target_url)
        except RedisError as exc:
            self._logger.error(f"Cache write failed for {code}: {exc}")
