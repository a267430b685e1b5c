"""Dependency injection with a singleton service manager.

This module provides a centralized way to inject the link store, the optional
Redis cache and the analytics recorder into API endpoints, using a singleton
pattern for shared resources to minimize per-request overhead.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request

from shortener.analytics import AnalyticsRecorder, VisitMetadata
from shortener.config import Settings, get_settings
from shortener.database import async_session
from shortener.service import LinkShorteningService
from shortener.store import LinkStore

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton service manager for shared resources.

    Holds everything that lives for the whole process: settings, the logger,
    the link store, the optional Redis client and the analytics recorder.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        """Implement singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(
        self,
        store: LinkStore | None = None,
        cache: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize shared resources once at startup.

        ``store`` and ``cache`` replace the configured ones (tests, embedding).
        """
        if self._initialized:
            return
        self.settings = settings or get_settings()
        self.logger = self._setup_logger()
        self.store = store or LinkStore(async_session, logger=self.logger)
        self.cache = cache if cache is not None else self._setup_redis()
        self.recorder = AnalyticsRecorder(self.store, logger=self.logger)
        self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        """Setup logger once."""
        logger = logging.getLogger("shortener")
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(handler)
        logger.setLevel(getattr(logging, self.settings.LOG_LEVEL.upper(), logging.INFO))
        return logger

    def _setup_redis(self) -> redis.Redis | None:
        """Setup the lookup cache client, if configured."""
        if not self.settings.cache_enabled:
            return None
        return redis.from_url(self.settings.REDIS_URL, encoding="utf-8", decode_responses=True)

    async def cleanup(self) -> None:
        """Flush pending analytics and release shared resources at shutdown."""
        if not self._initialized:
            return
        await self.recorder.drain(timeout=5.0)
        if self.cache is not None:
            await self.cache.aclose()
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view over the shared resources plus tracking details.

    Attributes:
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        trace_id: Correlation ID for distributed tracing
        user_agent: Client user agent string
        client_ip: Client IP address
        base_url: Request base URL, used when BASE_URL is not configured
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    trace_id: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    base_url: str = ""
    start_time: float = field(default_factory=lambda: time.time())
    tags: list[str] = field(default_factory=list)

    @property
    def store(self) -> LinkStore:
        return self.service_manager.store

    @property
    def cache(self) -> redis.Redis | None:
        return self.service_manager.cache

    @property
    def recorder(self) -> AnalyticsRecorder:
        return self.service_manager.recorder

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Get shared logger with request context."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "trace_id": self.trace_id or self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    @property
    def short_url_prefix(self) -> str:
        return (self.settings.BASE_URL or self.base_url).rstrip("/")

    def visit_metadata(self) -> VisitMetadata:
        return VisitMetadata(client_ip=self.client_ip, user_agent=self.user_agent)

    def add_tag(self, tag: str) -> None:
        """Add a tag to the request context."""
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    """Get the singleton service manager, initializing it on first use."""
    if not _service_manager.initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    client_ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    trace_id = request.headers.get("x-trace-id")

    return RequestContext(
        service_manager=manager,
        trace_id=trace_id,
        user_agent=user_agent,
        client_ip=client_ip,
        base_url=str(request.base_url),
    )


def get_link_service(ctx: RequestContext = Depends(get_request_context)) -> LinkShorteningService:
    """Create the link service for this request."""
    return LinkShorteningService.from_context(ctx)
