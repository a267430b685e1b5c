"""Shared pytest fixtures for store, service and API tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine

from shortener.config import Settings
from shortener.database import build_engine, build_session_factory, init_db
from shortener.dependencies import ServiceManager, _service_manager
from shortener.main import app
from shortener.store import LinkStore


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, REDIS_URL=None, BASE_URL=None)


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(db_engine: AsyncEngine) -> LinkStore:
    return LinkStore(build_session_factory(db_engine))


@pytest_asyncio.fixture(scope="function")
async def manager(store: LinkStore, settings: Settings) -> AsyncGenerator[ServiceManager, None]:
    await _service_manager.cleanup()
    await _service_manager.initialize(store=store, settings=settings)
    yield _service_manager
    await _service_manager.cleanup()


@pytest_asyncio.fixture(scope="function")
async def client(manager: ServiceManager) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
