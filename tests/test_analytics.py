"""Analytics recorder tests: non-blocking scheduling, convergence, failure isolation."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from shortener.analytics import AnalyticsRecorder, VisitMetadata
from shortener.errors import StoreUnavailable
from shortener.store import LinkStore


@pytest.mark.asyncio
async def test_k_visits_converge_to_k_clicks_and_k_events(store: LinkStore) -> None:
    await store.insert_if_absent("popular", "https://example.com")
    recorder = AnalyticsRecorder(store)

    for i in range(7):
        recorder.record("popular", VisitMetadata(client_ip=f"192.0.2.{i}", user_agent="pytest"))
    await recorder.drain()

    link = await store.get("popular")
    assert link.click_count == 7
    assert await store.count_visits("popular") == 7
    assert recorder.pending_count == 0


@pytest.mark.asyncio
async def test_record_returns_before_writes_complete() -> None:
    release = asyncio.Event()

    async def slow_write(*args, **kwargs):
        await release.wait()
        return True

    store = AsyncMock(spec=LinkStore)
    store.record_visit = AsyncMock(side_effect=slow_write)
    store.increment_click_count = AsyncMock(side_effect=slow_write)
    recorder = AnalyticsRecorder(store)

    recorder.record("abc123", VisitMetadata())
    assert recorder.pending_count == 1

    release.set()
    await recorder.drain()

    assert recorder.pending_count == 0
    store.record_visit.assert_awaited_once()
    store.increment_click_count.assert_awaited_once_with("abc123")


@pytest.mark.asyncio
async def test_failed_write_is_logged_and_other_write_still_attempted(caplog: pytest.LogCaptureFixture) -> None:
    store = AsyncMock(spec=LinkStore)
    store.record_visit = AsyncMock(side_effect=StoreUnavailable("down"))
    store.increment_click_count = AsyncMock(return_value=True)
    recorder = AnalyticsRecorder(store)

    with caplog.at_level(logging.ERROR, logger="shortener"):
        recorder.record("abc123", VisitMetadata(client_ip="198.51.100.7"))
        await recorder.drain()

    store.increment_click_count.assert_awaited_once_with("abc123")
    assert "record_visit failed for abc123" in caplog.text


@pytest.mark.asyncio
async def test_visit_metadata_is_persisted(store: LinkStore) -> None:
    await store.insert_if_absent("meta", "https://example.com")
    recorder = AnalyticsRecorder(store)

    recorder.record("meta", VisitMetadata(client_ip="203.0.113.9", user_agent="curl/8.5.0"))
    await recorder.drain()

    [visit] = await store.recent_visits("meta", limit=5)
    assert visit.link_code == "meta"
    assert visit.client_ip == "203.0.113.9"
    assert visit.user_agent == "curl/8.5.0"


@pytest.mark.asyncio
async def test_unknown_code_records_event_without_counter(store: LinkStore, caplog: pytest.LogCaptureFixture) -> None:
    recorder = AnalyticsRecorder(store)

    with caplog.at_level(logging.WARNING, logger="shortener"):
        recorder.record("vanished", VisitMetadata())
        await recorder.drain()

    assert await store.count_visits("vanished") == 1
    assert "found no link for vanished" in caplog.text


@pytest.mark.asyncio
async def test_drain_without_pending_work() -> None:
    recorder = AnalyticsRecorder(AsyncMock(spec=LinkStore))
    await recorder.drain(timeout=0.1)
    assert recorder.pending_count == 0
