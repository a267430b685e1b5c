"""Out-of-band visit recording for resolved short codes.

The redirect handler calls ``AnalyticsRecorder.record()`` after it has decided
where to send the client. ``record()`` only schedules work on the event loop and
returns immediately, so analytics never sit on the redirect's critical path.

Click Tracking Flow
-------------------
::
    ┌─────────────┐
    │  Redirect   │
    │  resolved   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ record()    │──────────────► 30x response returned
    │ create_task │
    └──────┬──────┘
           ▼ (background)
    ┌──────────────────────────────┐
    │ gather(                      │
    │   record_visit(event),       │
    │   increment_click_count(code)│
    │ )                            │
    └──────┬───────────────────────┘
           ▼
    ┌─────────────┐
    │ Per-operation│
    │ log + metric │
    └─────────────┘

Key Behaviours
===============
- The two writes are independent; one failing does not stop the other.
- Failures go to the log and the analytics_writes_total counter and are
  otherwise dropped. Delivery is at most once.
- Pending tasks are strongly referenced until done and can be awaited with
  ``drain()`` (application shutdown, tests).
- Click counts trail visit volume by however long the pending writes take, and
  may undercount if the process dies before they land.

Classes:
    VisitMetadata:  Request details captured for one visit.
    AnalyticsRecorder:  Schedules and tracks background analytics writes.
"""

import asyncio
import datetime
import logging
from dataclasses import dataclass, field

from prometheus_client import Counter

from shortener.enums import RequestStatus
from shortener.models import VisitEvent, utcnow
from shortener.store import LinkStore

__all__ = ["AnalyticsRecorder", "VisitMetadata"]

ANALYTICS_WRITES_TOTAL = Counter(
    "shortener_analytics_writes_total",
    "Background analytics writes by operation and outcome",
    ["operation", "status"],
)

_OPERATIONS = ("record_visit", "increment_click_count")


@dataclass(frozen=True)
class VisitMetadata:
    client_ip: str | None = None
    user_agent: str | None = None
    occurred_at: datetime.datetime = field(default_factory=utcnow)


class AnalyticsRecorder:
    """Fire-and-forget writer for visit events and click counters."""

    def __init__(self, store: LinkStore, logger: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        self._store = store
        self._logger = logger or logging.getLogger("shortener")
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def record(self, code: str, visit: VisitMetadata) -> None:
        """Schedule analytics writes for one visit and return immediately.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(self._write(code, visit), name=f"analytics:{code}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for every scheduled write to finish (or for ``timeout`` seconds)."""
        pending = set(self._pending)
        if not pending:
            return
        _, still_pending = await asyncio.wait(pending, timeout=timeout)
        if still_pending:
            self._logger.warning(f"{len(still_pending)} analytics writes still pending after {timeout}s")

    async def _write(self, code: str, visit: VisitMetadata) -> None:
        event = VisitEvent(
            link_code=code,
            occurred_at=visit.occurred_at,
            client_ip=visit.client_ip,
            user_agent=visit.user_agent,
        )
        results = await asyncio.gather(
            self._store.record_visit(event),
            self._store.increment_click_count(code),
            return_exceptions=True,
        )

        for operation, result in zip(_OPERATIONS, results):
            if isinstance(result, BaseException):
                ANALYTICS_WRITES_TOTAL.labels(operation=operation, status=RequestStatus.ERROR).inc()
                self._logger.error(f"Analytics {operation} failed for {code}: {result!r}")
            elif result is False:
                # increment_click_count matched no row
                ANALYTICS_WRITES_TOTAL.labels(operation=operation, status=RequestStatus.NOT_FOUND).inc()
                self._logger.warning(f"Analytics {operation} found no link for {code}")
            else:
                ANALYTICS_WRITES_TOTAL.labels(operation=operation, status=RequestStatus.SUCCESS).inc()
