"""FastAPI route definitions for the short-link REST API.

This module provides all HTTP endpoints with dependency injection and
response serialization. Domain errors raised by the service layer are
rendered by the exception handlers registered in ``shortener.main``.

API Endpoint Overview
=====================
::
    GET  /health
        └─ HealthResponse (200)

    POST /shorten
        ├─ ShortenRequest (request body)
        └─ ShortenResponse (201) or 400/409/500 ErrorResponse

    GET  /stats/:code
        └─ LinkStatsResponse (200) or 404

    GET  /:code
        └─ 301 Redirect or 404 "Not found"

Request Flow Diagram — Redirect
===============================
::
    ┌─────────────┐
    │ GET /:code  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ service.    │
    │ resolve()   │
    └──────┬──────┘
    FOUND? │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌──────────────┐
│ 404     │  │ recorder.    │
│ text    │  │ record()     │ (scheduled, not awaited)
└─────────┘  └──────┬───────┘
                    ▼
             ┌──────────────┐
             │ 30x Redirect │
             └──────────────┘

Key Behaviours
===============
- All endpoints use async/await for non-blocking I/O.
- The catch-all /{code} route is registered last so fixed paths win.
- The redirect never waits for analytics writes.
- Store outages surface as 500 store_unavailable, never as 404.

Endpoints:
    /health:  Health check for monitoring.
    /shorten:  Create new short links.
    /stats/:code:  Link statistics with recent visits.
    /:code:  Redirect to the target URL.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from shortener.dependencies import RequestContext, get_link_service, get_request_context
from shortener.enums import HealthStatus
from shortener.errors import LinkNotFound, ShortenerError
from shortener.schemas import ErrorResponse, HealthResponse, LinkStatsResponse, ShortenRequest, ShortenResponse, VisitResponse
from shortener.service import LinkShorteningService

__all__ = ["router"]

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.DISABLED

    try:
        await ctx.store.ping()
    except ShortenerError as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    if ctx.cache is not None:
        try:
            await ctx.cache.ping()
            cache_status = HealthStatus.HEALTHY
        except Exception as e:
            ctx.logger.error(f"Cache health check failed: {e}")
            cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is not HealthStatus.UNHEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    tags=["links"],
)
async def shorten_url(
    payload: ShortenRequest,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkShorteningService = Depends(get_link_service),
) -> ShortenResponse:
    ctx.add_tag("link_creation")
    ctx.logger.info(
        f"Shorten requested: {payload.url}",
        extra={"operation": "shorten", "target_url": payload.url, "slug": payload.slug},
    )

    code = await service.shorten(payload.url, payload.slug)

    ctx.logger.info(
        f"Shortened {payload.url} as {code}",
        extra={"operation": "shorten", "code": code, "duration_ms": ctx.get_duration()},
    )
    return ShortenResponse(short_url=f"{ctx.short_url_prefix}/{code}", code=code)


@router.get("/stats/{code}", response_model=LinkStatsResponse, responses=ERROR_RESPONSES, tags=["links"])
async def get_stats(
    code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkShorteningService = Depends(get_link_service),
) -> LinkStatsResponse:
    ctx.logger.info(f"Stats requested for code: {code}")
    stats = await service.get_link_statistics(code)
    return LinkStatsResponse(
        code=stats.link.code,
        target_url=stats.link.target_url,
        click_count=stats.link.click_count,
        created_at=stats.link.created_at,
        recent_visits=[VisitResponse.model_validate(visit) for visit in stats.recent_visits],
    )


@router.get("/{code}", tags=["redirect"], response_class=RedirectResponse, responses={404: {"description": "Not found"}})
async def redirect_to_target(
    code: str,
    ctx: RequestContext = Depends(get_request_context),
    service: LinkShorteningService = Depends(get_link_service),
) -> Response:
    ctx.add_tag("redirect")

    try:
        target_url = await service.resolve(code)
    except LinkNotFound:
        ctx.logger.info(
            f"Redirect miss: {code}",
            extra={"operation": "redirect", "code": code, "duration_ms": ctx.get_duration()},
        )
        return PlainTextResponse("Not found", status_code=404)

    ctx.recorder.record(code, ctx.visit_metadata())

    ctx.logger.info(
        f"Redirect: {code} -> {target_url}",
        extra={"operation": "redirect", "code": code, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=target_url, status_code=ctx.settings.REDIRECT_STATUS_CODE)
