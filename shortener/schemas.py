"""Pydantic schemas for request/response validation in the short-link service.

This module defines the API's wire models. Request bodies only check shapes
(strings where strings belong); URL and slug rules are enforced by the
service layer so that every rejection carries a domain error kind.

Schema Hierarchy
=================
::
    ShortenRequest (Input)
    ├─ url: str
    └─ slug: str | None

    ShortenResponse (Output)
    ├─ shortUrl: str
    └─ code: str

    LinkStatsResponse (Output)
    ├─ code: str
    ├─ targetUrl: str
    ├─ clickCount: int
    ├─ createdAt: datetime
    └─ recentVisits: list[VisitResponse]

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    └─ cache: HealthStatus

    ErrorResponse (Output)
    ├─ error: ErrorKind
    ├─ detail: str
    └─ reason: SlugViolation | None

Key Behaviours
===============
- Responses serialize with camelCase keys; Python code uses snake_case names.
- Stats models are built straight from ORM objects (from_attributes).
- Datetimes are stored in UTC; values read back without an offset (SQLite)
  are tagged as UTC before they are serialized.

Classes:
    ShortenRequest:  Input schema for shorten requests.
    ShortenResponse:  Output schema for created links.
    VisitResponse:  One visit in a stats response.
    LinkStatsResponse:  Output schema for link statistics.
    HealthResponse:  Output schema for health checks.
    ErrorResponse:  Structured error payload.
"""

import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from shortener.enums import ErrorKind, HealthStatus, SlugViolation

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "LinkStatsResponse",
    "ShortenRequest",
    "ShortenResponse",
    "VisitResponse",
]


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


UtcDatetime = Annotated[datetime.datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ShortenRequest(BaseModel):
    url: str = Field(..., description="Absolute http(s) URL to shorten", examples=["https://example.com/docs"])
    slug: str | None = Field(
        None,
        description="Optional custom code made of letters, digits, '-' and '_'",
        examples=["docs-home"],
    )


class ShortenResponse(CamelModel):
    short_url: str
    code: str


class VisitResponse(CamelModel):
    occurred_at: UtcDatetime
    client_ip: str | None = None
    user_agent: str | None = None


class LinkStatsResponse(CamelModel):
    code: str
    target_url: str
    click_count: int
    created_at: UtcDatetime
    recent_visits: list[VisitResponse] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class ErrorResponse(BaseModel):
    error: ErrorKind
    detail: str
    reason: SlugViolation | None = None
