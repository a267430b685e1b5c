"""SQLAlchemy ORM models for the short-link service.

This module defines the database schema: one table of links keyed by their
short code, and one append-only table of visit events that reference a link
by code.

Data Model Layout
=================
::
    links table
    ├─ code (VARCHAR(64) PRIMARY KEY)
    ├─ target_url (TEXT NOT NULL)
    ├─ created_at (TIMESTAMPTZ NOT NULL)
    └─ click_count (INTEGER DEFAULT 0)

    visit_events table
    ├─ id (INTEGER PRIMARY KEY AUTOINCREMENT)
    ├─ link_code (VARCHAR(64), INDEXED, no foreign key)
    ├─ occurred_at (TIMESTAMPTZ NOT NULL)
    ├─ client_ip (VARCHAR(45) NULL)
    └─ user_agent (TEXT NULL)

How to Use
===========
**Step 1 — Import**::
    from shortener.models import Link, VisitEvent

**Step 2 — Query links**::
    result = await session.execute(select(Link).where(Link.code == "abc123"))
    link = result.scalar_one_or_none()

**Step 3 — Increment clicks atomically**::
    await session.execute(
        update(Link).where(Link.code == "abc123").values(click_count=Link.click_count + 1)
    )

Key Behaviours
===============
- code is the primary key, so the database enforces one link per code.
- A link is never updated after insert except for click_count.
- visit_events.link_code is a plain indexed column; links and events have
  independent lifecycles.

Classes:
    Link:  A short code and the target URL it redirects to.
    VisitEvent:  One recorded resolution of a short code.
"""

import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from shortener.database import Base

__all__ = ["Link", "VisitEvent", "utcnow"]

CODE_MAX_LENGTH = 64


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class Link(Base):
    __tablename__ = "links"

    code: Mapped[str] = mapped_column(String(CODE_MAX_LENGTH), primary_key=True)
    target_url: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    click_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<Link(code='{self.code}', click_count={self.click_count})>"


class VisitEvent(Base):
    __tablename__ = "visit_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    link_code: Mapped[str] = mapped_column(String(CODE_MAX_LENGTH), index=True, nullable=False)
    occurred_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    client_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<VisitEvent(id={self.id}, link_code='{self.link_code}')>"
