"""Scraping session tracking."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Integer, Numeric, String, Text, func
from sqlalchemy import JSON as JSONB
from sqlalchemy.orm import Mapped, mapped_column

from bizscout.models.base import Base, UUIDPrimaryKeyMixin


class ScrapingSessionRecord(UUIDPrimaryKeyMixin, Base):
    """Summary of one orchestration run across one or more sources."""

    __tablename__ = "scraping_sessions"

    session_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="running",
        index=True,
        comment="Legacy status: 'running', 'completed', 'failed'",
    )
    outcome: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        comment="Outcome: 'succeeded', 'partially_succeeded', 'failed'",
    )

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_seconds: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    total_listings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    saved_listings: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    sources: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    error_message: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Newline-joined session errors",
    )

    # Per-source result summary: {source: {success, listings, errors}}
    results: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<ScrapingSessionRecord(session_id='{self.session_id}', status='{self.status}')>"
