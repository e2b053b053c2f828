"""
Forum post model — versioned for optimistic concurrency.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text

from forum.db.base import Base


class Forum(Base):
    __tablename__ = "forum"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    content: str = Column(Text, nullable=False)  # type: ignore[assignment]
    version: int = Column(Integer, nullable=False, default=1, server_default="1")  # type: ignore[assignment]
