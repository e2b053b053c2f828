"""
User model — registered accounts, plus the anonymous sentinel used when a
request carries no valid authentication token.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from forum.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    name: str = Column(String(500), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    password_hash: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    activated: bool = Column(Boolean, nullable=False, default=False, server_default="false")  # type: ignore[assignment]
    version: int = Column(Integer, nullable=False, default=1, server_default="1")  # type: ignore[assignment]

    is_anonymous = False


class AnonymousUser:
    """Identity for requests without a valid token. Holds no capabilities."""

    id = None
    activated = False
    is_anonymous = True

    def __repr__(self) -> str:
        return "<AnonymousUser>"


ANONYMOUS_USER = AnonymousUser()
