"""
Permission model — capability codes and the users ↔ permissions link table.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String, Table

from forum.db.base import Base

FORUMS_READ = "forums:read"
# The double colon is the established wire convention; clients depend on it.
FORUMS_WRITE = "forums::write"

KNOWN_PERMISSIONS = (FORUMS_READ, FORUMS_WRITE)


class Permission(Base):
    __tablename__ = "permissions"

    id: int = Column(Integer, primary_key=True)  # type: ignore[assignment]
    code: str = Column(String(64), unique=True, nullable=False)  # type: ignore[assignment]


users_permissions = Table(
    "users_permissions",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)
