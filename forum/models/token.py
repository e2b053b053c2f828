"""
Token model — scoped, expiring bearer tokens. Only the digest is stored.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, LargeBinary, String

from forum.db.base import Base

SCOPE_ACTIVATION = "activation"
SCOPE_AUTHENTICATION = "authentication"
SCOPE_PASSWORD_RESET = "password-reset"

TOKEN_SCOPES = frozenset({SCOPE_ACTIVATION, SCOPE_AUTHENTICATION, SCOPE_PASSWORD_RESET})


class Token(Base):
    __tablename__ = "tokens"
    __table_args__ = (Index("ix_tokens_user_scope", "user_id", "scope"),)

    hash: bytes = Column(LargeBinary(32), primary_key=True)  # type: ignore[assignment]
    user_id: int = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    expiry: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    scope: str = Column(String(32), nullable=False)  # type: ignore[assignment]
