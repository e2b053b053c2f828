"""
Token service — issues, validates and revokes scoped, expiring bearer tokens.

A token row is only ever looked up by its digest. Expiry is checked in the
lookup itself, so an expired row that is still physically present never
validates; no background sweep is needed for correctness.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from forum.core.security import generate_token_plaintext, hash_token
from forum.db.session import bounded, commit
from forum.models.token import TOKEN_SCOPES, Token
from forum.models.user import User

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IssuedToken:
    plaintext: str
    hash: bytes
    user_id: int
    expiry: datetime
    scope: str

    def __repr__(self) -> str:
        # keep the plaintext out of logs and tracebacks
        return f"IssuedToken(user_id={self.user_id}, scope={self.scope!r}, expiry={self.expiry.isoformat()})"


def _check_scope(scope: str) -> None:
    if scope not in TOKEN_SCOPES:
        raise ValueError(f"unknown token scope: {scope!r}")


class TokenService:
    def __init__(self, db: AsyncSession, clock: Clock = utcnow, timeout: float | None = None) -> None:
        self.db = db
        self.clock = clock
        self.timeout = timeout

    async def issue(self, user_id: int, ttl: timedelta, scope: str) -> IssuedToken:
        """Mint a token for *user_id*. The plaintext is returned exactly once."""
        _check_scope(scope)
        plaintext = generate_token_plaintext()
        token = IssuedToken(
            plaintext=plaintext,
            hash=hash_token(plaintext),
            user_id=user_id,
            expiry=self.clock() + ttl,
            scope=scope,
        )
        await bounded(self._insert(token), self.timeout)
        logger.info("Issued %s token for user %s (expires %s)", scope, user_id, token.expiry.isoformat())
        return token

    async def _insert(self, token: IssuedToken) -> None:
        self.db.add(Token(hash=token.hash, user_id=token.user_id, expiry=token.expiry, scope=token.scope))
        try:
            await commit(self.db)
        except Exception:
            await self.db.rollback()
            raise

    async def validate(self, plaintext: str, scope: str) -> User | None:
        """Resolve *plaintext* to its owner, or ``None`` if unknown or expired.

        A value that could never have been issued raises ``MalformedTokenError``
        before any lookup.
        """
        _check_scope(scope)
        token_hash = hash_token(plaintext)
        return await bounded(self._lookup(token_hash, scope), self.timeout)

    async def _lookup(self, token_hash: bytes, scope: str) -> User | None:
        stmt = (
            select(User)
            .join(Token, Token.user_id == User.id)
            .where(
                Token.hash == token_hash,
                Token.scope == scope,
                Token.expiry > self.clock(),
            )
        )
        user = (await self.db.execute(stmt)).scalar_one_or_none()
        if user is not None:
            self.db.expunge(user)
        return user

    async def revoke_all(self, user_id: int, scope: str) -> None:
        """Delete every *scope* token belonging to *user_id*. Idempotent."""
        _check_scope(scope)
        await bounded(self._revoke_all(user_id, scope), self.timeout)

    async def _revoke_all(self, user_id: int, scope: str) -> None:
        result = await self.db.execute(delete(Token).where(Token.user_id == user_id, Token.scope == scope))
        await commit(self.db)
        logger.info("Revoked %d %s token(s) for user %s", result.rowcount, scope, user_id)
