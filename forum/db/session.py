"""
Async SQLAlchemy engine & session factory (asyncpg driver), plus the
bounded-timeout wrapper applied to every storage round-trip and the
unit of work that groups several store writes into one transaction.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from typing import TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from forum.core.config import settings
from forum.core.exceptions import StorageTimeoutError

T = TypeVar("T")

engine_args = {
    "echo": False,
    "pool_pre_ping": True,
}

if "postgresql" in settings.DATABASE_URL:
    engine_args.update(
        {
            "pool_size": 20,
            "max_overflow": 10,
            "pool_recycle": 300,
        }
    )

engine = create_async_engine(
    settings.DATABASE_URL,
    **engine_args,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def bounded(operation: Awaitable[T], timeout: float | None = None) -> T:
    """Await a storage operation, abandoning it after *timeout* seconds.

    Cancelling the calling task (client disconnect) cancels the operation too.
    """
    limit = settings.DB_QUERY_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        return await asyncio.wait_for(operation, timeout=limit)
    except asyncio.TimeoutError as exc:
        raise StorageTimeoutError(f"storage operation exceeded {limit}s") from exc


# ── Unit of work ────────────────────────────────────────────────────
_ATOMIC_KEY = "forum.atomic"


async def commit(db: AsyncSession) -> None:
    """Commit a store write, or only flush it inside ``atomic``."""
    if db.info.get(_ATOMIC_KEY):
        await db.flush()
    else:
        await db.commit()


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run several store writes as one transaction.

    Stores flush instead of committing while the block is open; the block
    commits once on exit, or rolls everything back if it raises.
    """
    if db.info.get(_ATOMIC_KEY):
        raise RuntimeError("atomic blocks do not nest")
    db.info[_ATOMIC_KEY] = True
    try:
        yield db
        await db.commit()
    except BaseException:
        await db.rollback()
        raise
    finally:
        db.info.pop(_ATOMIC_KEY, None)
