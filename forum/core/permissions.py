"""
Permission registry — per-user capability sets.

Capabilities are exact strings (``forums:read``, ``forums::write``); the
``resource:action`` namespacing is a naming convention only, there is no
prefix or glob matching.
"""

from __future__ import annotations

import logging

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from forum.db.session import bounded, commit
from forum.models.permission import KNOWN_PERMISSIONS, Permission, users_permissions
from forum.models.user import AnonymousUser, User

logger = logging.getLogger(__name__)


class PermissionRegistry:
    def __init__(self, db: AsyncSession, timeout: float | None = None) -> None:
        self.db = db
        self.timeout = timeout

    async def get_all_for_user(self, user_id: int) -> frozenset[str]:
        return await bounded(self._get_all_for_user(user_id), self.timeout)

    async def _get_all_for_user(self, user_id: int) -> frozenset[str]:
        stmt = (
            select(Permission.code)
            .join(users_permissions, users_permissions.c.permission_id == Permission.id)
            .where(users_permissions.c.user_id == user_id)
        )
        return frozenset((await self.db.execute(stmt)).scalars().all())

    async def add_for_user(self, user_id: int, *codes: str) -> None:
        """Grant *codes* to *user_id*; already-held codes are left alone."""
        await bounded(self._add_for_user(user_id, set(codes)), self.timeout)

    async def _add_for_user(self, user_id: int, codes: set[str]) -> None:
        rows = (await self.db.execute(select(Permission.id, Permission.code).where(Permission.code.in_(codes)))).all()
        missing = codes - {code for _, code in rows}
        if missing:
            raise ValueError(f"unknown permission codes: {sorted(missing)}")

        held = set(
            (
                await self.db.execute(
                    select(users_permissions.c.permission_id).where(users_permissions.c.user_id == user_id)
                )
            ).scalars()
        )
        new_rows = [{"user_id": user_id, "permission_id": pid} for pid, _ in rows if pid not in held]
        if new_rows:
            await self.db.execute(insert(users_permissions), new_rows)
        await commit(self.db)
        logger.info("Granted %s to user %s", sorted(codes), user_id)

    async def has(self, user: User | AnonymousUser, capability: str) -> bool:
        if user.is_anonymous:
            return False
        return capability in await self.get_all_for_user(user.id)  # type: ignore[arg-type]


async def seed_permissions(db: AsyncSession) -> None:
    """Insert the known capability codes if they are not there yet."""
    existing = set((await db.execute(select(Permission.code))).scalars())
    for code in KNOWN_PERMISSIONS:
        if code not in existing:
            db.add(Permission(code=code))
    await db.commit()
    logger.info("Permissions seeded: %s", ", ".join(KNOWN_PERMISSIONS))
