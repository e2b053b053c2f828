"""
Optimistic-concurrency write path shared by every mutable resource.

Each row carries a ``version`` that starts at 1. An update is a single
conditional statement::

    UPDATE <table> SET <fields>, version = version + 1
    WHERE id = :id AND version = :version

so the database serialises concurrent writers: the first to commit wins and
everybody else matches zero rows and gets an ``EditConflictError``. A
rejected update changes nothing.

Instances handed out by a store are detached from the session. Callers mutate
them freely and pass them back to ``update``; the ORM unit of work never
flushes them behind the conditional write.
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from forum.core.exceptions import EditConflictError, RecordNotFoundError
from forum.db.base import Base
from forum.db.session import bounded, commit
from forum.schemas.filters import Filters

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class VersionedStore(Generic[ModelT]):
    """CRUD over one versioned model.

    Subclasses declare:

    * ``model``: the ORM class; must have ``id`` and ``version`` columns.
    * ``content_fields``: columns written by ``update``.
    * ``search_fields``: columns accepted as text filters by ``list``.
    * ``sort_safelist``: sort keys accepted by ``list`` (``-`` prefix = descending).
    """

    model: ClassVar[type[Any]]
    content_fields: ClassVar[tuple[str, ...]] = ()
    search_fields: ClassVar[tuple[str, ...]] = ()
    sort_safelist: ClassVar[tuple[str, ...]] = ("id", "-id")

    def __init__(self, db: AsyncSession, timeout: float | None = None) -> None:
        self.db = db
        self.timeout = timeout

    @property
    def resource_name(self) -> str:
        return self.model.__name__.lower()

    # ── Writes ──────────────────────────────────────────────────────
    async def insert(self, resource: ModelT) -> ModelT:
        """Persist a new row; the database assigns id, created_at and version 1."""
        return await bounded(self._insert(resource), self.timeout)

    async def _insert(self, resource: ModelT) -> ModelT:
        resource.version = 1  # type: ignore[attr-defined]
        self.db.add(resource)
        try:
            await commit(self.db)
        except Exception:
            await self.db.rollback()
            raise
        await self.db.refresh(resource)
        self.db.expunge(resource)
        logger.debug("Inserted %s %s", self.resource_name, resource.id)  # type: ignore[attr-defined]
        return resource

    async def update(self, resource: ModelT) -> ModelT:
        """Compare-and-set write conditioned on the version the caller read."""
        return await bounded(self._update(resource), self.timeout)

    async def _update(self, resource: ModelT) -> ModelT:
        model = self.model
        values = {name: getattr(resource, name) for name in self.content_fields}
        stmt = (
            update(model)
            .where(model.id == resource.id, model.version == resource.version)  # type: ignore[attr-defined]
            .values(**values, version=model.version + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            await self.db.rollback()
            logger.info(
                "Edit conflict on %s %s at version %s",
                self.resource_name,
                resource.id,  # type: ignore[attr-defined]
                resource.version,  # type: ignore[attr-defined]
            )
            raise EditConflictError()
        await commit(self.db)
        resource.version += 1  # type: ignore[attr-defined]
        return resource

    async def delete(self, resource_id: int) -> None:
        """Remove unconditionally by id."""
        if resource_id < 1:
            raise RecordNotFoundError()
        await bounded(self._delete(resource_id), self.timeout)

    async def _delete(self, resource_id: int) -> None:
        result = await self.db.execute(delete(self.model).where(self.model.id == resource_id))
        if result.rowcount == 0:
            await self.db.rollback()
            raise RecordNotFoundError()
        await commit(self.db)

    # ── Reads ───────────────────────────────────────────────────────
    async def get(self, resource_id: int) -> ModelT:
        if resource_id < 1:
            raise RecordNotFoundError()
        return await bounded(self._get(resource_id), self.timeout)

    async def _get(self, resource_id: int) -> ModelT:
        result = await self.db.execute(select(self.model).where(self.model.id == resource_id))
        resource = result.scalar_one_or_none()
        if resource is None:
            raise RecordNotFoundError()
        self.db.expunge(resource)
        return resource

    async def list(self, filters: Filters, **search: str) -> tuple[list[ModelT], int]:
        """Return one page of rows plus the total number of matching rows.

        Each keyword in *search* is a case-insensitive substring match on the
        column of that name; an empty term matches every row.
        """
        if filters.sort not in self.sort_safelist:
            raise ValueError(f"unsafe sort parameter: {filters.sort}")
        unknown = set(search) - set(self.search_fields)
        if unknown:
            raise ValueError(f"unsupported search fields: {sorted(unknown)}")
        return await bounded(self._list(filters, search), self.timeout)

    async def _list(self, filters: Filters, search: dict[str, str]) -> tuple[list[ModelT], int]:
        model = self.model
        conditions = [
            getattr(model, name).icontains(term, autoescape=True)
            for name, term in search.items()
            if term
        ]

        count_stmt = select(func.count()).select_from(model)
        stmt = select(model)
        if conditions:
            count_stmt = count_stmt.where(*conditions)
            stmt = stmt.where(*conditions)

        column = getattr(model, filters.sort_column())
        stmt = (
            stmt.order_by(column.desc() if filters.sort_descending() else column.asc(), model.id.asc())
            .limit(filters.limit())
            .offset(filters.offset())
        )

        total = (await self.db.execute(count_stmt)).scalar_one()
        items = list((await self.db.execute(stmt)).scalars().all())
        for item in items:
            self.db.expunge(item)
        return items, total
