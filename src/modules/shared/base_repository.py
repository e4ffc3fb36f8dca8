"""
Generic async repository.

A repository wraps the queries for one mapped model. It never opens, commits
or rolls back anything: every method takes the caller's ``AsyncSession`` and
works inside whatever unit of work that session belongs to.

Locked reads (``for_update=True``) emit ``SELECT ... FOR UPDATE`` and refresh
instances the session already holds, so the values seen after the lock are
the committed ones. ``get_many_for_update`` locks in primary-key order; two
settlements touching the same characters therefore queue instead of
deadlocking.

    class AuctionRepository(BaseRepository[Auction]):
        async def find_due(self, session, now, limit):
            return await self.find_many_where(
                session,
                Auction.status == AuctionStatus.OPEN,
                Auction.expires_at <= now,
                order_by=[Auction.expires_at],
                limit=limit,
            )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import selectinload

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

T = TypeVar("T")

Eager = Optional[List["InstrumentedAttribute"]]


class BaseRepository(Generic[T]):
    """Queries for one model class ``T``; subclasses add named finders."""

    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.log = logger

    @property
    def model_name(self) -> str:
        return self.model_class.__name__

    @property
    def _pk(self) -> Any:
        return self.model_class.id  # type: ignore[attr-defined]

    def _trace(self, action: str, **fields: Any) -> None:
        self.log.debug(f"{self.model_name}.{action}", extra={"model": self.model_name, **fields})

    def _query(
        self,
        conditions: Sequence[ColumnElement[bool]],
        eager_load: Eager = None,
        for_update: bool = False,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ) -> Select:
        query = select(self.model_class).where(*conditions)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        query = query.options(*(selectinload(attr) for attr in eager_load or ()))
        if order_by:
            query = query.order_by(*order_by)
        if limit is not None:
            query = query.limit(limit)
        return query

    # -- by primary key -------------------------------------------------

    async def get(
        self, session: AsyncSession, id_value: Any, eager_load: Eager = None
    ) -> Optional[T]:
        row = (
            await session.execute(self._query([self._pk == id_value], eager_load))
        ).scalar_one_or_none()
        self._trace("get", id=id_value, found=row is not None)
        return row

    async def get_for_update(
        self, session: AsyncSession, id_value: Any, eager_load: Eager = None
    ) -> Optional[T]:
        """Same as ``get`` but holds the row lock until the unit of work ends."""
        row = (
            await session.execute(
                self._query([self._pk == id_value], eager_load, for_update=True)
            )
        ).scalar_one_or_none()
        self._trace("get_for_update", id=id_value, found=row is not None, locked=True)
        return row

    async def get_many_for_update(
        self, session: AsyncSession, id_values: Sequence[Any]
    ) -> List[T]:
        """Lock rows in ascending id order. Unknown ids are left out of the result."""
        query = self._query([self._pk.in_(list(id_values))], for_update=True, order_by=[self._pk])
        rows = list((await session.execute(query)).scalars().all())
        self._trace(
            "get_many_for_update", requested=len(id_values), found=len(rows), locked=True
        )
        return rows

    # -- by condition ---------------------------------------------------

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        eager_load: Eager = None,
        for_update: bool = False,
    ) -> Optional[T]:
        query = self._query(conditions, eager_load, for_update=for_update)
        row = (await session.execute(query)).scalars().first()
        self._trace("find_one_where", found=row is not None, locked=for_update)
        return row

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        eager_load: Eager = None,
        for_update: bool = False,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
    ) -> List[T]:
        query = self._query(conditions, eager_load, for_update, order_by, limit)
        rows = list((await session.execute(query)).scalars().all())
        self._trace("find_many_where", found=len(rows), locked=for_update, limit=limit)
        return rows

    async def count(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        total = (
            await session.execute(
                select(func.count()).select_from(self.model_class).where(*conditions)
            )
        ).scalar_one()
        self._trace("count", total=total)
        return total

    async def exists(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> bool:
        return await self.count(session, *conditions) > 0

    # -- writes ---------------------------------------------------------

    def add(self, session: AsyncSession, instance: T) -> T:
        session.add(instance)
        self._trace("add")
        return instance

    async def flush(self, session: AsyncSession) -> None:
        """Push pending rows so server-generated ids are populated."""
        await session.flush()
        self._trace("flush")
