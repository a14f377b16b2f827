"""
Async repository base with the column-filter helpers every store needs.
"""

from __future__ import annotations

import functools
from typing import Any, Dict, Generic, Optional, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from complaint_hub.core.database import Base
from complaint_hub.core.exceptions import StoreFailure

ModelType = TypeVar("ModelType", bound=Base)


def store_call(func):
    """Translate SQLAlchemy errors into StoreFailure, keeping the cause."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except SQLAlchemyError as exc:
            raise StoreFailure(f"Database error: {exc.__class__.__name__}") from exc

    return wrapper


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over one table.

    Repositories flush but never commit on their own; ``commit`` is called
    by the service once the whole operation has been applied.
    """

    def __init__(self, session: AsyncSession, model: Type[ModelType]):
        self.session = session
        self.model = model

    def _apply_filters(
        self,
        stmt: Select,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Select:
        if not filters:
            return stmt

        for key, value in filters.items():
            if value is None:
                continue
            column = getattr(self.model, key, None)
            if column is None:
                raise ValueError(f"Unknown filter column: {key}")

            if isinstance(value, (list, tuple, set, frozenset)):
                stmt = stmt.where(column.in_(list(value)))
            else:
                stmt = stmt.where(column == value)
        return stmt

    @store_call
    async def get(self, id_: UUID) -> Optional[ModelType]:
        stmt = select(self.model).where(self.model.id == id_)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    @store_call
    async def get_by_user(self, user_id: UUID) -> Optional[ModelType]:
        stmt = select(self.model).where(self.model.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    @store_call
    async def find(
        self,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Sequence[Any]] = None,
    ) -> list[ModelType]:
        stmt = self._apply_filters(select(self.model), filters)
        if order_by:
            stmt = stmt.order_by(*order_by)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    @store_call
    async def insert(self, values: Dict[str, Any]) -> ModelType:
        obj = self.model(**values)
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    @store_call
    async def delete(self, obj: ModelType) -> None:
        await self.session.delete(obj)
        await self.session.flush()

    @store_call
    async def commit(self) -> None:
        await self.session.commit()
