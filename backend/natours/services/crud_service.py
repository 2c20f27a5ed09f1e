"""
Natours Backend: Generic CRUD Service
=======================================

What:  List / get / create / delete for any Natours model.
How:   Thin wrapper over an AsyncSession. Missing rows become NotFoundError;
       database driver errors (IntegrityError, DataError, ...) propagate
       unchanged so the error normalization layer can classify them.
Who:   Called by the tours, users, reviews and bookings route groups and the
       page routes.

Design Decision:
    Stateless: each call receives the session for the current request, so a
    single module-level instance per model is shared by every request.
"""

import logging
from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar
from uuid import UUID

from sqlalchemy import asc, desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from natours.database import Base
from natours.exceptions import NotFoundError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class CrudService(Generic[ModelT]):
    """
    Business logic layer for one model.

    Args:
        model:     SQLAlchemy model class
        resource:  Human name used in not-found messages ("tour")
    """

    def __init__(self, model: Type[ModelT], resource: str):
        self.model = model
        self.resource = resource

    async def list(
        self,
        db: AsyncSession,
        filters: Optional[Dict[str, Sequence[Any]]] = None,
        sort: Sequence[str] = (),
        limit: int = 100,
        offset: int = 0,
    ) -> List[ModelT]:
        """
        Return rows matching every filter.

        Args:
            filters: column name → allowed values (one value = equality, many = IN)
            sort:    column names, "-name" for descending; default newest first
            limit / offset: pagination window
        """
        query = select(self.model)
        for column_name, values in (filters or {}).items():
            column = getattr(self.model, column_name)
            if len(values) == 1:
                query = query.where(column == values[0])
            else:
                query = query.where(column.in_(values))

        if sort:
            for field in sort:
                descending = field.startswith("-")
                column = getattr(self.model, field.lstrip("-"))
                query = query.order_by(desc(column) if descending else asc(column))
        else:
            query = query.order_by(desc(self.model.created_at))

        query = query.limit(limit).offset(offset)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get(self, db: AsyncSession, item_id: UUID) -> ModelT:
        """
        Raises:
            NotFoundError: no row with that id (→ 404)
        """
        item = await db.get(self.model, item_id)
        if item is None:
            raise NotFoundError(resource=self.resource, resource_id=str(item_id))
        return item

    async def get_by(self, db: AsyncSession, **criteria: Any) -> Optional[ModelT]:
        result = await db.execute(select(self.model).filter_by(**criteria))
        return result.scalar_one_or_none()

    async def create(self, db: AsyncSession, data: Dict[str, Any]) -> ModelT:
        """
        Insert a row and flush so constraint violations surface here.

        Raises:
            IntegrityError: duplicate unique value / unknown foreign key
        """
        item = self.model(**data)
        db.add(item)
        await db.flush()
        await db.refresh(item)
        logger.info("Created %s %s", self.resource, item.id)
        return item

    async def delete(self, db: AsyncSession, item_id: UUID) -> None:
        item = await self.get(db, item_id)
        await db.delete(item)
        await db.flush()
        logger.info("Deleted %s %s", self.resource, item_id)
