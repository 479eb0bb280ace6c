"""
Shared persistence helpers for the aggregate repositories.

Repositories only ``flush``. The session owner commits, so a whole engine
operation (interaction + mutual flags + match, or a batch of event matches)
lands in one transaction, and repositories never roll back on the caller's
behalf: a failed insert inside ``db.begin_nested()`` only unwinds that
savepoint.
"""

from __future__ import annotations
from typing import Generic, TypeVar, Type, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """
    Lookup by primary key, optional row lock, and insert for one model.

    Example:
        class MatchRepository(BaseRepository[Match]):
            def __init__(self):
                super().__init__(Match)
    """

    def __init__(self, model: Type[ModelT]):
        self.model = model

    @property
    def _name(self) -> str:
        return self.model.__name__

    async def get(
        self,
        db: AsyncSession,
        id: UUID,
        for_update: bool = False
    ) -> Optional[ModelT]:
        """
        Fetch one row by id.

        With ``for_update`` the row stays locked until the surrounding
        transaction ends, and the identity-map copy is refreshed from the
        locked read so checks run against current values.
        """
        stmt = select(self.model).where(self.model.id == id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching {self._name} {id} (for_update={for_update}): {e}")
            raise
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        obj_in: dict
    ) -> ModelT:
        """
        Insert a row from ``obj_in`` and return it with server defaults loaded.

        Raises:
            IntegrityError: A constraint rejected the row. Callers racing on a
                unique key wrap the call in ``db.begin_nested()``.
        """
        db_obj = self.model(**obj_in)
        db.add(db_obj)
        try:
            await db.flush()
            await db.refresh(db_obj)
        except IntegrityError as e:
            logger.warning(f"Constraint violation inserting {self._name}: {e.orig}")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error inserting {self._name}: {e}")
            raise
        return db_obj
