"""
User repository: row locks for the interaction pipeline and candidate
pools for discovery.
"""

from __future__ import annotations
from typing import Dict, Iterable, List
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from matchengine.models.trait_profile import TraitProfile
from matchengine.models.user import User
from matchengine.utils.pairs import MatchKey
from .base import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self):
        """Initialize with User model."""
        super().__init__(User)

    async def lock_pair(
        self,
        db: AsyncSession,
        key: MatchKey
    ) -> Dict[UUID, User]:
        """
        Lock both users' rows for the rest of the transaction.

        Rows are locked in ``key`` order, so ``a -> b`` and ``b -> a``
        writes queue on the same pair instead of each holding one row.
        The second of two reciprocal likes therefore reads the first
        after it commits. SQLite ignores ``FOR UPDATE``; it serialises
        writers anyway.

        Returns:
            Mapping of user id to locked User (missing users are absent)
        """
        stmt = (
            select(User)
            .where(User.id.in_(tuple(key)))
            .order_by(User.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Error locking users for pair {key}: {e}")
            raise
        return {user.id: user for user in result.scalars().all()}

    async def get_discoverable(
        self,
        db: AsyncSession,
        exclude_ids: Iterable[UUID],
        limit: int = 500
    ) -> List[User]:
        """
        Active users holding an active trait profile, minus ``exclude_ids``.

        Args:
            db: Active database session
            exclude_ids: Users to leave out (self, already seen, blockers)
            limit: Maximum pool size

        Returns:
            List of User instances
        """
        try:
            has_profile = (
                select(TraitProfile.id)
                .where(TraitProfile.user_id == User.id, TraitProfile.is_active.is_(True))
                .exists()
            )
            stmt = select(User).where(User.is_active.is_(True), has_profile)
            excluded = list(exclude_ids)
            if excluded:
                stmt = stmt.where(User.id.notin_(excluded))
            stmt = stmt.order_by(User.created_at.desc()).limit(limit)
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching discoverable users: {e}")
            raise
