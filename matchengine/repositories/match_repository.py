"""
Match repository: canonical, one-row-per-unordered-pair match store.

All writes take a ``MatchKey`` (see ``matchengine.utils.pairs``) so the
``user_a_id < user_b_id`` ordering is fixed before SQL is issued.
"""

from __future__ import annotations
from typing import List, Optional, Tuple
from uuid import UUID
from datetime import datetime
from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from matchengine.models.match import Match
from matchengine.utils.pairs import MatchKey
from matchengine.utils.time import utcnow
from .base import BaseRepository

logger = logging.getLogger(__name__)


class MatchRepository(BaseRepository[Match]):
    """
    Repository for Match model.

    Provides methods for:
    - Looking up the canonical row for a pair
    - Race-safe get-or-create on the canonical pair key
    - Deactivation (matches are never deleted)
    """

    def __init__(self):
        """Initialize with Match model."""
        super().__init__(Match)

    async def get_by_pair(
        self,
        db: AsyncSession,
        key: MatchKey
    ) -> Optional[Match]:
        try:
            stmt = select(Match).where(
                Match.user_a_id == key.user_a_id,
                Match.user_b_id == key.user_b_id,
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching match for pair {key}: {e}")
            raise

    async def get_or_create(
        self,
        db: AsyncSession,
        key: MatchKey,
        compatibility_score: float,
        match_context: dict,
        now: Optional[datetime] = None
    ) -> Tuple[Match, bool]:
        """
        Return the canonical match for ``key``, inserting it if absent.

        The insert runs in a savepoint. If a concurrent transaction wins the
        race, the unique pair constraint fires, only the savepoint is rolled
        back, and the winner's row is returned.

        Args:
            db: Active database session
            key: Canonical pair
            compatibility_score: Score to store on a new row (1-99)
            match_context: Provenance and breakdown to store on a new row
            now: Timestamp for ``matched_at``

        Returns:
            Tuple of (match, created). An existing row is returned unchanged,
            including an inactive one.

        Example:
            match, created = await repo.get_or_create(db, canonical_pair(a, b), 82.5, {"source": "mutual_like"})
        """
        existing = await self.get_by_pair(db, key)
        if existing is not None:
            return existing, False

        match = Match(
            user_a_id=key.user_a_id,
            user_b_id=key.user_b_id,
            compatibility_score=compatibility_score,
            match_context=match_context,
            is_active=True,
            matched_at=now or utcnow(),
        )
        try:
            async with db.begin_nested():
                db.add(match)
                await db.flush()
        except IntegrityError:
            logger.info(f"Concurrent match insert for pair {key}; returning existing row")
            existing = await self.get_by_pair(db, key)
            if existing is None:
                raise
            return existing, False
        return match, True

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: UUID,
        active_only: bool = True
    ) -> List[Match]:
        try:
            stmt = select(Match).where(or_(Match.user_a_id == user_id, Match.user_b_id == user_id))
            if active_only:
                stmt = stmt.where(Match.is_active.is_(True))
            stmt = stmt.order_by(Match.matched_at.desc())
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing matches for user {user_id}: {e}")
            raise

    async def deactivate(
        self,
        db: AsyncSession,
        match: Match,
        now: Optional[datetime] = None
    ) -> Match:
        try:
            match.is_active = False
            match.unmatched_at = now or utcnow()
            await db.flush()
            return match
        except SQLAlchemyError as e:
            logger.error(f"Error deactivating match {match.id}: {e}")
            raise
