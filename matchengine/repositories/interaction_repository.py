"""
Interaction repository for the swipe ledger.

Provides the live-row lookups, reciprocity checks and per-day counts the
interaction pipeline is built on. "Live" means not undone; the partial unique
index on ``(actor_id, target_id)`` guarantees at most one live row per
ordered pair.
"""

from __future__ import annotations
from typing import Dict, Optional, Set
from uuid import UUID
from datetime import datetime
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from matchengine.models.enums import InteractionKind
from matchengine.models.interaction import Interaction
from matchengine.utils.time import utcnow
from .base import BaseRepository

logger = logging.getLogger(__name__)


class InteractionRepository(BaseRepository[Interaction]):
    """
    Repository for Interaction model.

    Provides methods for:
    - Live-row and reciprocal-row lookups
    - Daily counts per kind (quota primitive input)
    - Block checks and exclusion sets for discovery
    - Mutual / undone flag updates
    """

    def __init__(self):
        """Initialize with Interaction model."""
        super().__init__(Interaction)

    async def get_live(
        self,
        db: AsyncSession,
        actor_id: UUID,
        target_id: UUID
    ) -> Optional[Interaction]:
        """
        Get the live (not undone) interaction for an ordered pair.

        Args:
            db: Active database session
            actor_id: UUID of the acting user
            target_id: UUID of the target user

        Returns:
            Interaction if one exists, None otherwise
        """
        try:
            stmt = select(Interaction).where(
                Interaction.actor_id == actor_id,
                Interaction.target_id == target_id,
                Interaction.is_undone.is_(False),
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching interaction {actor_id} -> {target_id}: {e}")
            raise

    async def get_reciprocal(
        self,
        db: AsyncSession,
        actor_id: UUID,
        target_id: UUID,
        kind: InteractionKind
    ) -> Optional[Interaction]:
        """
        Get the live ``target -> actor`` row of the same kind, if any.

        Example:
            reciprocal = await repo.get_reciprocal(db, actor.id, target_id, InteractionKind.LIKE)
            if reciprocal:
                ...  # mutual like
        """
        try:
            stmt = select(Interaction).where(
                Interaction.actor_id == target_id,
                Interaction.target_id == actor_id,
                Interaction.kind == kind,
                Interaction.is_undone.is_(False),
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching reciprocal interaction {target_id} -> {actor_id}: {e}")
            raise

    async def count_by_kind_between(
        self,
        db: AsyncSession,
        actor_id: UUID,
        start: datetime,
        end: datetime
    ) -> Dict[InteractionKind, int]:
        """
        Count an actor's interactions per kind created in ``[start, end)``.

        Undone interactions are included: undoing a like does not refund quota.

        Args:
            db: Active database session
            actor_id: UUID of the acting user
            start: Window start (UTC, inclusive)
            end: Window end (UTC, exclusive)

        Returns:
            Mapping of kind to count (kinds with no rows are omitted)
        """
        try:
            stmt = (
                select(Interaction.kind, func.count(Interaction.id))
                .where(
                    Interaction.actor_id == actor_id,
                    Interaction.created_at >= start,
                    Interaction.created_at < end,
                )
                .group_by(Interaction.kind)
            )
            result = await db.execute(stmt)
            return {InteractionKind(kind): count for kind, count in result.all()}
        except SQLAlchemyError as e:
            logger.error(f"Error counting interactions for user {actor_id}: {e}")
            raise

    async def has_blocked(
        self,
        db: AsyncSession,
        blocker_id: UUID,
        blocked_id: UUID
    ) -> bool:
        """Return True if ``blocker_id`` holds a live block on ``blocked_id``."""
        try:
            stmt = select(func.count(Interaction.id)).where(
                Interaction.actor_id == blocker_id,
                Interaction.target_id == blocked_id,
                Interaction.kind == InteractionKind.BLOCK,
                Interaction.is_undone.is_(False),
            )
            result = await db.execute(stmt)
            return result.scalar_one() > 0
        except SQLAlchemyError as e:
            logger.error(f"Error checking block {blocker_id} -> {blocked_id}: {e}")
            raise

    async def get_interacted_target_ids(
        self,
        db: AsyncSession,
        actor_id: UUID
    ) -> Set[UUID]:
        """Targets the actor currently holds a live interaction with."""
        try:
            stmt = select(Interaction.target_id).where(
                Interaction.actor_id == actor_id,
                Interaction.is_undone.is_(False),
            )
            result = await db.execute(stmt)
            return set(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching interacted targets for user {actor_id}: {e}")
            raise

    async def get_blocker_ids(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> Set[UUID]:
        """Users holding a live block on ``user_id``."""
        try:
            stmt = select(Interaction.actor_id).where(
                Interaction.target_id == user_id,
                Interaction.kind == InteractionKind.BLOCK,
                Interaction.is_undone.is_(False),
            )
            result = await db.execute(stmt)
            return set(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching blockers of user {user_id}: {e}")
            raise

    async def mark_mutual(
        self,
        db: AsyncSession,
        *interactions: Interaction
    ) -> None:
        for interaction in interactions:
            interaction.is_mutual = True
        await db.flush()

    async def mark_as_undone(
        self,
        db: AsyncSession,
        interaction: Interaction,
        now: Optional[datetime] = None
    ) -> Interaction:
        try:
            interaction.is_undone = True
            interaction.undone_at = now or utcnow()
            await db.flush()
            return interaction
        except SQLAlchemyError as e:
            logger.error(f"Error marking interaction {interaction.id} as undone: {e}")
            raise
