"""
Trait profile repository: read access to the active profile per user.

Scoring code never sees ORM rows; it receives ``ProfileSnapshot`` values so
it stays pure and can be shipped to worker processes. An optional cache
(see ``matchengine.core.cache.RedisProfileCache``) is injected by the caller.
"""

from __future__ import annotations
from typing import Dict, Iterable, Optional, Protocol
from uuid import UUID
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging

from matchengine.models.trait_profile import TraitProfile
from matchengine.schemas.compatibility import ProfileSnapshot
from .base import BaseRepository

logger = logging.getLogger(__name__)


class ProfileCache(Protocol):
    async def get(self, user_id: UUID) -> Optional[ProfileSnapshot]: ...

    async def set(self, user_id: UUID, snapshot: ProfileSnapshot) -> None: ...

    async def invalidate(self, user_id: UUID) -> None: ...


class TraitProfileRepository(BaseRepository[TraitProfile]):
    """
    Repository for TraitProfile with active-profile lookups.

    Provides methods for:
    - Fetching a user's active profile as a snapshot (cache-aside)
    - Bulk-fetching snapshots for candidate ranking
    - Activating a freshly scored profile (deactivating the previous one)
    """

    def __init__(self, cache: Optional[ProfileCache] = None):
        """
        Initialize with TraitProfile model.

        Args:
            cache: Optional snapshot cache; None disables caching
        """
        super().__init__(TraitProfile)
        self.cache = cache

    async def get_active_model(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> Optional[TraitProfile]:
        try:
            stmt = (
                select(TraitProfile)
                .where(TraitProfile.user_id == user_id, TraitProfile.is_active.is_(True))
                .order_by(TraitProfile.created_at.desc())
                .limit(1)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching active profile for user {user_id}: {e}")
            raise

    async def get_active_profile(
        self,
        db: AsyncSession,
        user_id: UUID
    ) -> Optional[ProfileSnapshot]:
        """
        Return the user's active profile snapshot, or None if they have none.

        Args:
            db: Active database session
            user_id: UUID of the profile owner

        Returns:
            ProfileSnapshot or None

        Example:
            profile = await repo.get_active_profile(db, user_id)
            result = compatibility_service.calculate_compatibility(profile, other)
        """
        if self.cache is not None:
            cached = await self.cache.get(user_id)
            if cached is not None:
                return cached

        profile = await self.get_active_model(db, user_id)
        if profile is None:
            return None

        snapshot = ProfileSnapshot.from_model(profile)
        if self.cache is not None:
            await self.cache.set(user_id, snapshot)
        return snapshot

    async def get_active_profiles(
        self,
        db: AsyncSession,
        user_ids: Iterable[UUID]
    ) -> Dict[UUID, ProfileSnapshot]:
        """
        Bulk variant of ``get_active_profile``; users without a profile are absent.

        Bypasses the cache: one query beats N round-trips for ranking.
        """
        ids = list(set(user_ids))
        if not ids:
            return {}
        try:
            stmt = (
                select(TraitProfile)
                .where(TraitProfile.user_id.in_(ids), TraitProfile.is_active.is_(True))
                .order_by(TraitProfile.created_at)
            )
            result = await db.execute(stmt)
            # Later rows win if a user somehow has two active profiles
            return {p.user_id: ProfileSnapshot.from_model(p) for p in result.scalars().all()}
        except SQLAlchemyError as e:
            logger.error(f"Error bulk-fetching active profiles: {e}")
            raise

    async def activate_profile(
        self,
        db: AsyncSession,
        user_id: UUID,
        obj_in: dict
    ) -> TraitProfile:
        """
        Store a full re-score as the new active profile.

        The previous active profile is deactivated in the same transaction and
        the cached snapshot is dropped.

        Args:
            db: Active database session
            user_id: UUID of the profile owner
            obj_in: Trait/attachment fields of the new profile

        Returns:
            The newly created, active TraitProfile
        """
        try:
            await db.execute(
                update(TraitProfile)
                .where(TraitProfile.user_id == user_id, TraitProfile.is_active.is_(True))
                .values(is_active=False)
            )
        except SQLAlchemyError as e:
            logger.error(f"Error deactivating profiles for user {user_id}: {e}")
            raise

        profile = await self.create(db, {**obj_in, "user_id": user_id, "is_active": True})
        if self.cache is not None:
            await self.cache.invalidate(user_id)
        logger.info(f"Activated trait profile {profile.id} for user {user_id}")
        return profile
