"""
Daily interaction quotas.

One primitive, ``QuotaService.usage``, computes the actor's limits and
counts for their local calendar day. The read path (``get_daily_limits``)
and the write path (``check``) both go through it, so the two can never
disagree about where "today" starts or what counts.
"""

from __future__ import annotations
from typing import Dict, Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from matchengine.core.config import settings
from matchengine.core.exceptions import QuotaExceededError
from matchengine.models.enums import InteractionKind
from matchengine.models.user import User
from matchengine.repositories.interaction_repository import InteractionRepository
from matchengine.schemas.interaction import DailyLimits
from matchengine.utils.time import ensure_utc, local_day_bounds, utcnow

logger = logging.getLogger(__name__)

# Kinds that carry a daily quota; everything else is unlimited
QUOTA_KINDS = (InteractionKind.LIKE, InteractionKind.SUPER_LIKE)


class QuotaService:
    """
    Service computing and enforcing per-day interaction quotas.

    Limits come from settings: likes are capped for free users only,
    super likes are capped for both tiers.
    """

    def __init__(
        self,
        interaction_repo: Optional[InteractionRepository] = None
    ):
        """
        Initialize service with repositories.

        Args:
            interaction_repo: InteractionRepository instance (creates new if None)
        """
        self.interaction_repo = interaction_repo or InteractionRepository()

    @staticmethod
    def get_limits(is_premium: bool) -> Dict[InteractionKind, Optional[int]]:
        """
        Get the daily limit per quota-bearing kind for a tier.

        Args:
            is_premium: Whether the actor currently has premium

        Returns:
            Mapping of kind to limit (None = unlimited)
        """
        if is_premium:
            return {
                InteractionKind.LIKE: None,
                InteractionKind.SUPER_LIKE: settings.premium_daily_super_likes,
            }
        return {
            InteractionKind.LIKE: settings.free_daily_likes,
            InteractionKind.SUPER_LIKE: settings.free_daily_super_likes,
        }

    async def usage(
        self,
        db: AsyncSession,
        user: User,
        now: Optional[datetime] = None
    ) -> DailyLimits:
        """
        Compute limits, usage and remaining quota for the user's local day.

        Undone interactions still count toward the day's usage.

        Args:
            db: Active database session
            user: Acting user (tier and timezone are read from it)
            now: Reference instant (defaults to the current time)

        Returns:
            DailyLimits snapshot

        Example:
            limits = await quota_service.usage(db, user)
            print(limits.remaining["like"])
        """
        now = ensure_utc(now or utcnow())
        start, end = local_day_bounds(user.timezone, now)
        is_premium = user.has_premium(now)

        counts = await self.interaction_repo.count_by_kind_between(db, user.id, start, end)
        limits = self.get_limits(is_premium)

        used = {kind.value: counts.get(kind, 0) for kind in QUOTA_KINDS}
        remaining = {
            kind.value: (None if limit is None else max(0, limit - used[kind.value]))
            for kind, limit in limits.items()
        }

        return DailyLimits(
            limits={kind.value: limit for kind, limit in limits.items()},
            used=used,
            remaining=remaining,
            is_premium=is_premium,
            resets_at=end,
        )

    async def check(
        self,
        db: AsyncSession,
        user: User,
        kind: InteractionKind,
        now: Optional[datetime] = None
    ) -> DailyLimits:
        """
        Raise QuotaExceededError if ``kind`` is exhausted for today.

        Callers hold the actor's row lock so the count cannot go stale
        between this check and the insert.

        Returns:
            The DailyLimits snapshot the decision was made on
        """
        limits = await self.usage(db, user, now)
        if kind not in QUOTA_KINDS:
            return limits

        limit = limits.limits[kind.value]
        used = limits.used[kind.value]
        if limit is not None and used >= limit:
            logger.info(f"User {user.id} hit daily {kind.value} limit ({used}/{limit})")
            raise QuotaExceededError(kind.value, limit, used)
        return limits


# Create singleton instance
quota_service = QuotaService()
