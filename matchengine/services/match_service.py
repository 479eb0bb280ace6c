"""
Canonical match creation and lifecycle.

Both the mutual-like path and the event-acceptance path create matches
through this service, so ordering, scoring and race recovery live in one
place.
"""

from __future__ import annotations
from typing import Optional
from uuid import UUID
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from matchengine.core.cache import RedisProfileCache
from matchengine.core.exceptions import MatchNotFoundError, NotMatchParticipantError
from matchengine.models.match import Match
from matchengine.repositories.match_repository import MatchRepository
from matchengine.repositories.trait_profile_repository import TraitProfileRepository
from matchengine.repositories.user_repository import UserRepository
from matchengine.schemas.compatibility import BehavioralPatternsProvider
from matchengine.services.compatibility_service import CompatibilityScoringService, compatibility_service
from matchengine.utils.pairs import canonical_pair
from matchengine.utils.time import age_gap_years, ensure_utc, utcnow

logger = structlog.get_logger(__name__)

# Stored when a pair matched but one side has no active profile
UNSCORED_MATCH_SCORE = 50.0

SOURCE_MUTUAL_LIKE = "mutual_like"
SOURCE_EVENT = "event"


class MatchService:
    """
    Service for canonical Match rows.

    Provides:
    - Scoring a pair and building its ``match_context``
    - Race-safe get-or-create on the canonical pair
    - Unmatch and block-driven deactivation
    """

    def __init__(
        self,
        match_repo: Optional[MatchRepository] = None,
        profile_repo: Optional[TraitProfileRepository] = None,
        user_repo: Optional[UserRepository] = None,
        scorer: Optional[CompatibilityScoringService] = None,
        behavior_provider: Optional[BehavioralPatternsProvider] = None
    ):
        """
        Initialize service with repositories.

        Args:
            match_repo: MatchRepository instance (creates new if None)
            profile_repo: TraitProfileRepository instance (creates a Redis-cached one if None)
            user_repo: UserRepository instance (creates new if None)
            scorer: Pairwise scorer (module singleton if None)
            behavior_provider: Source of usage patterns; None scores behavior neutrally
        """
        self.match_repo = match_repo or MatchRepository()
        self.profile_repo = profile_repo or TraitProfileRepository(cache=RedisProfileCache())
        self.user_repo = user_repo or UserRepository()
        self.scorer = scorer or compatibility_service
        self.behavior_provider = behavior_provider

    async def score_pair(
        self,
        db: AsyncSession,
        user_id: UUID,
        other_id: UUID
    ) -> tuple[float, dict]:
        """
        Score two users and build the breakdown stored on their match.

        Returns:
            Tuple of (compatibility_score, context fragment)
        """
        profile_a = await self.profile_repo.get_active_profile(db, user_id)
        profile_b = await self.profile_repo.get_active_profile(db, other_id)

        behavior_a = behavior_b = None
        if self.behavior_provider is not None:
            behavior_a = await self.behavior_provider.get_patterns(db, user_id)
            behavior_b = await self.behavior_provider.get_patterns(db, other_id)

        gap = None
        user_a = await self.user_repo.get(db, user_id)
        user_b = await self.user_repo.get(db, other_id)
        if user_a is not None and user_b is not None:
            gap = age_gap_years(user_a.date_of_birth, user_b.date_of_birth)

        result = self.scorer.calculate_compatibility(profile_a, profile_b, behavior_a, behavior_b, gap)
        if not result.is_scored:
            return UNSCORED_MATCH_SCORE, {"score_unavailable": True}

        return result.total_score, {"component_scores": result.component_scores.model_dump()}

    async def create_mutual_match(
        self,
        db: AsyncSession,
        user_id: UUID,
        other_id: UUID,
        now: Optional[datetime] = None
    ) -> Match:
        """
        Get or create the canonical match for a reciprocated like.

        Example:
            match = await match_service.create_mutual_match(db, actor.id, target_id)
        """
        key = canonical_pair(user_id, other_id)
        existing = await self.match_repo.get_by_pair(db, key)
        if existing is not None:
            return existing

        score, context = await self.score_pair(db, key.user_a_id, key.user_b_id)
        match, created = await self.match_repo.get_or_create(
            db,
            key,
            compatibility_score=score,
            match_context={"source": SOURCE_MUTUAL_LIKE, **context},
            now=now,
        )
        if created:
            logger.info(
                "match_created",
                source=SOURCE_MUTUAL_LIKE,
                user_a_id=str(key.user_a_id),
                user_b_id=str(key.user_b_id),
                compatibility_score=score,
            )
        return match

    async def create_event_match(
        self,
        db: AsyncSession,
        user_id: UUID,
        other_id: UUID,
        event_id: UUID,
        compatibility_score: float,
        match_reasons: Optional[list] = None,
        now: Optional[datetime] = None
    ) -> Match:
        """
        Get or create the canonical match for a doubly accepted event match.

        An existing match for the pair (e.g. from a mutual like) is reused.
        """
        key = canonical_pair(user_id, other_id)
        score = max(1.0, min(99.0, float(compatibility_score)))
        match, created = await self.match_repo.get_or_create(
            db,
            key,
            compatibility_score=score,
            match_context={
                "source": SOURCE_EVENT,
                "event_id": str(event_id),
                "match_reasons": match_reasons or [],
            },
            now=now,
        )
        if created:
            logger.info(
                "match_created",
                source=SOURCE_EVENT,
                event_id=str(event_id),
                user_a_id=str(key.user_a_id),
                user_b_id=str(key.user_b_id),
                compatibility_score=score,
            )
        return match

    async def unmatch(
        self,
        db: AsyncSession,
        match_id: UUID,
        user_id: UUID,
        now: Optional[datetime] = None
    ) -> Match:
        """
        Deactivate a match on behalf of one of its participants.

        Raises:
            MatchNotFoundError: If the match does not exist
            NotMatchParticipantError: If the user is not part of the match
        """
        match = await self.match_repo.get(db, match_id)
        if match is None:
            raise MatchNotFoundError("Match not found")
        if not match.key.contains(user_id):
            raise NotMatchParticipantError("You are not part of this match")
        if not match.is_active:
            return match

        match = await self.match_repo.deactivate(db, match, ensure_utc(now or utcnow()))
        logger.info("match_unmatched", match_id=str(match.id), by_user_id=str(user_id))
        return match

    async def deactivate_between(
        self,
        db: AsyncSession,
        user_id: UUID,
        other_id: UUID,
        now: Optional[datetime] = None
    ) -> Optional[Match]:
        """Deactivate the pair's active match, if there is one."""
        match = await self.match_repo.get_by_pair(db, canonical_pair(user_id, other_id))
        if match is None or not match.is_active:
            return None
        return await self.match_repo.deactivate(db, match, ensure_utc(now or utcnow()))


# Create singleton instance
match_service = MatchService()
