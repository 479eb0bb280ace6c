"""
Candidate discovery: rank potential partners for a user by compatibility.
"""

from __future__ import annotations
from typing import Dict, List, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from matchengine.core.cache import RedisProfileCache
from matchengine.core.config import settings
from matchengine.models.user import User
from matchengine.repositories.interaction_repository import InteractionRepository
from matchengine.repositories.trait_profile_repository import TraitProfileRepository
from matchengine.repositories.user_repository import UserRepository
from matchengine.schemas.compatibility import (
    BehavioralPatternsProvider,
    CompatibilityExplanation,
    RankedCandidate,
)
from matchengine.services.compatibility_service import CompatibilityScoringService, compatibility_service
from matchengine.services.match_explanation_service import match_explanation_service
from matchengine.utils.time import age_gap_years

logger = structlog.get_logger(__name__)


class DiscoveryService:
    """
    Service ranking discoverable users for an actor.

    The pool is active users with an active profile, minus the actor, anyone
    the actor already holds a live interaction with, and anyone who blocked
    the actor. Distances are supplied by the caller (precomputed elsewhere).
    """

    def __init__(
        self,
        user_repo: Optional[UserRepository] = None,
        profile_repo: Optional[TraitProfileRepository] = None,
        interaction_repo: Optional[InteractionRepository] = None,
        scorer: Optional[CompatibilityScoringService] = None,
        behavior_provider: Optional[BehavioralPatternsProvider] = None
    ):
        self.user_repo = user_repo or UserRepository()
        self.profile_repo = profile_repo or TraitProfileRepository(cache=RedisProfileCache())
        self.interaction_repo = interaction_repo or InteractionRepository()
        self.scorer = scorer or compatibility_service
        self.behavior_provider = behavior_provider

    async def rank_candidates(
        self,
        db: AsyncSession,
        user: User,
        limit: int = 20,
        distances_km: Optional[Dict[UUID, float]] = None,
        max_distance_km: Optional[float] = None,
        min_score: Optional[float] = None
    ) -> List[RankedCandidate]:
        """
        Score the discoverable pool against ``user`` and return the best.

        Args:
            db: Active database session
            user: The user browsing
            limit: Maximum number of candidates returned
            distances_km: Precomputed distance per candidate id. When given,
                candidates without an entry or beyond ``max_distance_km``
                are dropped.
            max_distance_km: Distance cutoff (defaults to settings)
            min_score: Scores must exceed this (defaults to settings)

        Returns:
            Candidates sorted by compatibility, highest first

        Example:
            candidates = await discovery_service.rank_candidates(db, user, limit=10)
        """
        log = logger.bind(user_id=str(user.id))
        threshold = settings.discovery_min_score if min_score is None else min_score
        cutoff = settings.discovery_max_distance_km if max_distance_km is None else max_distance_km

        own_profile = await self.profile_repo.get_active_profile(db, user.id)
        if own_profile is None:
            log.info("discovery_skipped_missing_profile")
            return []

        excluded = {user.id}
        excluded |= await self.interaction_repo.get_interacted_target_ids(db, user.id)
        excluded |= await self.interaction_repo.get_blocker_ids(db, user.id)

        pool = await self.user_repo.get_discoverable(db, excluded)
        if distances_km is not None:
            pool = [c for c in pool if c.id in distances_km and distances_km[c.id] <= cutoff]

        profiles = await self.profile_repo.get_active_profiles(db, [c.id for c in pool])
        own_behavior = None
        if self.behavior_provider is not None:
            own_behavior = await self.behavior_provider.get_patterns(db, user.id)

        ranked = []
        for candidate in pool:
            profile = profiles.get(candidate.id)
            if profile is None:
                continue
            behavior = None
            if self.behavior_provider is not None:
                behavior = await self.behavior_provider.get_patterns(db, candidate.id)

            result = self.scorer.calculate_compatibility(
                own_profile,
                profile,
                own_behavior,
                behavior,
                age_gap_years(user.date_of_birth, candidate.date_of_birth),
            )
            if not result.is_scored or result.total_score <= threshold:
                continue

            ranked.append(RankedCandidate(
                user_id=candidate.id,
                compatibility_score=result.total_score,
                distance_km=distances_km.get(candidate.id) if distances_km else None,
                match_reasons=match_explanation_service.get_match_reasons(result),
                component_scores=result.component_scores.model_dump(),
            ))

        ranked.sort(key=lambda c: c.compatibility_score, reverse=True)
        log.info("discovery_ranked", pool=len(pool), ranked=len(ranked))
        return ranked[:limit]

    async def explain_pair(
        self,
        db: AsyncSession,
        user: User,
        other_id: UUID
    ) -> CompatibilityExplanation:
        """Full compatibility bundle plus explanation for one other user"""
        profile_a = await self.profile_repo.get_active_profile(db, user.id)
        profile_b = await self.profile_repo.get_active_profile(db, other_id)
        other = await self.user_repo.get(db, other_id)
        gap = age_gap_years(user.date_of_birth, other.date_of_birth) if other is not None else None
        behavior_a = behavior_b = None
        if self.behavior_provider is not None:
            behavior_a = await self.behavior_provider.get_patterns(db, user.id)
            behavior_b = await self.behavior_provider.get_patterns(db, other_id)
        result = self.scorer.calculate_compatibility(profile_a, profile_b, behavior_a, behavior_b, gap)
        return match_explanation_service.explain(user.id, other_id, result)


# Create singleton instance
discovery_service = DiscoveryService()
