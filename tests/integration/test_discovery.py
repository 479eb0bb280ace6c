"""
Integration tests for candidate discovery and the trait profile repository.
"""

from __future__ import annotations

import pytest

from matchengine.core.cache import RedisProfileCache
from matchengine.models.enums import AttachmentStyle, InteractionKind
from matchengine.repositories.trait_profile_repository import TraitProfileRepository
from matchengine.services.compatibility_service import MISSING_PROFILE
from matchengine.services.discovery_service import DiscoveryService
from tests.factories import (
    InteractionFactory,
    TraitProfileFactory,
    UserFactory,
    create_user_with_profile,
)

# Far from the default factory profile, but still above the discovery threshold
DISTANT_PROFILE = {
    "openness": 20.0,
    "conscientiousness": 20.0,
    "extraversion": 95.0,
    "agreeableness": 20.0,
    "neuroticism": 85.0,
    "attachment_style": AttachmentStyle.AVOIDANT,
    "secure_score": 10.0,
    "avoidant_score": 80.0,
    "compatibility_keywords": ["career_focused"],
}


@pytest.fixture
def service() -> DiscoveryService:
    return DiscoveryService()


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------
class TestRankCandidates:
    async def test_ranked_best_first(self, db_session, service):
        alice = await create_user_with_profile(db_session)
        twin = await create_user_with_profile(db_session)
        opposite = await create_user_with_profile(db_session, profile=DISTANT_PROFILE)

        ranked = await service.rank_candidates(db_session, alice)

        assert [c.user_id for c in ranked] == [twin.id, opposite.id]
        assert ranked[0].compatibility_score > ranked[1].compatibility_score
        assert ranked[0].match_reasons
        assert set(ranked[0].component_scores) >= {"personality_similarity", "attachment_compatibility"}

    async def test_pool_exclusions(self, db_session, service):
        alice = await create_user_with_profile(db_session)
        visible = await create_user_with_profile(db_session)
        passed = await create_user_with_profile(db_session)
        blocker = await create_user_with_profile(db_session)
        await create_user_with_profile(db_session, is_active=False)
        await UserFactory.create_async(db_session)  # no profile

        await InteractionFactory.create_async(
            db_session, actor_id=alice.id, target_id=passed.id, kind=InteractionKind.PASS
        )
        await InteractionFactory.create_async(
            db_session, actor_id=blocker.id, target_id=alice.id, kind=InteractionKind.BLOCK
        )

        ranked = await service.rank_candidates(db_session, alice)
        assert [c.user_id for c in ranked] == [visible.id]

    async def test_undone_interaction_returns_user_to_pool(self, db_session, service):
        alice = await create_user_with_profile(db_session)
        bob = await create_user_with_profile(db_session)
        await InteractionFactory.create_async(
            db_session, actor_id=alice.id, target_id=bob.id, kind=InteractionKind.PASS, is_undone=True
        )

        ranked = await service.rank_candidates(db_session, alice)
        assert [c.user_id for c in ranked] == [bob.id]

    async def test_min_score_threshold(self, db_session, service):
        alice = await create_user_with_profile(db_session)
        twin = await create_user_with_profile(db_session)
        await create_user_with_profile(db_session, profile=DISTANT_PROFILE)

        ranked = await service.rank_candidates(db_session, alice, min_score=80)
        assert [c.user_id for c in ranked] == [twin.id]

    async def test_distance_filter(self, db_session, service):
        alice = await create_user_with_profile(db_session)
        near = await create_user_with_profile(db_session)
        far = await create_user_with_profile(db_session)
        await create_user_with_profile(db_session)  # no distance known

        ranked = await service.rank_candidates(
            db_session, alice, distances_km={near.id: 4.5, far.id: 80.0}, max_distance_km=50
        )

        assert [c.user_id for c in ranked] == [near.id]
        assert ranked[0].distance_km == 4.5

    async def test_limit(self, db_session, service):
        alice = await create_user_with_profile(db_session)
        for _ in range(4):
            await create_user_with_profile(db_session)

        assert len(await service.rank_candidates(db_session, alice, limit=2)) == 2

    async def test_user_without_profile_gets_nothing(self, db_session, service):
        alice = await UserFactory.create_async(db_session)
        await create_user_with_profile(db_session)

        assert await service.rank_candidates(db_session, alice) == []


# ---------------------------------------------------------------------------
# Pair explanation
# ---------------------------------------------------------------------------
class TestExplainPair:
    async def test_explanation_for_close_pair(self, db_session, service):
        alice = await create_user_with_profile(db_session)
        bob = await create_user_with_profile(db_session)

        explanation = await service.explain_pair(db_session, alice, bob.id)

        assert explanation.user_id == alice.id
        assert explanation.other_user_id == bob.id
        assert explanation.result.is_scored
        assert explanation.quality == "Exceptional"
        assert explanation.match_reasons

    async def test_missing_profile(self, db_session, service):
        alice = await create_user_with_profile(db_session)
        bob = await UserFactory.create_async(db_session)

        explanation = await service.explain_pair(db_session, alice, bob.id)

        assert explanation.result.error == MISSING_PROFILE
        assert explanation.quality is None


# ---------------------------------------------------------------------------
# TraitProfileRepository
# ---------------------------------------------------------------------------
class TestTraitProfileRepository:
    async def test_activate_replaces_profile_and_cache(self, db_session, mock_redis):
        repo = TraitProfileRepository(cache=RedisProfileCache())
        user = await UserFactory.create_async(db_session)
        old = await TraitProfileFactory.create_async(db_session, user_id=user.id, openness=40.0)

        cached = await repo.get_active_profile(db_session, user.id)
        assert cached.openness == 40.0
        assert await mock_redis.exists(f"trait_profile:{user.id}")

        new = await repo.activate_profile(
            db_session,
            user.id,
            {
                "openness": 90.0,
                "conscientiousness": 60.0,
                "extraversion": 50.0,
                "agreeableness": 70.0,
                "neuroticism": 35.0,
                "attachment_style": AttachmentStyle.ANXIOUS,
                "anxious_score": 70.0,
            },
        )

        await db_session.refresh(old)
        assert old.is_active is False
        assert new.is_active is True
        assert not await mock_redis.exists(f"trait_profile:{user.id}")

        current = await repo.get_active_profile(db_session, user.id)
        assert current.openness == 90.0
        assert current.attachment_style is AttachmentStyle.ANXIOUS

    async def test_cached_snapshot_is_served(self, db_session):
        repo = TraitProfileRepository(cache=RedisProfileCache())
        user = await create_user_with_profile(db_session)

        first = await repo.get_active_profile(db_session, user.id)
        second = await repo.get_active_profile(db_session, user.id)

        assert first == second

    async def test_bulk_lookup_skips_users_without_profile(self, db_session):
        repo = TraitProfileRepository()
        with_profile = await create_user_with_profile(db_session)
        without = await UserFactory.create_async(db_session)

        profiles = await repo.get_active_profiles(db_session, [with_profile.id, without.id])

        assert set(profiles) == {with_profile.id}
        assert profiles[with_profile.id].compatibility_keywords == frozenset({"family_oriented", "creative"})
