"""
Unit tests for QuotaService.

The interaction repository is replaced with AsyncMock objects so tests run
without a database; the interesting parts are the tier limits and the local
day boundary handed to the repository.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from matchengine.core.exceptions import QuotaExceededError
from matchengine.models.enums import InteractionKind
from matchengine.models.user import User
from matchengine.services.quota_service import QuotaService

NOW = datetime(2026, 3, 10, 3, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------
def _make_user(is_premium: bool = False, tz: str = "UTC", premium_expires_at=None) -> User:
    user = User()
    user.id = uuid.uuid4()
    user.is_premium = is_premium
    user.premium_expires_at = premium_expires_at
    user.timezone = tz
    return user


def _make_service(counts: dict | None = None) -> tuple[QuotaService, MagicMock]:
    repo = MagicMock()
    repo.count_by_kind_between = AsyncMock(return_value=counts or {})
    return QuotaService(interaction_repo=repo), repo


# ---------------------------------------------------------------------------
# get_limits
# ---------------------------------------------------------------------------
class TestGetLimits:
    def test_free_tier(self):
        limits = QuotaService.get_limits(is_premium=False)
        assert limits == {InteractionKind.LIKE: 20, InteractionKind.SUPER_LIKE: 1}

    def test_premium_tier_has_unlimited_likes(self):
        limits = QuotaService.get_limits(is_premium=True)
        assert limits == {InteractionKind.LIKE: None, InteractionKind.SUPER_LIKE: 5}


# ---------------------------------------------------------------------------
# usage
# ---------------------------------------------------------------------------
class TestUsage:
    async def test_remaining_is_limit_minus_used(self):
        service, _ = _make_service({InteractionKind.LIKE: 7, InteractionKind.PASS: 40})
        db = AsyncMock()

        limits = await service.usage(db, _make_user(), NOW)

        assert limits.used == {"like": 7, "super_like": 0}
        assert limits.remaining == {"like": 13, "super_like": 1}
        assert limits.is_premium is False

    async def test_premium_remaining_likes_is_unlimited(self):
        service, _ = _make_service({InteractionKind.LIKE: 150})
        limits = await service.usage(AsyncMock(), _make_user(is_premium=True), NOW)

        assert limits.limits["like"] is None
        assert limits.remaining["like"] is None
        assert limits.used["like"] == 150

    async def test_expired_premium_counts_as_free(self):
        user = _make_user(is_premium=True, premium_expires_at=NOW - timedelta(days=1))
        service, _ = _make_service()

        limits = await service.usage(AsyncMock(), user, NOW)

        assert limits.is_premium is False
        assert limits.limits["like"] == 20

    async def test_day_boundary_follows_user_timezone(self):
        # 03:00 UTC on Mar 10 is still Mar 9 in New York (EDT, UTC-4)
        service, repo = _make_service()
        user = _make_user(tz="America/New_York")

        limits = await service.usage(AsyncMock(), user, NOW)

        _, actor_id, start, end = repo.count_by_kind_between.call_args.args
        assert actor_id == user.id
        assert start == datetime(2026, 3, 9, 4, 0, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 10, 4, 0, tzinfo=timezone.utc)
        assert limits.resets_at == end

    async def test_unknown_timezone_falls_back_to_utc(self):
        service, repo = _make_service()

        await service.usage(AsyncMock(), _make_user(tz="Mars/Olympus_Mons"), NOW)

        _, _, start, end = repo.count_by_kind_between.call_args.args
        assert start == datetime(2026, 3, 10, tzinfo=timezone.utc)
        assert end == datetime(2026, 3, 11, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------
class TestCheck:
    async def test_free_user_at_like_limit_is_rejected(self):
        service, _ = _make_service({InteractionKind.LIKE: 20})

        with pytest.raises(QuotaExceededError) as exc_info:
            await service.check(AsyncMock(), _make_user(), InteractionKind.LIKE, NOW)

        assert exc_info.value.status_code == 429
        assert exc_info.value.context["limit"] == 20

    async def test_free_user_below_limit_passes(self):
        service, _ = _make_service({InteractionKind.LIKE: 19})
        limits = await service.check(AsyncMock(), _make_user(), InteractionKind.LIKE, NOW)
        assert limits.remaining["like"] == 1

    async def test_premium_user_is_not_limited_on_likes(self):
        service, _ = _make_service({InteractionKind.LIKE: 500})
        await service.check(AsyncMock(), _make_user(is_premium=True), InteractionKind.LIKE, NOW)

    async def test_premium_super_like_limit(self):
        service, _ = _make_service({InteractionKind.SUPER_LIKE: 5})
        with pytest.raises(QuotaExceededError):
            await service.check(AsyncMock(), _make_user(is_premium=True), InteractionKind.SUPER_LIKE, NOW)

    @pytest.mark.parametrize("kind", [InteractionKind.PASS, InteractionKind.BLOCK, InteractionKind.REPORT])
    async def test_unlimited_kinds(self, kind):
        service, _ = _make_service({kind: 10_000, InteractionKind.LIKE: 20})
        await service.check(AsyncMock(), _make_user(), kind, NOW)
