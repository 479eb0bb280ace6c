import json
import logging
import uuid
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

from matchengine.core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None


# ── Connection pool ───────────────────────────────────────────────────────────

async def get_redis_pool() -> ConnectionPool:
    global _pool
    if _pool is None:
        _pool = ConnectionPool.from_url(
            settings.redis_url,
            max_connections=settings.redis_pool_size,
            decode_responses=True,
        )
        logger.info("Redis connection pool created: %s", settings.redis_url)
    return _pool


async def get_redis() -> Redis:
    pool = await get_redis_pool()
    return Redis(connection_pool=pool)


async def close_redis_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.aclose()
        _pool = None
        logger.info("Redis connection pool closed")


# ── Serialization helpers ─────────────────────────────────────────────────────

def _serialize_profile_snapshot(snapshot) -> dict:
    return {
        "user_id": str(snapshot.user_id),
        "openness": snapshot.openness,
        "conscientiousness": snapshot.conscientiousness,
        "extraversion": snapshot.extraversion,
        "agreeableness": snapshot.agreeableness,
        "neuroticism": snapshot.neuroticism,
        "attachment_style": snapshot.attachment_style.value,
        "secure_score": snapshot.secure_score,
        "anxious_score": snapshot.anxious_score,
        "avoidant_score": snapshot.avoidant_score,
        "compatibility_keywords": sorted(snapshot.compatibility_keywords),
        "profile_strength": snapshot.profile_strength,
    }


def _deserialize_profile_snapshot(data: dict):
    from matchengine.models.enums import AttachmentStyle
    from matchengine.schemas.compatibility import ProfileSnapshot

    return ProfileSnapshot(
        user_id=uuid.UUID(data["user_id"]),
        openness=float(data["openness"]),
        conscientiousness=float(data["conscientiousness"]),
        extraversion=float(data["extraversion"]),
        agreeableness=float(data["agreeableness"]),
        neuroticism=float(data["neuroticism"]),
        attachment_style=AttachmentStyle(data["attachment_style"]),
        secure_score=float(data["secure_score"]),
        anxious_score=float(data["anxious_score"]),
        avoidant_score=float(data["avoidant_score"]),
        compatibility_keywords=frozenset(data.get("compatibility_keywords") or ()),
        profile_strength=float(data["profile_strength"]),
    )


# ── Profile cache ─────────────────────────────────────────────────────────────

class RedisProfileCache:
    """
    Redis-backed cache of active trait profile snapshots.

    Injected into ``TraitProfileRepository``; every failure is logged and
    treated as a miss so the database stays the source of truth.
    """

    key_prefix = "trait_profile"

    def __init__(self, ttl: Optional[int] = None):
        self.ttl = ttl if ttl is not None else settings.profile_cache_ttl

    def _key(self, user_id) -> str:
        return f"{self.key_prefix}:{user_id}"

    async def get(self, user_id):
        """Return a cached ProfileSnapshot, or None on miss/error."""
        try:
            r = await get_redis()
            raw = await r.get(self._key(user_id))
            if raw:
                return _deserialize_profile_snapshot(json.loads(raw))
        except Exception:
            logger.warning("Profile cache read failed for %s", user_id, exc_info=True)
        return None

    async def set(self, user_id, snapshot) -> None:
        try:
            r = await get_redis()
            await r.setex(
                self._key(user_id),
                self.ttl,
                json.dumps(_serialize_profile_snapshot(snapshot)),
            )
        except Exception:
            logger.warning("Profile cache write failed for %s", user_id, exc_info=True)

    async def invalidate(self, user_id) -> None:
        try:
            r = await get_redis()
            await r.delete(self._key(user_id))
        except Exception:
            logger.warning("Profile cache invalidation failed for %s", user_id, exc_info=True)
