"""
Interaction ledger: records swipes, enforces daily quotas and turns
reciprocated likes into canonical matches.

``record_interaction`` is an explicit pipeline that runs inside the caller's
transaction:

1. lock both users' rows in canonical pair order (serialises the quota
   check with the insert, and reciprocal likes on the same pair)
2. validate target, blocks, duplicates and quota
3. insert the interaction, then on a like/super like look for the
   reciprocal row and, if found, mark both mutual and create the match,
   all inside one savepoint

The caller commits.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from uuid import UUID
from datetime import datetime, timedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from matchengine.core.config import settings
from matchengine.core.exceptions import (
    DuplicateInteractionError,
    InteractionBlockedError,
    InteractionNotFoundError,
    SelfInteractionError,
    UndoNotAllowedError,
    UserNotFoundError,
)
from matchengine.models.enums import InteractionKind
from matchengine.models.interaction import Interaction
from matchengine.models.match import Match
from matchengine.models.user import User
from matchengine.repositories.interaction_repository import InteractionRepository
from matchengine.repositories.user_repository import UserRepository
from matchengine.schemas.interaction import DailyLimits
from matchengine.services.match_service import MatchService, match_service as default_match_service
from matchengine.services.quota_service import QuotaService
from matchengine.utils.pairs import canonical_pair
from matchengine.utils.time import ensure_utc, utcnow

logger = structlog.get_logger(__name__)

# Kinds that can be reciprocated into a match
RECIPROCAL_KINDS = (InteractionKind.LIKE, InteractionKind.SUPER_LIKE)


@dataclass
class InteractionOutcome:
    interaction: Interaction
    match: Optional[Match]
    quota: DailyLimits

    @property
    def is_match(self) -> bool:
        return self.match is not None


class InteractionService:
    """
    Service for the swipe ledger.

    This service coordinates between repositories and implements:
    - Self / duplicate / block validation
    - Daily quota enforcement (shared primitive with the read path)
    - Reciprocity detection and atomic match creation
    - Premium undo within a short window
    """

    def __init__(
        self,
        interaction_repo: Optional[InteractionRepository] = None,
        user_repo: Optional[UserRepository] = None,
        quota_service: Optional[QuotaService] = None,
        match_service: Optional[MatchService] = None
    ):
        """
        Initialize service with repositories.

        Args:
            interaction_repo: InteractionRepository instance (creates new if None)
            user_repo: UserRepository instance (creates new if None)
            quota_service: QuotaService sharing ``interaction_repo`` (creates new if None)
            match_service: MatchService instance (module singleton if None)
        """
        self.interaction_repo = interaction_repo or InteractionRepository()
        self.user_repo = user_repo or UserRepository()
        self.quota_service = quota_service or QuotaService(self.interaction_repo)
        self.match_service = match_service or default_match_service

    async def record_interaction(
        self,
        db: AsyncSession,
        actor: User,
        target_id: UUID,
        kind: InteractionKind,
        now: Optional[datetime] = None
    ) -> InteractionOutcome:
        """
        Record ``actor -> target`` and create a match on reciprocity.

        Args:
            db: Active database session (caller commits)
            actor: Acting user
            target_id: UUID of the user being acted on
            kind: Interaction kind
            now: Reference instant for the quota day (defaults to now)

        Returns:
            InteractionOutcome with the new row, the match if one was
            created or found, and the post-write quota snapshot

        Raises:
            SelfInteractionError: Actor and target are the same user
            UserNotFoundError: Target missing or inactive
            InteractionBlockedError: Target has blocked the actor
            DuplicateInteractionError: A live row already exists for the pair
            QuotaExceededError: Daily limit for ``kind`` reached

        Example:
            outcome = await interaction_service.record_interaction(db, user, target_id, InteractionKind.LIKE)
            await db.commit()
            if outcome.is_match:
                ...
        """
        kind = InteractionKind(kind)
        now = ensure_utc(now or utcnow())
        log = logger.bind(actor_id=str(actor.id), target_id=str(target_id), kind=kind.value)

        if actor.id == target_id:
            raise SelfInteractionError("You cannot interact with yourself")

        locked = await self.user_repo.lock_pair(db, canonical_pair(actor.id, target_id))
        locked_actor = locked.get(actor.id)
        if locked_actor is None:
            raise UserNotFoundError("Acting user not found")

        target = locked.get(target_id)
        if target is None or not target.is_active:
            raise UserNotFoundError("Target user not found")

        if await self.interaction_repo.has_blocked(db, target_id, actor.id):
            raise InteractionBlockedError("This user is not available")

        if await self.interaction_repo.get_live(db, actor.id, target_id) is not None:
            raise DuplicateInteractionError("You have already interacted with this user")

        await self.quota_service.check(db, locked_actor, kind, now)

        match = None
        async with db.begin_nested():
            try:
                async with db.begin_nested():
                    interaction = await self.interaction_repo.create(
                        db,
                        {
                            "actor_id": actor.id,
                            "target_id": target_id,
                            "kind": kind,
                            "created_at": now,
                        },
                    )
            except IntegrityError:
                # Lost a race with an identical request
                raise DuplicateInteractionError("You have already interacted with this user")

            if kind in RECIPROCAL_KINDS:
                reciprocal = await self.interaction_repo.get_reciprocal(db, actor.id, target_id, kind)
                if reciprocal is not None:
                    await self.interaction_repo.mark_mutual(db, interaction, reciprocal)
                    match = await self.match_service.create_mutual_match(db, actor.id, target_id, now)

            if kind is InteractionKind.BLOCK:
                deactivated = await self.match_service.deactivate_between(db, actor.id, target_id, now)
                if deactivated is not None:
                    log.info("match_deactivated_by_block", match_id=str(deactivated.id))

        quota = await self.quota_service.usage(db, locked_actor, now)
        log.info("interaction_recorded", is_mutual=interaction.is_mutual)
        return InteractionOutcome(interaction=interaction, match=match, quota=quota)

    async def get_daily_limits(
        self,
        db: AsyncSession,
        user: User,
        now: Optional[datetime] = None
    ) -> DailyLimits:
        """
        Read-only quota snapshot, computed exactly as the write path does.

        Example:
            limits = await interaction_service.get_daily_limits(db, user)
            print(f"{limits.remaining['like']} likes left today")
        """
        return await self.quota_service.usage(db, user, now)

    async def undo_interaction(
        self,
        db: AsyncSession,
        actor: User,
        interaction_id: UUID,
        now: Optional[datetime] = None
    ) -> Interaction:
        """
        Undo one of the actor's recent interactions.

        Premium only, within ``settings.undo_window_seconds`` of creation and
        never once the interaction is mutual. The ordered pair is freed; the
        day's quota usage is not refunded.

        Raises:
            InteractionNotFoundError: No such interaction owned by the actor
            UndoNotAllowedError: Tier, window, state or mutual check failed
        """
        now = ensure_utc(now or utcnow())

        interaction = await self.interaction_repo.get(db, interaction_id)
        if interaction is None or interaction.actor_id != actor.id:
            raise InteractionNotFoundError("Interaction not found")

        if not actor.has_premium(now):
            raise UndoNotAllowedError("Undo is a premium feature")
        if interaction.is_undone:
            raise UndoNotAllowedError("This interaction has already been undone")
        if interaction.is_mutual:
            raise UndoNotAllowedError("Mutual interactions cannot be undone")

        window = timedelta(seconds=settings.undo_window_seconds)
        if now - ensure_utc(interaction.created_at) > window:
            raise UndoNotAllowedError(
                f"Undo window ({settings.undo_window_seconds} seconds) has expired"
            )

        interaction = await self.interaction_repo.mark_as_undone(db, interaction, now)
        logger.info(
            "interaction_undone",
            actor_id=str(actor.id),
            interaction_id=str(interaction.id),
            kind=InteractionKind(interaction.kind).value,
        )
        return interaction


# Create singleton instance
interaction_service = InteractionService()
