"""
Acceptance state machine for provisional event matches.

State is derived from the per-side flags on ``EventMatch``::

    pending -> user_a_accepted | user_b_accepted -> both_accepted (terminal)

A decline is recorded per side; it does not touch the other side's flags.
When the second acceptance lands the canonical Match is created (or an
existing one for the pair is reused) and both participations move to
``matched``.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from uuid import UUID
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from matchengine.core.exceptions import (
    InvalidAcceptanceTransitionError,
    MatchNotFoundError,
    NotMatchParticipantError,
)
from matchengine.models.enums import AcceptanceState, ParticipationStatus
from matchengine.models.event import EventMatch
from matchengine.models.match import Match
from matchengine.repositories.event_repository import EventRepository
from matchengine.services.match_service import MatchService, match_service as default_match_service
from matchengine.utils.time import ensure_utc, utcnow

logger = structlog.get_logger(__name__)


@dataclass
class AcceptanceOutcome:
    event_match: EventMatch
    state: AcceptanceState
    match: Optional[Match] = None


class MatchAcceptanceService:
    """Service driving EventMatch acceptance and conversion into a Match"""

    def __init__(
        self,
        event_repo: Optional[EventRepository] = None,
        match_service: Optional[MatchService] = None
    ):
        self.event_repo = event_repo or EventRepository()
        self.match_service = match_service or default_match_service

    @staticmethod
    def _side(event_match: EventMatch, user_id: UUID) -> str:
        if user_id == event_match.user_a_id:
            return "a"
        if user_id == event_match.user_b_id:
            return "b"
        raise NotMatchParticipantError("You are not part of this event match")

    async def _lock(self, db: AsyncSession, event_match: EventMatch) -> EventMatch:
        locked = await self.event_repo.get_event_match(db, event_match.id, for_update=True)
        if locked is None:
            raise MatchNotFoundError("Event match not found")
        return locked

    async def accept(
        self,
        db: AsyncSession,
        event_match: EventMatch,
        user_id: UUID,
        now: Optional[datetime] = None
    ) -> AcceptanceOutcome:
        """
        Record one side's acceptance; convert to a Match once both accepted.

        Accepting twice is a no-op.

        Args:
            db: Active database session (caller commits)
            event_match: The provisional match
            user_id: Accepting user
            now: Timestamp for ``matched_at`` (defaults to now)

        Returns:
            AcceptanceOutcome with the resulting state and, when terminal,
            the canonical Match

        Raises:
            NotMatchParticipantError: user is not one of the pair
            InvalidAcceptanceTransitionError: user already declined

        Example:
            outcome = await match_acceptance_service.accept(db, event_match, user.id)
            await db.commit()
            if outcome.state is AcceptanceState.BOTH_ACCEPTED:
                ...
        """
        side = self._side(event_match, user_id)
        event_match = await self._lock(db, event_match)

        if getattr(event_match, f"user_{side}_declined"):
            raise InvalidAcceptanceTransitionError("You already declined this match")

        if event_match.state is AcceptanceState.BOTH_ACCEPTED:
            match = await self.match_service.match_repo.get(db, event_match.match_id) if event_match.match_id else None
            return AcceptanceOutcome(event_match, AcceptanceState.BOTH_ACCEPTED, match)

        setattr(event_match, f"user_{side}_accepted", True)
        await db.flush()

        match = None
        if event_match.state is AcceptanceState.BOTH_ACCEPTED:
            match = await self._complete(db, event_match, ensure_utc(now or utcnow()))

        logger.info(
            "event_match_accepted",
            event_match_id=str(event_match.id),
            user_id=str(user_id),
            state=event_match.state.value,
        )
        return AcceptanceOutcome(event_match, event_match.state, match)

    async def decline(
        self,
        db: AsyncSession,
        event_match: EventMatch,
        user_id: UUID
    ) -> AcceptanceOutcome:
        """
        Record one side's decline; the other side's flags are untouched.

        Raises:
            NotMatchParticipantError: user is not one of the pair
            InvalidAcceptanceTransitionError: both sides already accepted
        """
        side = self._side(event_match, user_id)
        event_match = await self._lock(db, event_match)

        if event_match.state is AcceptanceState.BOTH_ACCEPTED:
            raise InvalidAcceptanceTransitionError("This match is already confirmed")

        setattr(event_match, f"user_{side}_declined", True)
        setattr(event_match, f"user_{side}_accepted", False)
        await db.flush()

        logger.info("event_match_declined", event_match_id=str(event_match.id), user_id=str(user_id))
        return AcceptanceOutcome(event_match, event_match.state)

    async def _complete(self, db: AsyncSession, event_match: EventMatch, now: datetime) -> Match:
        match = await self.match_service.create_event_match(
            db,
            event_match.user_a_id,
            event_match.user_b_id,
            event_id=event_match.event_id,
            compatibility_score=event_match.compatibility_score,
            match_reasons=event_match.match_reasons,
            now=now,
        )
        event_match.matched_at = now
        event_match.match_id = match.id
        await self.event_repo.set_participation_status(
            db,
            event_match.event_id,
            [event_match.user_a_id, event_match.user_b_id],
            ParticipationStatus.MATCHED,
        )
        await db.flush()
        return match


# Create singleton instance
match_acceptance_service = MatchAcceptanceService()
