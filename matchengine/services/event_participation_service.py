"""
Event participation lifecycle: join, answer, abandon, read results.

Transitions: ``joined -> completed -> matched`` and ``joined -> abandoned``.
Completion is one-way; the move to ``matched`` happens in the acceptance
state machine.
"""

from __future__ import annotations
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from matchengine.core.exceptions import EventNotFoundError, EventParticipationError
from matchengine.models.enums import EventStatus, ParticipationStatus
from matchengine.models.event import EventMatch, EventParticipation, WeeklyEvent
from matchengine.models.user import User
from matchengine.repositories.event_repository import EventRepository
from matchengine.utils.time import ensure_utc, utcnow

logger = structlog.get_logger(__name__)

OPEN_STATUSES = (EventStatus.SCHEDULED, EventStatus.ACTIVE)
RESULT_STATUSES = (EventStatus.PROCESSING, EventStatus.COMPLETED)
FINISHED_PARTICIPATION = (ParticipationStatus.COMPLETED, ParticipationStatus.MATCHED)


class EventParticipationService:
    """Service for a user's participation in a weekly event"""

    def __init__(self, event_repo: Optional[EventRepository] = None):
        self.event_repo = event_repo or EventRepository()

    async def _get_event(self, db: AsyncSession, event_id: UUID, for_update: bool = False) -> WeeklyEvent:
        event = await self.event_repo.get(db, event_id, for_update=for_update)
        if event is None:
            raise EventNotFoundError("Event not found")
        return event

    async def _get_participation(self, db: AsyncSession, event_id: UUID, user: User) -> EventParticipation:
        participation = await self.event_repo.get_participation(db, event_id, user.id)
        if participation is None:
            raise EventParticipationError("You have not joined this event")
        return participation

    async def join(
        self,
        db: AsyncSession,
        event_id: UUID,
        user: User
    ) -> EventParticipation:
        """
        Join an open event.

        Raises:
            EventNotFoundError: No such event
            EventParticipationError: Event closed, full, or already joined
        """
        # Lock the event so the capacity check and insert are serialised
        event = await self._get_event(db, event_id, for_update=True)
        if EventStatus(event.status) not in OPEN_STATUSES:
            raise EventParticipationError("This event cannot be joined at this time")

        if await self.event_repo.get_participation(db, event_id, user.id) is not None:
            raise EventParticipationError("You have already joined this event")

        if event.max_participants is not None:
            seated = await self.event_repo.count_seated(db, event_id)
            if seated >= event.max_participants:
                raise EventParticipationError("This event is full")

        participation = EventParticipation(
            event_id=event_id,
            user_id=user.id,
            status=ParticipationStatus.JOINED,
        )
        try:
            async with db.begin_nested():
                db.add(participation)
                await db.flush()
        except IntegrityError:
            raise EventParticipationError("You have already joined this event")

        logger.info("event_joined", event_id=str(event_id), user_id=str(user.id))
        return participation

    async def submit_responses(
        self,
        db: AsyncSession,
        event_id: UUID,
        user: User,
        responses: List[dict],
        now: Optional[datetime] = None
    ) -> EventParticipation:
        """
        Store a full set of answers and mark the participation completed.

        Any earlier responses are replaced.

        Args:
            db: Active database session (caller commits)
            event_id: UUID of the event
            user: Answering user
            responses: Dicts with ``question_id``, ``response_value`` and
                optional ``response_time_ms``
            now: Completion timestamp (defaults to now)

        Raises:
            EventParticipationError: Event closed, not joined, already
                completed, unknown question, or required questions missing
        """
        event = await self._get_event(db, event_id)
        if EventStatus(event.status) not in OPEN_STATUSES:
            raise EventParticipationError("This event is no longer accepting responses")

        participation = await self._get_participation(db, event_id, user)
        status = ParticipationStatus(participation.status)
        if status in FINISHED_PARTICIPATION:
            raise EventParticipationError("You have already completed this event")
        if status is ParticipationStatus.ABANDONED:
            raise EventParticipationError("You have left this event")

        questions = {q.id: q for q in await self.event_repo.get_questions(db, event_id)}
        answered = {}
        for item in responses:
            question_id = item["question_id"]
            if question_id not in questions:
                raise EventParticipationError("Response refers to a question outside this event")
            answered[question_id] = item

        missing = [str(qid) for qid, q in questions.items() if q.is_required and qid not in answered]
        if missing:
            raise EventParticipationError(
                "Not all required questions have been answered",
                missing_questions=missing,
            )

        await self.event_repo.replace_responses(db, participation, answered.values())
        participation.status = ParticipationStatus.COMPLETED
        participation.completed_at = ensure_utc(now or utcnow())
        await db.flush()

        logger.info(
            "event_responses_submitted",
            event_id=str(event_id),
            user_id=str(user.id),
            responses=len(answered),
        )
        return participation

    async def abandon(
        self,
        db: AsyncSession,
        event_id: UUID,
        user: User
    ) -> EventParticipation:
        """Leave an event before completing it; frees the seat."""
        participation = await self._get_participation(db, event_id, user)
        status = ParticipationStatus(participation.status)
        if status is ParticipationStatus.ABANDONED:
            return participation
        if status is not ParticipationStatus.JOINED:
            raise EventParticipationError("Completed participations cannot be abandoned")

        participation.status = ParticipationStatus.ABANDONED
        await db.flush()
        logger.info("event_abandoned", event_id=str(event_id), user_id=str(user.id))
        return participation

    async def list_matches(
        self,
        db: AsyncSession,
        event_id: UUID,
        user: User
    ) -> List[EventMatch]:
        """
        Return the user's candidate matches once results are available.

        Matches returned here are flagged as notified.

        Raises:
            EventParticipationError: User did not complete the event, or
                matchmaking has not run yet
        """
        event = await self._get_event(db, event_id)
        participation = await self.event_repo.get_participation(db, event_id, user.id)
        if participation is None or ParticipationStatus(participation.status) not in FINISHED_PARTICIPATION:
            raise EventParticipationError("You did not complete this event")
        if EventStatus(event.status) not in RESULT_STATUSES:
            raise EventParticipationError("Event matches are not available yet")

        matches = await self.event_repo.list_user_event_matches(db, event_id, user.id)
        for match in matches:
            match.is_notified = True
        await db.flush()
        return matches


# Create singleton instance
event_participation_service = EventParticipationService()
