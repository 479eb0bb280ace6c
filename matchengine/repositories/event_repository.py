"""
Event repository covering weekly events, their questionnaires, participations
and the provisional event matches produced by batch matchmaking.
"""

from __future__ import annotations
from typing import Iterable, List, Optional, Set
from uuid import UUID
from datetime import datetime
from sqlalchemy import select, func, delete as sql_delete, update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.exc import SQLAlchemyError
import logging

from matchengine.models.enums import EventStatus, ParticipationStatus
from matchengine.models.event import (
    EventMatch,
    EventParticipation,
    EventQuestion,
    EventResponse,
    WeeklyEvent,
)
from matchengine.utils.pairs import MatchKey
from .base import BaseRepository

logger = logging.getLogger(__name__)

# Participations that occupy a seat
SEATED_STATUSES = (
    ParticipationStatus.JOINED,
    ParticipationStatus.COMPLETED,
    ParticipationStatus.MATCHED,
)


class EventRepository(BaseRepository[WeeklyEvent]):
    """
    Repository for WeeklyEvent and its child tables.

    Provides methods for:
    - Questionnaire and participation lookups
    - Completed participations with responses (batch matchmaking input)
    - Existing event-match pairs (dedup) and bulk insert
    - Sweeping events whose window has ended
    """

    def __init__(self):
        """Initialize with WeeklyEvent model."""
        super().__init__(WeeklyEvent)

    # ── Questions ─────────────────────────────────────────────────────────────

    async def get_questions(
        self,
        db: AsyncSession,
        event_id: UUID
    ) -> List[EventQuestion]:
        try:
            stmt = (
                select(EventQuestion)
                .where(EventQuestion.event_id == event_id)
                .order_by(EventQuestion.display_order)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching questions for event {event_id}: {e}")
            raise

    async def add_questions(
        self,
        db: AsyncSession,
        rows: List[EventQuestion]
    ) -> List[EventQuestion]:
        try:
            db.add_all(rows)
            await db.flush()
            return rows
        except SQLAlchemyError as e:
            logger.error(f"Error inserting {len(rows)} event questions: {e}")
            raise

    # ── Participations ────────────────────────────────────────────────────────

    async def get_participation(
        self,
        db: AsyncSession,
        event_id: UUID,
        user_id: UUID
    ) -> Optional[EventParticipation]:
        try:
            stmt = select(EventParticipation).where(
                EventParticipation.event_id == event_id,
                EventParticipation.user_id == user_id,
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching participation of user {user_id} in event {event_id}: {e}")
            raise

    async def count_seated(
        self,
        db: AsyncSession,
        event_id: UUID
    ) -> int:
        """Count participations that hold a seat (everything but abandoned)."""
        try:
            stmt = select(func.count(EventParticipation.id)).where(
                EventParticipation.event_id == event_id,
                EventParticipation.status.in_(SEATED_STATUSES),
            )
            result = await db.execute(stmt)
            return result.scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Error counting participants of event {event_id}: {e}")
            raise

    async def get_completed_participations(
        self,
        db: AsyncSession,
        event_id: UUID
    ) -> List[EventParticipation]:
        """
        Get completed participations with their responses eagerly loaded.

        Ordered by user id so pair enumeration is deterministic across runs.
        """
        try:
            stmt = (
                select(EventParticipation)
                .where(
                    EventParticipation.event_id == event_id,
                    EventParticipation.status == ParticipationStatus.COMPLETED,
                )
                .options(selectinload(EventParticipation.responses))
                .execution_options(populate_existing=True)
                .order_by(EventParticipation.user_id)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching completed participations for event {event_id}: {e}")
            raise

    async def replace_responses(
        self,
        db: AsyncSession,
        participation: EventParticipation,
        responses: Iterable[dict]
    ) -> List[EventResponse]:
        """
        Replace every stored response of a participation.

        Args:
            db: Active database session
            participation: The participation being answered
            responses: Dicts with ``question_id``, ``response_value`` and
                optional ``response_time_ms``

        Returns:
            The new EventResponse rows
        """
        try:
            await db.execute(
                sql_delete(EventResponse).where(EventResponse.participation_id == participation.id)
            )
            rows = [
                EventResponse(
                    participation_id=participation.id,
                    question_id=item["question_id"],
                    response_value=str(item["response_value"]),
                    response_time_ms=item.get("response_time_ms"),
                )
                for item in responses
            ]
            db.add_all(rows)
            await db.flush()
            return rows
        except SQLAlchemyError as e:
            logger.error(f"Error storing responses for participation {participation.id}: {e}")
            raise

    async def set_participation_status(
        self,
        db: AsyncSession,
        event_id: UUID,
        user_ids: Iterable[UUID],
        status: ParticipationStatus
    ) -> int:
        try:
            result = await db.execute(
                update(EventParticipation)
                .where(
                    EventParticipation.event_id == event_id,
                    EventParticipation.user_id.in_(list(user_ids)),
                )
                .values(status=status)
            )
            await db.flush()
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error updating participations of event {event_id}: {e}")
            raise

    # ── Event matches ─────────────────────────────────────────────────────────

    async def get_event_match(
        self,
        db: AsyncSession,
        event_match_id: UUID,
        for_update: bool = False
    ) -> Optional[EventMatch]:
        try:
            stmt = select(EventMatch).where(EventMatch.id == event_match_id)
            if for_update:
                stmt = stmt.with_for_update().execution_options(populate_existing=True)
            result = await db.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching event match {event_match_id}: {e}")
            raise

    async def get_existing_pairs(
        self,
        db: AsyncSession,
        event_id: UUID
    ) -> Set[MatchKey]:
        """Canonical pairs that already have an EventMatch in this event."""
        try:
            stmt = select(EventMatch.user_a_id, EventMatch.user_b_id).where(EventMatch.event_id == event_id)
            result = await db.execute(stmt)
            return {MatchKey(a, b) for a, b in result.all()}
        except SQLAlchemyError as e:
            logger.error(f"Error fetching event match pairs for event {event_id}: {e}")
            raise

    async def add_event_matches(
        self,
        db: AsyncSession,
        rows: List[EventMatch]
    ) -> List[EventMatch]:
        try:
            db.add_all(rows)
            await db.flush()
            return rows
        except SQLAlchemyError as e:
            logger.error(f"Error inserting {len(rows)} event matches: {e}")
            raise

    async def list_event_matches(
        self,
        db: AsyncSession,
        event_id: UUID
    ) -> List[EventMatch]:
        try:
            stmt = (
                select(EventMatch)
                .where(EventMatch.event_id == event_id)
                .order_by(EventMatch.compatibility_score.desc())
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing event matches for event {event_id}: {e}")
            raise

    async def list_user_event_matches(
        self,
        db: AsyncSession,
        event_id: UUID,
        user_id: UUID
    ) -> List[EventMatch]:
        try:
            stmt = (
                select(EventMatch)
                .where(
                    EventMatch.event_id == event_id,
                    or_(EventMatch.user_a_id == user_id, EventMatch.user_b_id == user_id),
                )
                .order_by(EventMatch.compatibility_score.desc())
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing event matches of user {user_id} in event {event_id}: {e}")
            raise

    # ── Scheduling ────────────────────────────────────────────────────────────

    async def get_scheduled_types(
        self,
        db: AsyncSession,
        starts_at: datetime
    ) -> Set[str]:
        """Event types that already have an event opening at ``starts_at``."""
        try:
            stmt = select(WeeklyEvent.event_type).where(WeeklyEvent.starts_at == starts_at)
            result = await db.execute(stmt)
            return set(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching events starting at {starts_at}: {e}")
            raise

    async def get_ended_unprocessed(
        self,
        db: AsyncSession,
        now: datetime
    ) -> List[WeeklyEvent]:
        """Events whose window closed and that are not completed or cancelled."""
        try:
            stmt = (
                select(WeeklyEvent)
                .where(
                    WeeklyEvent.ends_at <= now,
                    WeeklyEvent.status.notin_((EventStatus.COMPLETED, EventStatus.CANCELLED)),
                )
                .order_by(WeeklyEvent.ends_at)
            )
            result = await db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error fetching ended events: {e}")
            raise
