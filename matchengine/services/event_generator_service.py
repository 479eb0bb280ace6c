"""
Weekly event generation.

Creates a ``WeeklyEvent`` together with its type's default questionnaire
(see ``event_templates``). ``generate_weekly`` is what the ARQ cron calls;
it is keyed on ``(event_type, starts_at)`` so a retried run adds nothing.
"""

from __future__ import annotations
from typing import Iterable, List, Optional
from datetime import datetime, timedelta, timezone
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from matchengine.core.config import settings
from matchengine.core.exceptions import InvalidEventScheduleError
from matchengine.models.enums import EventStatus, EventType
from matchengine.models.event import EventQuestion, WeeklyEvent
from matchengine.repositories.event_repository import EventRepository
from matchengine.services.event_templates import EVENT_TEMPLATES
from matchengine.utils.time import ensure_utc, utcnow

logger = structlog.get_logger(__name__)


class EventGeneratorService:
    """Service creating weekly events and seeding their questions"""

    def __init__(self, event_repo: Optional[EventRepository] = None):
        self.event_repo = event_repo or EventRepository()

    async def create_event(
        self,
        db: AsyncSession,
        event_type: EventType,
        title: Optional[str] = None,
        description: Optional[str] = None,
        starts_at: Optional[datetime] = None,
        ends_at: Optional[datetime] = None,
        max_participants: Optional[int] = None,
        event_data: Optional[dict] = None,
        now: Optional[datetime] = None
    ) -> WeeklyEvent:
        """
        Create a scheduled event of ``event_type`` with its default questions.

        The event and its questions are written in one savepoint; the
        caller commits.

        Args:
            db: Active database session
            event_type: Type deciding template and scoring strategy
            title: Overrides the template title
            description: Overrides the template description
            starts_at: Defaults to ``now`` plus ``settings.event_lead_days``
            ends_at: Defaults to ``starts_at`` plus ``settings.event_duration_days``
            max_participants: Defaults to ``settings.event_default_max_participants``
            event_data: Merged over the template's ``event_data``
            now: Reference instant (defaults to the current time)

        Returns:
            The new WeeklyEvent

        Raises:
            InvalidEventScheduleError: If the event would end before it starts

        Example:
            event = await event_generator_service.create_event(db, EventType.VALUES_ALIGNMENT)
            await db.commit()
        """
        event_type = EventType(event_type)
        template = EVENT_TEMPLATES[event_type]
        now = ensure_utc(now or utcnow())
        starts_at = ensure_utc(starts_at) if starts_at else now + timedelta(days=settings.event_lead_days)
        ends_at = ensure_utc(ends_at) if ends_at else starts_at + timedelta(days=settings.event_duration_days)
        if ends_at <= starts_at:
            raise InvalidEventScheduleError("An event must end after it starts")

        async with db.begin_nested():
            event = await self.event_repo.create(
                db,
                {
                    "event_type": event_type.value,
                    "title": title or template["title"],
                    "description": description or template["description"],
                    "event_data": {**template["event_data"], **(event_data or {})},
                    "starts_at": starts_at,
                    "ends_at": ends_at,
                    "max_participants": (
                        max_participants if max_participants is not None
                        else settings.event_default_max_participants
                    ),
                    "status": EventStatus.SCHEDULED,
                },
            )
            await self.event_repo.add_questions(
                db,
                [
                    EventQuestion(event_id=event.id, display_order=index, is_required=True, **question)
                    for index, question in enumerate(template["questions"], start=1)
                ],
            )

        logger.info(
            "event_created",
            event_id=str(event.id),
            event_type=event_type.value,
            starts_at=starts_at.isoformat(),
            questions=len(template["questions"]),
        )
        return event

    async def generate_weekly(
        self,
        db: AsyncSession,
        event_types: Optional[Iterable[EventType]] = None,
        now: Optional[datetime] = None
    ) -> List[WeeklyEvent]:
        """
        Create this week's events, one per type, opening at UTC midnight
        ``settings.event_lead_days`` days from ``now``.

        Types that already have an event opening at that instant are skipped.

        Returns:
            The events created by this call
        """
        now = ensure_utc(now or utcnow())
        opening_day = (now + timedelta(days=settings.event_lead_days)).date()
        starts_at = datetime(opening_day.year, opening_day.month, opening_day.day, tzinfo=timezone.utc)

        existing = await self.event_repo.get_scheduled_types(db, starts_at)
        created = []
        for event_type in event_types or list(EventType):
            event_type = EventType(event_type)
            if event_type.value in existing:
                logger.info("event_generation_skipped", event_type=event_type.value, starts_at=starts_at.isoformat())
                continue
            created.append(await self.create_event(db, event_type, starts_at=starts_at, now=now))
        return created


# Create singleton instance
event_generator_service = EventGeneratorService()
