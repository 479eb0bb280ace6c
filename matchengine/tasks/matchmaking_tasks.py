import logging
import uuid

import structlog
from sqlalchemy.exc import SQLAlchemyError

from matchengine.core.database import AsyncSessionLocal
from matchengine.models.enums import EventStatus
from matchengine.utils.time import utcnow

logger = logging.getLogger(__name__)


def _session_factory(ctx: dict):
    return ctx.get("session_factory") or AsyncSessionLocal


def _matchmaking_service(ctx: dict):
    from matchengine.services.event_matchmaking_service import event_matchmaking_service

    return ctx.get("matchmaking_service") or event_matchmaking_service


async def process_event_matches(ctx: dict, event_id: str) -> int:
    """
    ARQ task: run batch matchmaking for one event.

    Safe to run more than once for the same event; already persisted pairs
    are skipped. Returns the number of scored candidates.
    """
    from matchengine.repositories.event_repository import EventRepository

    structlog.contextvars.bind_contextvars(event_id=event_id, job_id=ctx.get("job_id"))
    try:
        async with _session_factory(ctx)() as db:
            try:
                event = await EventRepository().get(db, uuid.UUID(event_id))
                if event is None:
                    logger.warning(f"Event {event_id} not found, skipping matchmaking")
                    return 0

                candidates = await _matchmaking_service(ctx).process_event_matches(db, event)
                await db.commit()
                logger.info(f"Event {event_id}: {len(candidates)} candidate matches")
                return len(candidates)
            except SQLAlchemyError:
                await db.rollback()
                logger.error(f"Matchmaking failed for event {event_id}", exc_info=True)
                raise
    finally:
        structlog.contextvars.unbind_contextvars("event_id", "job_id")


async def process_ended_events(ctx: dict) -> int:
    """
    ARQ cron: process every event whose window has closed, then complete it.

    Each event is handled in its own transaction so one failure does not
    hold back the rest. Returns the number of events completed.
    """
    from matchengine.repositories.event_repository import EventRepository

    repo = EventRepository()
    service = _matchmaking_service(ctx)
    session_factory = _session_factory(ctx)

    async with session_factory() as db:
        ended_ids = [event.id for event in await repo.get_ended_unprocessed(db, utcnow())]

    completed = 0
    for event_id in ended_ids:
        async with session_factory() as db:
            try:
                event = await repo.get(db, event_id, for_update=True)
                if event is None or EventStatus(event.status) in (EventStatus.COMPLETED, EventStatus.CANCELLED):
                    continue
                candidates = await service.process_event_matches(db, event)
                event.status = EventStatus.COMPLETED
                await db.commit()
                completed += 1
                logger.info(f"Completed event {event_id} with {len(candidates)} candidate matches")
            except SQLAlchemyError:
                await db.rollback()
                logger.error(f"Failed to process ended event {event_id}", exc_info=True)

    return completed
