import logging

from sqlalchemy.exc import SQLAlchemyError

from matchengine.core.database import AsyncSessionLocal

logger = logging.getLogger(__name__)


async def generate_weekly_events(ctx: dict) -> int:
    """
    ARQ cron: create the coming week's events with their questionnaires.

    Re-running for the same week creates nothing new. Returns the number of
    events created.
    """
    from matchengine.services.event_generator_service import event_generator_service

    service = ctx.get("event_generator_service") or event_generator_service
    async with (ctx.get("session_factory") or AsyncSessionLocal)() as db:
        try:
            events = await service.generate_weekly(db)
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.error("Weekly event generation failed", exc_info=True)
            raise

    for event in events:
        logger.info(f"Generated event: {event.title} ({event.event_type}, id={event.id})")
    return len(events)
