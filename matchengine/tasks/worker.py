import logging

from arq import cron
from arq.connections import RedisSettings

from matchengine.core.config import settings
from matchengine.core.logging import configure_logging
from matchengine.tasks.event_tasks import generate_weekly_events
from matchengine.tasks.matchmaking_tasks import process_ended_events, process_event_matches

logger = logging.getLogger(__name__)


async def on_startup(ctx: dict) -> None:
    configure_logging(settings.app_env)
    logger.info(
        "ARQ worker started. Functions: process_event_matches, "
        "process_ended_events, generate_weekly_events (cron)"
    )


async def on_shutdown(ctx: dict) -> None:
    from matchengine.services.event_matchmaking_service import event_matchmaking_service

    event_matchmaking_service.shutdown()
    logger.info("ARQ worker shut down. Scoring pool closed.")


class WorkerSettings:
    functions = [
        process_event_matches,
    ]
    cron_jobs = [
        cron(
            process_ended_events,
            minute=set(range(0, 60, settings.event_sweep_minutes)),
            run_at_startup=False,
            unique=True,
        ),
        cron(
            generate_weekly_events,
            weekday=settings.event_generation_weekday,
            hour=settings.event_generation_hour,
            minute=0,
            run_at_startup=False,
            unique=True,
        ),
    ]
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    max_jobs = 10
    job_timeout = 600   # 10 minutes max per batch
    max_tries = 3       # Retry up to 3 times on failure
    on_startup = on_startup
    on_shutdown = on_shutdown
