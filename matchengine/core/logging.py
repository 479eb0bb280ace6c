"""
structlog setup shared by the API process and the ARQ worker.

Services log domain events through ``structlog.get_logger(__name__)`` with
key/value context (``actor_id``, ``event_id``, ``match_id`` ...). Repositories
and tasks keep stdlib ``logging`` loggers; both end up in the same handler,
rendered for humans in dev and as one JSON object per line elsewhere.

Per-job context (``job_id``, ``event_id``) is bound by the tasks with
``structlog.contextvars.bind_contextvars`` and merged into every record.
"""

import logging
import sys

import structlog

from matchengine.core.config import settings

# Third-party loggers that are too chatty outside dev
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "arq.jobs")


def _processors() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]


def configure_logging(app_env: str = "dev", level: str | None = None) -> None:
    """
    Route structlog and stdlib records through one stdout handler.

    Args:
        app_env: "dev" renders colored console lines, anything else JSON
        level: Root log level name (defaults to ``settings.log_level``)
    """
    dev = app_env == "dev"
    pre_chain = _processors()

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    if dev:
        final = [structlog.dev.ConsoleRenderer()]
    else:
        final = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
        foreign_pre_chain=pre_chain,
    ))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel((level or settings.log_level).upper())

    if not dev:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
