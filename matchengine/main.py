from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from matchengine.api.v1 import events, matching
from matchengine.core.arq import close_arq_pool
from matchengine.core.cache import close_redis_pool
from matchengine.core.config import settings
from matchengine.core.exceptions import MatchEngineError
from matchengine.core.logging import configure_logging
from matchengine.services.event_matchmaking_service import event_matchmaking_service

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.app_env)
    yield
    event_matchmaking_service.shutdown()
    await close_arq_pool()
    await close_redis_pool()


app = FastAPI(
    title="Match Engine API",
    description="Compatibility scoring and matchmaking for a dating backend",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


@app.exception_handler(MatchEngineError)
async def match_engine_error_handler(request: Request, exc: MatchEngineError):
    logger.info("request_rejected", path=request.url.path, code=exc.code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Include API routers
app.include_router(matching.router, prefix="/api/v1/users", tags=["Matching"])
app.include_router(events.router, prefix="/api/v1/events", tags=["Events"])


@app.get("/healthz")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok", "version": "1.0.0"}
