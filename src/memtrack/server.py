import logging
import time
from contextlib import asynccontextmanager
from datetime import date, datetime

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from memtrack.consts import VERSION
from memtrack.infrastructure.adapters.stats.memory_cache import InMemoryCache

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("memtrack.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"memtrack server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("memtrack server shutting down...")


app = FastAPI(
    title="memtrack server",
    description="Session analytics API for memory-training games.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()

# Cached tier shared by every request this process serves
session_cache = InMemoryCache()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


class SessionRequest(BaseModel):
    user_id: str | None = None
    category: str
    total_questions: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    skipped: int = Field(default=0, ge=0)
    total_time: float = Field(default=0.0, ge=0)
    timestamp: datetime | None = None  # defaults to now


class SessionSavedResponse(BaseModel):
    remote_ok: bool
    durable_ok: bool


@app.get("/stats")
async def get_stats(
    period: str | None = None,
    start: date | None = None,
    end: date | None = None,
    user_id: str | None = None,
):
    """
    Compute stats for a period through the tiered store.
    """
    from memtrack.application.config import resolve_config
    from memtrack.application.factory import build_stats_service
    from memtrack.domain.stats.models import DateRange
    from memtrack.interface._common import run_closing, update_to_dict

    config = resolve_config({"user_id": user_id, "default_period": period})
    service = build_stats_service(config, cache=session_cache)
    custom_range = DateRange(start=start, end=end) if (start or end) else None
    update = await run_closing(
        service.store, service.get_report(config.default_period, custom_range)
    )
    return update_to_dict(update)


@app.post("/sessions", response_model=SessionSavedResponse)
async def record_session(req: SessionRequest):
    """
    Record a finished session (remote best effort + durable local copy).
    """
    from memtrack.application.config import resolve_config
    from memtrack.application.factory import build_session_store
    from memtrack.domain.stats.errors import StorageQuotaExceeded
    from memtrack.domain.stats.models import SessionRecord
    from memtrack.interface._common import run_closing

    config = resolve_config({"user_id": req.user_id})
    store = build_session_store(config, cache=session_cache)

    timestamp = req.timestamp or datetime.now(store.user.tz)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=store.user.tz)

    record = SessionRecord(
        category=req.category,
        total_questions=req.total_questions,
        correct_answers=req.correct_answers,
        skipped=req.skipped,
        total_time=req.total_time,
        timestamp=timestamp,
    )

    try:
        result = await run_closing(store, store.append(record))
    except StorageQuotaExceeded as e:
        logger.error(f"Session save failed: {e}")
        raise HTTPException(status_code=507, detail=str(e))

    return SessionSavedResponse(remote_ok=result.remote_ok, durable_ok=result.durable_ok)


@app.get("/sessions/recent")
async def get_recent_sessions(limit: int | None = None, user_id: str | None = None):
    from memtrack.application.config import resolve_config
    from memtrack.application.factory import build_session_store
    from memtrack.application.stats.insights import recent_sessions
    from memtrack.interface._common import recent_to_dict, run_closing

    config = resolve_config({"user_id": user_id, "recent_limit": limit})
    store = build_session_store(config, cache=session_cache)
    result = await run_closing(store, store.fetch())
    items = recent_sessions(result.records, limit=config.recent_limit)
    return {
        "tier": result.tier.value,
        "sessions": [recent_to_dict(i) for i in items],
    }
