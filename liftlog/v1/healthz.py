from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import BaseModel

from liftlog.config.settings import Settings
from liftlog.v1.core.exceptions import StoreError, create_success_response
from liftlog.v1.core.security import SettingsDep
from liftlog.v1.infra.jobs.routes import JobStoreDep
from liftlog.v1.infra.jobs.store import JobStore

router = APIRouter()


class DatabaseHealth(BaseModel):
    """Database health status."""

    connected: bool
    response_time_ms: float | None = None
    error: str | None = None


class QueueHealth(BaseModel):
    """Queue depth as seen by claim()."""

    pending_count: int = 0


@router.get("/healthz", response_model=dict)
async def health_check(
    settings: Settings = SettingsDep, store: JobStore = JobStoreDep
):
    """Health check with database connectivity and queue depth."""

    db_health = await _check_database_health(store)

    queue_health = None
    if db_health.connected:
        try:
            queue_health = QueueHealth(pending_count=await store.pending_count())
        except StoreError:
            # Queue depth failure doesn't fail overall health
            queue_health = None

    health_data = {
        "ok": db_health.connected,
        "version": settings.version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
        "database": db_health.model_dump(),
        "queue": queue_health.model_dump() if queue_health else None,
    }

    return create_success_response(data=health_data)


async def _check_database_health(store: JobStore) -> DatabaseHealth:
    """Check database connectivity and response time."""
    start_time = datetime.now(UTC)

    try:
        await store.ping()
    except StoreError as e:
        return DatabaseHealth(connected=False, error=e.message)

    response_time_ms = (datetime.now(UTC) - start_time).total_seconds() * 1000
    return DatabaseHealth(connected=True, response_time_ms=round(response_time_ms, 2))
