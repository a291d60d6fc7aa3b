import os
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import text

from liftlog.config.settings import Settings
from liftlog.infra.database import Database
from liftlog.v1.infra.jobs import ddl
from liftlog.v1.infra.jobs.store import JobStore
from liftlog.v1.workouts import models as workout_models  # noqa: F401
from liftlog.v1.workouts.schemas import WorkoutEntry

from tests.fakes import FakeJobStore


@pytest.fixture
def settings() -> Settings:
    """Settings tuned for fast tests."""
    return Settings(
        environment="development",
        worker_count=2,
        poll_interval_s=0.05,
        backoff_floor_ms=100,
        backoff_ceiling_s=5.0,
        listener_reconnect_delay_s=0,
        shutdown_timeout_s=2.0,
        request_timeout_s=5.0,
    )


@pytest.fixture
def fake_store() -> FakeJobStore:
    return FakeJobStore()


@pytest.fixture
def workout_entries() -> list[WorkoutEntry]:
    return [
        WorkoutEntry(
            exercise_name="squat",
            sets=3,
            work=10,
            work_type="repetitions",
            work_unit="reps",
            resistance=135,
            resistance_type="pounds",
        ),
        WorkoutEntry(exercise_name="bench press", sets=3, work=8),
        WorkoutEntry(
            exercise_name="run", work=5, work_type="distance", work_unit="km"
        ),
    ]


@pytest.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Real Postgres database with the jobs schema and notify trigger."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url or "postgresql" not in database_url:
        # Skip database tests if no PostgreSQL available
        pytest.skip("No PostgreSQL database available for testing")

    settings = Settings(database_url=database_url)
    database = Database(settings)
    await database.create_all()
    async with database.engine.begin() as conn:
        for statement in ddl.install_statements(settings.notify_channel):
            await conn.execute(text(statement))
        await conn.execute(text("TRUNCATE jobs, exercises"))

    yield database

    async with database.engine.begin() as conn:
        await conn.execute(text("TRUNCATE jobs, exercises"))
    await database.close()


@pytest.fixture
def pg_settings(database: Database) -> Settings:
    return database.settings


@pytest.fixture
def job_store(database: Database, pg_settings: Settings) -> JobStore:
    return JobStore(database, pg_settings)
