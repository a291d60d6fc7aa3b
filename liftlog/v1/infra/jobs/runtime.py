"""
Startup wiring for the queue.

QueueRuntime builds the Database and JobStore once from explicit
Settings and, when asked, the listener and worker pool. Leaving the
context tears everything down in reverse order.
"""

from sqlalchemy import text

from liftlog.config.logging import get_logger
from liftlog.config.settings import Settings
from liftlog.infra.database import Database
from liftlog.v1.core.registries import Extractor
from liftlog.v1.infra.jobs import ddl
from liftlog.v1.infra.jobs.listener import NotificationListener
from liftlog.v1.infra.jobs.processor import JobProcessor
from liftlog.v1.infra.jobs.store import JobStore
from liftlog.v1.infra.jobs.worker import WorkerPool
from liftlog.v1.workouts import models as workout_models  # noqa: F401
from liftlog.v1.workouts.registry_init import build_extractor
from liftlog.v1.workouts.sink import PostgresUploadSink

logger = get_logger(__name__)


class QueueRuntime:
    """Owns every long-lived queue resource for one process."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.database: Database | None = None
        self.store: JobStore | None = None
        self.extractor: Extractor | None = None
        self.listener: NotificationListener | None = None
        self.pool: WorkerPool | None = None

    async def __aenter__(self) -> "QueueRuntime":
        self.database = Database(self.settings)
        self.store = JobStore(self.database, self.settings)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start_workers(self, worker_count: int | None = None) -> WorkerPool:
        """Start the notification listener and the worker pool."""
        if self.store is None:
            raise RuntimeError("QueueRuntime must be entered before starting workers")

        self.extractor = build_extractor(self.settings)
        processor = JobProcessor(
            self.extractor, PostgresUploadSink(self.database, self.settings)
        )

        self.listener = NotificationListener(self.settings, self.store)
        await self.listener.start()

        self.pool = WorkerPool(
            self.settings,
            self.store,
            processor,
            hints=self.listener.hints,
            worker_count=worker_count,
        )
        await self.pool.start()
        return self.pool

    async def init_schema(self) -> None:
        """Create tables and install the notify trigger (development)."""
        await self.database.create_all()
        async with self.database.engine.begin() as conn:
            for statement in ddl.install_statements(self.settings.notify_channel):
                await conn.execute(text(statement))
        logger.info("Database schema initialized", channel=self.settings.notify_channel)

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.shutdown()
            self.pool = None
        if self.listener is not None:
            await self.listener.stop()
            self.listener = None
        aclose = getattr(self.extractor, "aclose", None)
        if aclose is not None:
            await aclose()
        self.extractor = None
        if self.database is not None:
            await self.database.close()
            self.database = None
        self.store = None
