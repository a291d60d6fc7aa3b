"""
Postgres-backed job store.

All mutual exclusion between workers is delegated to Postgres row locks:
claim() skips rows locked by a concurrent claim instead of waiting, and
update() re-reads retry_count under FOR UPDATE before writing.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import and_, func, or_, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from liftlog.config.logging import get_logger
from liftlog.config.settings import Settings
from liftlog.infra.database import Database
from liftlog.v1.core.exceptions import NotFoundError, StoreError
from liftlog.v1.infra.jobs.models import Job, JobStatus
from liftlog.v1.infra.jobs.policy import MAX_RETRIES, next_retry_count

logger = get_logger(__name__)

T = TypeVar("T")


def claimable_clause():
    """SQL form of policy.is_claimable."""
    return or_(
        Job.status == JobStatus.PENDING.value,
        and_(
            Job.status == JobStatus.FAILED.value,
            Job.retry_count < MAX_RETRIES,
        ),
    )


class JobStore:
    """Job persistence and the atomic claim/update protocol."""

    def __init__(self, database: Database, settings: Settings):
        self.database = database
        self.request_timeout_s = settings.request_timeout_s

    async def _bounded(
        self, operation: str, work: Callable[[AsyncSession], Awaitable[T]]
    ) -> T:
        """Run one store round trip under the request timeout."""
        try:
            async with asyncio.timeout(self.request_timeout_s):
                async with self.database.session() as session:
                    return await work(session)
        except TimeoutError as e:
            raise StoreError(
                f"{operation} timed out after {self.request_timeout_s}s",
                details={"operation": operation},
            ) from e
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(
                f"{operation} failed: {e}", details={"operation": operation}
            ) from e

    async def create(self, data: Any, owner: str) -> Job:
        """Insert a new pending job; the notify trigger announces it."""
        now = datetime.now(UTC)
        job = Job(
            id=uuid4(),
            status=JobStatus.PENDING.value,
            data=data,
            retry_count=0,
            owner=owner,
            created_at=now,
            updated_at=now,
        )

        async def work(session: AsyncSession) -> Job:
            session.add(job)
            await session.commit()
            return job

        created = await self._bounded("create", work)
        logger.info("Job enqueued", job_id=str(created.id), owner=owner)
        return created

    async def get(self, job_id: UUID) -> Job | None:
        """Current row for job_id, or None when it does not exist."""

        async def work(session: AsyncSession) -> Job | None:
            return await session.get(Job, job_id)

        return await self._bounded("get", work)

    async def claim(self) -> Job | None:
        """
        Atomically move the oldest eligible job to processing.

        Returns None when nothing is eligible. Rows locked by another
        in-flight claim are skipped, so FIFO is only approximate under
        contention but no row is ever claimed twice.
        """

        async def work(session: AsyncSession) -> Job | None:
            async with session.begin():
                eligible = (
                    select(Job.id)
                    .where(claimable_clause())
                    .order_by(Job.created_at)
                    .limit(1)
                    .with_for_update(skip_locked=True)
                    .scalar_subquery()
                )
                result = await session.execute(
                    update(Job)
                    .where(Job.id == eligible)
                    .values(
                        status=JobStatus.PROCESSING.value,
                        updated_at=datetime.now(UTC),
                    )
                    .returning(Job)
                    .execution_options(synchronize_session=False)
                )
                return result.scalar_one_or_none()

        return await self._bounded("claim", work)

    async def update(self, job: Job) -> Job:
        """
        Write status, result and error for a processed job.

        retry_count is re-read under an exclusive row lock and bumped by
        one only when the new status is failed.
        """
        status = JobStatus(job.status).value
        now = datetime.now(UTC)

        async def work(session: AsyncSession) -> int:
            async with session.begin():
                current = (
                    await session.execute(
                        select(Job.retry_count)
                        .where(Job.id == job.id)
                        .with_for_update()
                    )
                ).scalar_one_or_none()
                if current is None:
                    raise NotFoundError(
                        "Job not found", details={"job_id": str(job.id)}
                    )

                retry_count = next_retry_count(current, status)
                await session.execute(
                    update(Job)
                    .where(Job.id == job.id)
                    .values(
                        status=status,
                        result=job.result,
                        error=job.error,
                        retry_count=retry_count,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                return retry_count

        job.retry_count = await self._bounded("update", work)
        job.status = status
        job.updated_at = now
        return job

    async def pending_count(self) -> int:
        """Number of jobs a claim could currently pick up."""

        async def work(session: AsyncSession) -> int:
            result = await session.execute(
                select(func.count(Job.id)).where(claimable_clause())
            )
            return result.scalar() or 0

        return await self._bounded("pending_count", work)

    async def count_by_status(self) -> dict[str, int]:
        """Job counts grouped by status."""

        async def work(session: AsyncSession) -> dict[str, int]:
            result = await session.execute(
                select(Job.status, func.count(Job.id)).group_by(Job.status)
            )
            return {status: count for status, count in result.all()}

        return await self._bounded("count_by_status", work)

    async def ping(self) -> None:
        """Round trip to the database; raises StoreError when unreachable."""

        async def work(session: AsyncSession) -> None:
            await session.execute(text("SELECT 1"))

        await self._bounded("ping", work)
