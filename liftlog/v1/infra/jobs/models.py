"""
Job model for the workout log queue.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import TIMESTAMP, CheckConstraint, Index, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from liftlog.infra.database import Base


class JobStatus(str, Enum):
    """Job status enumeration."""

    PENDING = "pending"
    # Reserved: no transition produces or consumes it.
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Job(Base):
    """
    A queued workout log message and its processing outcome.

    Dead-lettering is not stored: a failed job whose retry_count has
    reached MAX_RETRIES is simply never eligible for a claim again.
    """

    __tablename__ = "jobs"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=JobStatus.PENDING.value,
        comment="Job status: pending|queued|processing|completed|failed",
    )
    data: Mapped[Any] = mapped_column(
        JSONB, nullable=False, comment="Submitted payload, expects a message field"
    )
    result: Mapped[Any | None] = mapped_column(
        JSONB(none_as_null=True),
        nullable=True,
        comment="Stored workout entries once completed",
    )
    error: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Last failure message"
    )
    retry_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
        comment="Number of failed attempts",
    )
    owner: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Submitting principal"
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'queued', 'processing', 'completed', 'failed')",
            name="jobs_status_check",
        ),
        CheckConstraint("retry_count >= 0", name="jobs_retry_count_check"),
        Index("ix_jobs_status_created_at", "status", "created_at"),
    )

    def is_resolved(self) -> bool:
        """Completed and failed jobs are resolved from the caller's view."""
        return self.status in (JobStatus.COMPLETED.value, JobStatus.FAILED.value)

    def __repr__(self) -> str:
        return f"<Job {self.id} status={self.status} retry_count={self.retry_count}>"
