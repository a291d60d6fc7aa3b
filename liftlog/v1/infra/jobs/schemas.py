"""
Job queue Pydantic schemas.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from liftlog.v1.infra.jobs.models import JobStatus


class JobEnqueueRequest(BaseModel):
    """Schema for submitting a workout log message."""

    data: dict[str, Any] = Field(
        ..., description="Job payload; processing expects a 'message' text field"
    )


class JobEnqueueResponse(BaseModel):
    """Schema for job enqueue response."""

    job_id: UUID
    status: str
    status_endpoint: str
    created_at: datetime


class JobStatusResponse(BaseModel):
    """Caller-facing view of a job; retry_count stays internal."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: str
    result: Any | None = None
    error: str | None = None
    created_at: datetime
    updated_at: datetime


class QueueStatsResponse(BaseModel):
    """Schema for queue diagnostics."""

    pending_count: int = Field(..., description="Jobs currently eligible for claim")
    by_status: dict[str, int] = Field(default_factory=dict)


class NotificationHint(BaseModel):
    """Payload published by the jobs notify trigger. Advisory only."""

    id: UUID
    status: str
    updated_at: datetime | None = None
    owner: str | None = None
    operation: str

    def announces_work(self) -> bool:
        """A new pending job, or a failed job that was just written back."""
        if self.status == JobStatus.PENDING.value:
            return True
        return self.status == JobStatus.FAILED.value and self.operation == "UPDATE"
