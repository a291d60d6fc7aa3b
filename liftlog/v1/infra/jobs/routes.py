"""
Job API endpoints: submit a workout log and poll its status.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status

from liftlog.config.logging import get_logger
from liftlog.v1.core.exceptions import (
    NotFoundError,
    ValidationError,
    create_success_response,
)
from liftlog.v1.core.security import Principal, PrincipalDep
from liftlog.v1.infra.jobs.schemas import (
    JobEnqueueRequest,
    JobEnqueueResponse,
    JobStatusResponse,
    QueueStatsResponse,
)
from liftlog.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)
router = APIRouter(prefix="/jobs", tags=["jobs"])


def get_job_store(request: Request) -> JobStore:
    """Dependency returning the JobStore owned by the running application."""
    return request.app.state.job_store


JobStoreDep = Depends(get_job_store)


@router.post("", status_code=status.HTTP_202_ACCEPTED, response_model=dict)
async def enqueue_job(
    job_request: JobEnqueueRequest,
    principal: Principal = PrincipalDep,
    store: JobStore = JobStoreDep,
) -> dict[str, Any]:
    """Accept a workout log for asynchronous processing."""
    if not job_request.data:
        raise ValidationError("Request data cannot be empty")

    job = await store.create(job_request.data, principal.user_id)

    response = JobEnqueueResponse(
        job_id=job.id,
        status=job.status,
        status_endpoint=f"/v1/jobs/{job.id}",
        created_at=job.created_at,
    )
    return create_success_response(data=response.model_dump(mode="json"))


@router.get("/stats", response_model=dict)
async def queue_stats(store: JobStore = JobStoreDep) -> dict[str, Any]:
    """Eligible job count and per-status totals."""
    stats = QueueStatsResponse(
        pending_count=await store.pending_count(),
        by_status=await store.count_by_status(),
    )
    return create_success_response(data=stats.model_dump())


@router.get("/{job_id}", response_model=dict)
async def get_job_status(
    job_id: UUID,
    response: Response,
    store: JobStore = JobStoreDep,
) -> dict[str, Any]:
    """Job status; 202 while unresolved, 200 once completed or failed."""
    job = await store.get(job_id)
    if job is None:
        raise NotFoundError("Job not found", details={"job_id": str(job_id)})

    if not job.is_resolved():
        response.status_code = status.HTTP_202_ACCEPTED

    data = JobStatusResponse.model_validate(job)
    return create_success_response(data=data.model_dump(mode="json"))
