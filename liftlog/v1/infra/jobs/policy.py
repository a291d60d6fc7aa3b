"""
Retry and dead-letter policy.

Pure functions over (status, retry_count, outcome) so the rules can be
tested without a database.
"""

from enum import Enum

from liftlog.v1.core.exceptions import InvalidTransitionError
from liftlog.v1.infra.jobs.models import JobStatus

MAX_RETRIES = 3


class Outcome(str, Enum):
    """Result of one processing attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Disposition(str, Enum):
    """Where a job ends up after an attempt."""

    COMPLETED = "completed"
    RETRY = "retry"
    DEAD_LETTER = "dead_letter"


def is_claimable(status: str, retry_count: int) -> bool:
    """Pending jobs and failed jobs still under budget may be claimed."""
    if status == JobStatus.PENDING.value:
        return True
    return status == JobStatus.FAILED.value and retry_count < MAX_RETRIES


def is_dead_lettered(status: str, retry_count: int) -> bool:
    return status == JobStatus.FAILED.value and retry_count >= MAX_RETRIES


def next_status(status: str, retry_count: int, outcome: Outcome) -> JobStatus:
    """Status a job moves to once an attempt finishes."""
    if status == JobStatus.COMPLETED.value:
        raise InvalidTransitionError(
            "Completed jobs are terminal",
            details={"status": status, "retry_count": retry_count},
        )
    if outcome == Outcome.SUCCEEDED:
        return JobStatus.COMPLETED
    return JobStatus.FAILED


def next_retry_count(current: int, status: str) -> int:
    """Only a transition into failed consumes retry budget."""
    if status == JobStatus.FAILED.value:
        return current + 1
    return current


def disposition(status: str, retry_count: int, outcome: Outcome) -> Disposition:
    """Classify an attempt for logging: completed, retry later or dead-letter."""
    new_status = next_status(status, retry_count, outcome)
    if new_status == JobStatus.COMPLETED:
        return Disposition.COMPLETED
    if is_claimable(new_status.value, next_retry_count(retry_count, new_status.value)):
        return Disposition.RETRY
    return Disposition.DEAD_LETTER
