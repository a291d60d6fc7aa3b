import pytest

from liftlog.v1.core.exceptions import InvalidTransitionError
from liftlog.v1.infra.jobs.models import JobStatus
from liftlog.v1.infra.jobs.policy import (
    MAX_RETRIES,
    Disposition,
    Outcome,
    disposition,
    is_claimable,
    is_dead_lettered,
    next_retry_count,
    next_status,
)


def test_max_retries_is_three():
    assert MAX_RETRIES == 3


@pytest.mark.parametrize(
    "status,retry_count,expected",
    [
        ("pending", 0, True),
        ("failed", 0, True),
        ("failed", 2, True),
        ("failed", 3, False),
        ("failed", 7, False),
        ("processing", 0, False),
        ("completed", 0, False),
        ("queued", 0, False),
    ],
)
def test_is_claimable(status, retry_count, expected):
    assert is_claimable(status, retry_count) is expected


def test_dead_letter_boundary():
    """A failed job is dead-lettered exactly when retry_count reaches the cap."""
    assert not is_dead_lettered("failed", MAX_RETRIES - 1)
    assert is_dead_lettered("failed", MAX_RETRIES)
    assert not is_dead_lettered("completed", MAX_RETRIES)


def test_success_completes_job():
    assert next_status("processing", 0, Outcome.SUCCEEDED) == JobStatus.COMPLETED
    assert next_status("processing", 2, Outcome.SUCCEEDED) == JobStatus.COMPLETED


def test_failure_fails_job():
    assert next_status("processing", 0, Outcome.FAILED) == JobStatus.FAILED


def test_completed_is_terminal():
    with pytest.raises(InvalidTransitionError):
        next_status("completed", 0, Outcome.FAILED)
    with pytest.raises(InvalidTransitionError):
        next_status("completed", 0, Outcome.SUCCEEDED)


def test_retry_count_only_grows_on_failure():
    assert next_retry_count(0, "failed") == 1
    assert next_retry_count(2, "failed") == 3
    assert next_retry_count(2, "completed") == 2
    assert next_retry_count(1, "processing") == 1


def test_disposition():
    assert disposition("processing", 0, Outcome.SUCCEEDED) == Disposition.COMPLETED
    assert disposition("processing", 0, Outcome.FAILED) == Disposition.RETRY
    assert disposition("processing", 1, Outcome.FAILED) == Disposition.RETRY
    # Third failure exhausts the budget
    assert disposition("processing", 2, Outcome.FAILED) == Disposition.DEAD_LETTER
