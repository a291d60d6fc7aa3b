"""
Per-job orchestration: decode payload, extract entries, upload each entry.

Uploads are best-effort per entry. The job completes when at least one
entry was stored and fails only when every upload failed.
"""

import json
from typing import Any

from liftlog.config.logging import get_logger
from liftlog.v1.core.exceptions import (
    ExtractionError,
    JobProcessingError,
    PayloadError,
    UploadError,
)
from liftlog.v1.core.registries import Extractor, UploadSink
from liftlog.v1.infra.jobs.models import Job
from liftlog.v1.workouts.schemas import WorkoutEntry

logger = get_logger(__name__)


def decode_message(data: Any) -> str:
    """Pull the required 'message' text out of a job payload."""
    if isinstance(data, bytes | bytearray | str):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise PayloadError(f"job data is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise PayloadError(f"job data must be a JSON object, got {type(data).__name__}")

    message = data.get("message")
    if not isinstance(message, str):
        raise PayloadError(f"request {data} did not contain key 'message'")
    return message


def reconcile(stored: list[dict[str, Any]], errors: list[Exception]) -> Any:
    """
    Fold per-entry upload outcomes into a job result.

    - no successes, some failures: raise UploadError with the first failure
    - some of each: wrap stored entries with partial_success and error_count
    - no failures (including no entries): the stored entries as-is
    """
    if errors and not stored:
        raise UploadError(f"failed to upload any workout entries: {errors[0]}")
    if errors:
        return {
            "data": stored,
            "partial_success": True,
            "error_count": len(errors),
        }
    return stored


class JobProcessor:
    """Runs one claimed job through the extractor and the upload sink."""

    def __init__(self, extractor: Extractor, sink: UploadSink):
        self.extractor = extractor
        self.sink = sink

    async def process(self, job: Job) -> Any:
        """Return the job result, or raise JobProcessingError."""
        message = decode_message(job.data)

        try:
            entries = await self.extractor.extract(message)
        except JobProcessingError:
            raise
        except Exception as e:
            raise ExtractionError(f"extraction failed: {e}") from e

        stored, errors = await self.upload(entries, job.owner, message)

        logger.info(
            "Workout upload summary",
            job_id=str(job.id),
            total=len(entries),
            succeeded=len(stored),
            failed=len(errors),
        )
        return reconcile(stored, errors)

    async def upload(
        self, entries: list[WorkoutEntry], owner: str, message: str
    ) -> tuple[list[dict[str, Any]], list[Exception]]:
        """Persist each entry independently, collecting failures."""
        stored: list[dict[str, Any]] = []
        errors: list[Exception] = []
        for entry in entries:
            try:
                stored.append(await self.sink.persist(entry, owner, message))
            except Exception as e:
                logger.warning(
                    "Failed to upload workout entry",
                    exercise_name=entry.exercise_name,
                    error=str(e),
                )
                errors.append(e)
        return stored, errors
