"""
Exercise API endpoints: upload entries directly and read them back.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status

from liftlog.config.logging import get_logger
from liftlog.v1.core.exceptions import (
    NotFoundError,
    UploadError,
    create_success_response,
)
from liftlog.v1.core.security import Principal, PrincipalDep
from liftlog.v1.workouts.schemas import ExerciseCreateRequest
from liftlog.v1.workouts.sink import PostgresUploadSink

logger = get_logger(__name__)
router = APIRouter(prefix="/exercises", tags=["exercises"])


def get_upload_sink(request: Request) -> PostgresUploadSink:
    """Dependency returning the upload sink owned by the running application."""
    return request.app.state.upload_sink


UploadSinkDep = Depends(get_upload_sink)


@router.post("", response_model=dict)
async def create_exercises(
    exercise_request: ExerciseCreateRequest,
    response: Response,
    principal: Principal = PrincipalDep,
    sink: PostgresUploadSink = UploadSinkDep,
) -> dict[str, Any]:
    """Store entries as given; 206 with X-Error-Details when any entry fails."""
    stored = []
    errors = []
    for entry in exercise_request.entries:
        try:
            stored.append(
                await sink.persist(
                    entry, principal.user_id, exercise_request.summary or ""
                )
            )
        except UploadError as e:
            logger.warning(
                "Exercise upload failed",
                exercise_name=entry.exercise_name,
                error=e.message,
            )
            errors.append(e.message)

    message = None
    if errors:
        response.status_code = status.HTTP_206_PARTIAL_CONTENT
        # Header values must be latin-1
        response.headers["X-Error-Details"] = (
            "; ".join(errors).encode("latin-1", "replace").decode("latin-1")
        )
        message = f"{len(errors)} of {len(exercise_request.entries)} entries failed"
    return create_success_response(data=stored, message=message)


@router.get("/{exercise_id}", response_model=dict)
async def get_exercise(
    exercise_id: UUID,
    principal: Principal = PrincipalDep,
    sink: PostgresUploadSink = UploadSinkDep,
) -> dict[str, Any]:
    """A stored exercise owned by the caller."""
    exercise = await sink.fetch(exercise_id, principal.user_id)
    if exercise is None:
        raise NotFoundError(
            "Exercise not found", details={"exercise_id": str(exercise_id)}
        )
    return create_success_response(data=exercise)
