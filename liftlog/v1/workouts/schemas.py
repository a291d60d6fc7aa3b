"""
Workout entry schemas shared by the extractors and the upload sink.
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

WorkType = Literal["repetitions", "duration", "distance"]
ResistanceType = Literal["pounds", "kg"]


class WorkoutEntry(BaseModel):
    """One structured exercise extracted from a free-text workout log."""

    exercise_name: str = Field(..., min_length=1, description="Exercise name")
    type: str | None = Field(default=None, description="Exercise category")
    sets: float | None = Field(default=None, ge=0, description="Number of sets")
    work: float | None = Field(
        default=None, ge=0, description="Reps, seconds or distance per set"
    )
    work_type: WorkType | None = Field(
        default=None, description="Kind of work amount"
    )
    work_unit: str | None = Field(
        default=None, description="Unit of the work amount, e.g. seconds or km"
    )
    resistance: float | None = Field(default=None, ge=0, description="Load")
    resistance_type: ResistanceType | None = Field(
        default=None, description="Unit of the load"
    )
    duration: float | None = Field(default=None, ge=0, description="Total duration")
    attributes: list[str] = Field(
        default_factory=list, description="Free-form attribute tags"
    )


class StoredWorkoutEntry(WorkoutEntry):
    """A workout entry as persisted by the upload sink."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner: str
    summary: str | None = None
    created_at: datetime


class ExerciseCreateRequest(BaseModel):
    """Workout entries uploaded directly, bypassing extraction."""

    entries: list[WorkoutEntry] = Field(..., min_length=1)
    summary: str | None = Field(
        default=None, description="Source text stored with every entry"
    )
