"""
Upload sink that stores workout entries in Postgres.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from liftlog.config.logging import get_logger
from liftlog.config.settings import Settings
from liftlog.infra.database import Database
from liftlog.v1.core.exceptions import StoreError, UploadError
from liftlog.v1.workouts.models import Exercise
from liftlog.v1.workouts.schemas import StoredWorkoutEntry, WorkoutEntry

logger = get_logger(__name__)


class PostgresUploadSink:
    """Inserts each workout entry in its own transaction and reads them back."""

    def __init__(self, database: Database, settings: Settings):
        self.database = database
        self.request_timeout_s = settings.request_timeout_s

    async def persist(
        self, entry: WorkoutEntry, owner: str, source_text: str
    ) -> dict[str, Any]:
        """Store one entry and return the stored row as JSON-ready data."""
        exercise = Exercise(
            id=uuid4(),
            owner=owner,
            summary=source_text,
            created_at=datetime.now(UTC),
            **entry.model_dump(),
        )

        try:
            async with asyncio.timeout(self.request_timeout_s):
                async with self.database.session() as session:
                    session.add(exercise)
                    await session.commit()
        except TimeoutError as e:
            raise UploadError(
                f"failed to insert exercise {entry.exercise_name}: timed out"
            ) from e
        except (SQLAlchemyError, OSError) as e:
            raise UploadError(
                f"failed to insert exercise {entry.exercise_name}: {e}"
            ) from e

        logger.debug(
            "Stored workout entry",
            exercise_id=str(exercise.id),
            exercise_name=exercise.exercise_name,
        )
        return StoredWorkoutEntry.model_validate(exercise).model_dump(mode="json")

    async def fetch(self, exercise_id: UUID, owner: str) -> dict[str, Any] | None:
        """Stored entry with this id, or None when missing or owned by someone else."""
        try:
            async with asyncio.timeout(self.request_timeout_s):
                async with self.database.session() as session:
                    exercise = (
                        await session.execute(
                            select(Exercise).where(
                                Exercise.id == exercise_id, Exercise.owner == owner
                            )
                        )
                    ).scalar_one_or_none()
        except TimeoutError as e:
            raise StoreError(
                f"fetch exercise timed out after {self.request_timeout_s}s"
            ) from e
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"fetch exercise failed: {e}") from e

        if exercise is None:
            return None
        return StoredWorkoutEntry.model_validate(exercise).model_dump(mode="json")
