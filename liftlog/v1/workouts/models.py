"""
Stored workout entries.
"""

from datetime import UTC, datetime
from uuid import UUID, uuid4

from sqlalchemy import TIMESTAMP, Float, Index, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import Mapped, mapped_column

from liftlog.infra.database import Base


class Exercise(Base):
    """One exercise extracted from a workout log message."""

    __tablename__ = "exercises"

    id: Mapped[UUID] = mapped_column(PG_UUID, primary_key=True, default=uuid4)
    exercise_name: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Source workout log message"
    )
    type: Mapped[str | None] = mapped_column(Text, nullable=True)
    sets: Mapped[float | None] = mapped_column(Float, nullable=True)
    work: Mapped[float | None] = mapped_column(Float, nullable=True)
    work_type: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="repetitions|duration|distance"
    )
    work_unit: Mapped[str | None] = mapped_column(Text, nullable=True)
    resistance: Mapped[float | None] = mapped_column(Float, nullable=True)
    resistance_type: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="pounds|kg"
    )
    duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    attributes: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list, server_default="{}"
    )
    owner: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default="now()",
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (Index("ix_exercises_owner_created_at", "owner", "created_at"),)
