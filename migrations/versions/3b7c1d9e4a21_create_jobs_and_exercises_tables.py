"""create jobs and exercises tables with notify trigger

Revision ID: 3b7c1d9e4a21
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""


from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from liftlog.config.settings import Settings
from liftlog.v1.infra.jobs import ddl


# revision identifiers, used by Alembic.
revision: str = "3b7c1d9e4a21"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "jobs",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "status",
            sa.Text,
            nullable=False,
            server_default="pending",
            comment="Job status: pending|queued|processing|completed|failed",
        ),
        sa.Column(
            "data",
            postgresql.JSONB,
            nullable=False,
            comment="Submitted payload, expects a message field",
        ),
        sa.Column(
            "result",
            postgresql.JSONB,
            nullable=True,
            comment="Stored workout entries once completed",
        ),
        sa.Column("error", sa.Text, nullable=True, comment="Last failure message"),
        sa.Column(
            "retry_count",
            sa.Integer,
            nullable=False,
            server_default="0",
            comment="Number of failed attempts",
        ),
        sa.Column("owner", sa.Text, nullable=False, comment="Submitting principal"),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'queued', 'processing', 'completed', 'failed')",
            name="jobs_status_check",
        ),
        sa.CheckConstraint("retry_count >= 0", name="jobs_retry_count_check"),
    )

    # Claim scans eligible rows in created_at order
    op.create_index("ix_jobs_status_created_at", "jobs", ["status", "created_at"])

    op.create_table(
        "exercises",
        sa.Column("id", sa.UUID(as_uuid=True), primary_key=True),
        sa.Column("exercise_name", sa.Text, nullable=False),
        sa.Column(
            "summary", sa.Text, nullable=True, comment="Source workout log message"
        ),
        sa.Column("type", sa.Text, nullable=True),
        sa.Column("sets", sa.Float, nullable=True),
        sa.Column("work", sa.Float, nullable=True),
        sa.Column(
            "work_type",
            sa.Text,
            nullable=True,
            comment="repetitions|duration|distance",
        ),
        sa.Column("work_unit", sa.Text, nullable=True),
        sa.Column("resistance", sa.Float, nullable=True),
        sa.Column("resistance_type", sa.Text, nullable=True, comment="pounds|kg"),
        sa.Column("duration", sa.Float, nullable=True),
        sa.Column(
            "attributes",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("owner", sa.Text, nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_exercises_owner_created_at", "exercises", ["owner", "created_at"]
    )

    channel = Settings().notify_channel
    for statement in ddl.install_statements(channel):
        op.execute(statement)


def downgrade() -> None:
    """Downgrade schema."""
    for statement in ddl.uninstall_statements():
        op.execute(statement)
    op.drop_table("exercises")
    op.drop_table("jobs")
