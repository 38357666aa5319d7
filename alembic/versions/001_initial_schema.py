"""Initial schema with jobs table

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create jobs table
    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer, autoincrement=True, nullable=False),
        sa.Column("handler", sa.Text, nullable=False),
        sa.Column("queue", sa.String(255), nullable=False, server_default="default"),
        sa.Column("run_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("locked_by", sa.String(255), nullable=True),
        sa.Column("failed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # Create indexes
    op.create_index("ix_jobs_locked_at", "jobs", ["locked_at"])
    op.create_index("ix_jobs_locked_by", "jobs", ["locked_by"])

    # Index for candidate polling
    op.create_index("ix_jobs_queue_poll", "jobs", ["queue", "failed_at", "run_at"])


def downgrade() -> None:
    # Drop indexes
    op.drop_index("ix_jobs_queue_poll")
    op.drop_index("ix_jobs_locked_by")
    op.drop_index("ix_jobs_locked_at")

    # Drop table
    op.drop_table("jobs")
