"""
SQLAlchemy database models.
Defines the jobs table.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from jobqueue.constants import DEFAULT_QUEUE


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Job(Base):
    """
    Job model representing a unit of work in the queue.

    The row is the only coordination point between workers. A worker owns a
    job while locked_at/locked_by are set to its identity; the lock is taken
    with a conditional UPDATE so the database decides the single winner.

    Key constraints:
    - handler and queue never change after insert
    - locked_at and locked_by are either both set or both NULL
    - failed_at set means the job is never picked up again; error holds the reason
    - successful jobs are deleted rather than marked
    """

    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Serialized handler ({"job_type": ..., "data": {...}})
    handler: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    queue: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=DEFAULT_QUEUE,
    )

    # Scheduling
    run_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Lock management
    locked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
    )
    locked_by: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )

    # Failure tracking
    failed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    __table_args__ = (
        # Index for candidate polling
        Index("ix_jobs_queue_poll", "queue", "failed_at", "run_at"),
    )

    def __repr__(self) -> str:
        return (
            f"Job(id={self.id}, queue={self.queue}, "
            f"locked_by={self.locked_by}, failed_at={self.failed_at})"
        )
