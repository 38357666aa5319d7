"""
Database module.
Contains database connection, models, the job store and the repository.
"""

from jobqueue.db.connection import (
    close_db,
    create_schema,
    get_engine,
    get_job_store,
    get_test_engine,
    init_db,
)
from jobqueue.db.models import Base, Job
from jobqueue.db.store import JobStore

__all__ = [
    "get_engine",
    "get_test_engine",
    "get_job_store",
    "init_db",
    "close_db",
    "create_schema",
    "JobStore",
    "Job",
    "Base",
]
