"""
Job store: parameterized statement execution against the jobs database.

Every call runs on its own connection. Writes run in their own transaction
and are committed before returning so other workers see them immediately;
the conditional UPDATE used for locking relies on the database's row-level
atomicity, not on anything held in this process.
"""

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Executable, Row
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError
from sqlalchemy.ext.asyncio import AsyncEngine

from jobqueue.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


def is_disconnect(error: BaseException) -> bool:
    """
    Check whether an exception means the database connection is gone.

    Args:
        error: The exception to inspect.

    Returns:
        True for connection-level failures, False for ordinary SQL errors.
    """
    if isinstance(error, (StoreUnavailableError, DisconnectionError)):
        return True
    if isinstance(error, DBAPIError):
        return bool(error.connection_invalidated) or isinstance(error, InterfaceError)
    return False


class JobStore:
    """
    Thin executor for read queries and write statements.

    Connectivity failures surface as StoreUnavailableError; every other
    database error propagates unchanged.
    """

    def __init__(self, engine: AsyncEngine):
        """
        Initialize the store with an engine.

        Args:
            engine: The async SQLAlchemy engine.
        """
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def execute_query(
        self,
        statement: Executable,
        params: dict[str, Any] | None = None,
    ) -> Sequence[Row]:
        """
        Run a read-only statement.

        Args:
            statement: The SELECT to run.
            params: Optional bound parameters.

        Returns:
            The fetched rows.
        """
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(statement, params)
                return result.all()
        except Exception as e:
            self._raise_if_unavailable(e)
            raise

    async def execute_update(
        self,
        statement: Executable,
        params: dict[str, Any] | None = None,
    ) -> int:
        """
        Run a write statement in its own committed transaction.

        Args:
            statement: The INSERT, UPDATE or DELETE to run.
            params: Optional bound parameters.

        Returns:
            Number of rows affected.
        """
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(statement, params)
                return result.rowcount
        except Exception as e:
            self._raise_if_unavailable(e)
            raise

    @staticmethod
    def _raise_if_unavailable(error: Exception) -> None:
        if isinstance(error, StoreUnavailableError):
            raise error
        # OSError covers refused or reset connections raised by the driver
        if is_disconnect(error) or isinstance(error, OSError):
            logger.error(
                "Job store unavailable",
                extra={"error": str(error)},
            )
            raise StoreUnavailableError(str(error)) from error
