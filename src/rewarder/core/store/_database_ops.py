"""Database operation helpers to reduce boilerplate in the store.

Consolidates the repeated `with self._db.connection() as conn:` pattern
for single-statement reads. Multi-statement writes that must be atomic
open their own connection instead.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy import Executable
from sqlalchemy.engine import Row

if TYPE_CHECKING:
    from rewarder.core.store.database import ReportDB


class DatabaseOps:
    """Helper for common database operations."""

    def __init__(self, db: "ReportDB") -> None:
        self._db = db

    def execute_fetchone(self, query: Executable) -> Row[Any] | None:
        """Execute query and return single row or None."""
        with self._db.connection() as conn:
            result = conn.execute(query)
            return result.fetchone()

    def execute_fetchall(self, query: Executable) -> list[Row[Any]]:
        """Execute query and return all rows."""
        with self._db.connection() as conn:
            result = conn.execute(query)
            return list(result.fetchall())

    def execute_scalar(self, query: Executable) -> Any:
        """Execute query and return the first column of the first row."""
        with self._db.connection() as conn:
            return conn.execute(query).scalar()
