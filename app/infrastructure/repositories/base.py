"""Base repository protocol and utilities.

This module defines the interface that all repositories must implement.
"""
from typing import Protocol
import sqlite3


class ConnectionProtocol(Protocol):
    """Protocol for database connection."""

    def execute(self, sql: str, parameters: tuple = ...) -> sqlite3.Cursor: ...
    def executemany(self, sql: str, parameters: list = ...) -> sqlite3.Cursor: ...
    def commit(self) -> None: ...


class Repository:
    """Base repository class.

    All repositories should inherit from this class. Write methods accept
    ``commit=False`` so several of them can share one transaction
    (see ``app.database.transaction``).

    Example:
        class CourseRepository(Repository):
            def get_by_id(self, course_id: int) -> dict | None:
                return self._fetchone("SELECT * FROM courses WHERE id = ?", (course_id,))
    """

    def __init__(self, connection: ConnectionProtocol):
        """Initialize repository with database connection.

        Args:
            connection: Database connection (sqlite3.Connection or compatible)
        """
        self._conn = connection

    def _execute(self, sql: str, parameters: tuple = ()) -> sqlite3.Cursor:
        """Execute SQL query with parameters.

        Args:
            sql: SQL query string
            parameters: Query parameters (prevents SQL injection)

        Returns:
            sqlite3.Cursor with results
        """
        return self._conn.execute(sql, parameters)

    def _execute_many(self, sql: str, parameters_list: list[tuple]) -> sqlite3.Cursor:
        """Execute SQL query multiple times.

        Args:
            sql: SQL query string
            parameters_list: List of parameter tuples

        Returns:
            sqlite3.Cursor
        """
        return self._conn.executemany(sql, parameters_list)

    def _commit(self, commit: bool = True) -> None:
        """Commit current transaction unless the caller owns it."""
        if commit:
            self._conn.commit()

    def _row_to_dict(self, row: sqlite3.Row | None) -> dict | None:
        """Convert sqlite3.Row to dictionary.

        Args:
            row: Database row or None

        Returns:
            Dictionary representation or None
        """
        return dict(row) if row else None

    def _fetchone(self, sql: str, parameters: tuple = ()) -> dict | None:
        """Fetch single row and return as dict."""
        return self._row_to_dict(self._execute(sql, parameters).fetchone())

    def _fetchall(self, sql: str, parameters: tuple = ()) -> list[dict]:
        """Fetch all rows and return as list of dicts."""
        return [dict(row) for row in self._execute(sql, parameters).fetchall()]
