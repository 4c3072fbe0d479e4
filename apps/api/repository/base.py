"""Base repository class."""

from __future__ import annotations

from typing import Any

from asyncpg import Connection, Pool


class BaseRepository:
    """Base class for all repositories.

    Repositories handle data access and raise repository-specific exceptions.
    They accept an optional connection parameter for transaction participation.
    """

    def __init__(self, pool: Pool) -> None:
        """Initialize repository.

        Args:
            pool: AsyncPG connection pool.
        """
        self._pool = pool

    def _get_connection(self, conn: Connection | None = None) -> Connection | Pool:
        """Get connection for query execution.

        Args:
            conn: Optional connection from transaction context.

        Returns:
            Connection if provided (for transactions), otherwise pool.
        """
        return conn or self._pool

    @staticmethod
    def _build_set_clause(data: dict[str, Any], *, start: int = 1) -> tuple[str, list[Any]]:
        """Build a parameterized SET clause from a column to value mapping.

        Column names come from request Struct fields, never from user input.

        Args:
            data: Columns to update and their new values.
            start: Index of the first positional parameter.

        Returns:
            The SET clause (without the keyword) and its values in order.
        """
        set_clauses = []
        values = []
        for idx, (column, value) in enumerate(data.items(), start=start):
            set_clauses.append(f"{column} = ${idx}")
            values.append(value)
        return ", ".join(set_clauses), values
