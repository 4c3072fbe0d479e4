"""Repository for task database operations."""

from __future__ import annotations

import datetime as dt

import asyncpg
from asyncpg import Connection, Pool
from litestar.datastructures import State

from repository.base import BaseRepository
from repository.exceptions import ForeignKeyViolationError, extract_constraint_name

TASK_COLUMNS = "id, user_id, name, completed, completed_at, created_at"


class TasksRepository(BaseRepository):
    """Repository for tasks."""

    def __init__(self, pool: Pool) -> None:
        """Initialize repository.

        Args:
            pool: AsyncPG connection pool.
        """
        super().__init__(pool)

    async def create_task(self, user_id: int, name: str, *, conn: Connection | None = None) -> dict:
        """Insert a pending task.

        Raises:
            ForeignKeyViolationError: If the user does not exist.
        """
        _conn = self._get_connection(conn)
        try:
            row = await _conn.fetchrow(
                f"INSERT INTO core.tasks (user_id, name) VALUES ($1, $2) RETURNING {TASK_COLUMNS}",
                user_id,
                name,
            )
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="core.tasks",
                detail=str(e),
            ) from e
        return dict(row)

    async def fetch_task(self, task_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a task by ID."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {TASK_COLUMNS} FROM core.tasks WHERE id = $1", task_id)
        return dict(row) if row else None

    async def fetch_user_tasks(
        self,
        user_id: int,
        *,
        created_on: dt.date | None = None,
        conn: Connection | None = None,
    ) -> list[dict]:
        """Fetch the tasks of a user, newest first.

        Args:
            user_id: Owner.
            created_on: Optional filter on the creation day (UTC).
            conn: Optional connection for transaction participation.

        Returns:
            List of task dicts.
        """
        _conn = self._get_connection(conn)
        query = f"""
            SELECT {TASK_COLUMNS}
            FROM core.tasks
            WHERE user_id = $1
              AND ($2::date IS NULL OR (created_at AT TIME ZONE 'UTC')::date = $2::date)
            ORDER BY created_at DESC, id DESC
        """
        rows = await _conn.fetch(query, user_id, created_on)
        return [dict(row) for row in rows]

    async def rename_task(
        self,
        task_id: int,
        user_id: int,
        name: str,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Rename a task owned by the user."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE core.tasks
            SET name = $3, updated_at = now()
            WHERE id = $1 AND user_id = $2
            RETURNING {TASK_COLUMNS}
            """,
            task_id,
            user_id,
            name,
        )
        return dict(row) if row else None

    async def delete_task(self, task_id: int, user_id: int, *, conn: Connection | None = None) -> bool:
        """Delete a task owned by the user. Returns True if a row was deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute("DELETE FROM core.tasks WHERE id = $1 AND user_id = $2", task_id, user_id)
        return result == "DELETE 1"

    async def mark_task_completed(
        self,
        task_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Flip a pending task to completed.

        The update only matches a pending row, so of several concurrent
        callers exactly one gets the row back.

        Args:
            task_id: Target task ID.
            user_id: Owner.
            conn: Optional connection for transaction participation.

        Returns:
            The completed task, or None if it is missing, not owned or already completed.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE core.tasks
            SET completed = true, completed_at = now(), updated_at = now()
            WHERE id = $1 AND user_id = $2 AND NOT completed
            RETURNING {TASK_COLUMNS}
            """,
            task_id,
            user_id,
        )
        return dict(row) if row else None

    async def fetch_task_status(
        self,
        task_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Fetch the completion marker of a task owned by the user."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            "SELECT completed FROM core.tasks WHERE id = $1 AND user_id = $2",
            task_id,
            user_id,
        )
        return dict(row) if row else None


async def provide_tasks_repository(state: State) -> TasksRepository:
    """Litestar DI provider for TasksRepository.

    Args:
        state: Application state.

    Returns:
        TasksRepository instance.
    """
    return TasksRepository(state.db_pool)
