"""Repository for skill stat aggregates."""

from __future__ import annotations

from asyncpg import Connection, Pool
from asyncpg.exceptions import UniqueViolationError
from litestar.datastructures import State

from repository.base import BaseRepository
from repository.exceptions import UniqueConstraintViolationError, extract_constraint_name

STAT_COLUMNS = "id, user_id, skill, value, level, updated_at"


class StatsRepository(BaseRepository):
    """Repository for per-user, per-skill stats.

    Every write recomputes ``level = floor(value / 100) + 1`` in the same statement.
    """

    def __init__(self, pool: Pool) -> None:
        """Initialize repository.

        Args:
            pool: AsyncPG connection pool.
        """
        super().__init__(pool)

    async def add_skill_value(
        self,
        user_id: int,
        skill: str,
        amount: int,
        *,
        conn: Connection | None = None,
    ) -> dict:
        """Atomically add to a skill stat, creating it on first use.

        Concurrent calls for the same (user, skill) pair serialize on the row,
        so no increment is lost and the unique constraint is never violated.

        Args:
            user_id: Owner of the stat.
            skill: Skill key.
            amount: Value to add.
            conn: Optional connection for transaction participation.

        Returns:
            The stat after the increment.
        """
        _conn = self._get_connection(conn)
        query = f"""
            INSERT INTO core.stats (user_id, skill, value, level)
            VALUES ($1, $2, $3::int, floor($3::int / 100.0)::int + 1)
            ON CONFLICT (user_id, skill) DO UPDATE
                SET value = core.stats.value + EXCLUDED.value,
                    level = floor((core.stats.value + EXCLUDED.value) / 100.0)::int + 1,
                    updated_at = now()
            RETURNING {STAT_COLUMNS}
        """
        row = await _conn.fetchrow(query, user_id, skill, amount)
        return dict(row)

    async def increment_stat(
        self,
        stat_id: int,
        user_id: int,
        amount: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Atomically add to an existing stat by ID.

        Args:
            stat_id: Target stat ID.
            user_id: Owner of the stat.
            amount: Value to add.
            conn: Optional connection for transaction participation.

        Returns:
            The stat after the increment, or None if not found for this owner.
        """
        _conn = self._get_connection(conn)
        query = f"""
            UPDATE core.stats
            SET value = value + $3::int,
                level = floor((value + $3::int) / 100.0)::int + 1,
                updated_at = now()
            WHERE id = $1 AND user_id = $2
            RETURNING {STAT_COLUMNS}
        """
        row = await _conn.fetchrow(query, stat_id, user_id, amount)
        return dict(row) if row else None

    async def create_stat(
        self,
        user_id: int,
        skill: str,
        value: int,
        *,
        conn: Connection | None = None,
    ) -> dict:
        """Insert a stat with an explicit starting value.

        Raises:
            UniqueConstraintViolationError: If the user already has this skill.
        """
        _conn = self._get_connection(conn)
        query = f"""
            INSERT INTO core.stats (user_id, skill, value, level)
            VALUES ($1, $2, $3::int, floor($3::int / 100.0)::int + 1)
            RETURNING {STAT_COLUMNS}
        """
        try:
            row = await _conn.fetchrow(query, user_id, skill, value)
        except UniqueViolationError as e:
            constraint = extract_constraint_name(e)
            raise UniqueConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="core.stats",
                detail=e.detail,
            ) from e
        return dict(row)

    async def fetch_stat(self, stat_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a stat by ID."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {STAT_COLUMNS} FROM core.stats WHERE id = $1", stat_id)
        return dict(row) if row else None

    async def fetch_user_stat_by_skill(
        self,
        user_id: int,
        skill: str,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Fetch the stat of a user for a given skill."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"SELECT {STAT_COLUMNS} FROM core.stats WHERE user_id = $1 AND skill = $2",
            user_id,
            skill,
        )
        return dict(row) if row else None

    async def fetch_user_stats(self, user_id: int, *, conn: Connection | None = None) -> list[dict]:
        """Fetch every stat of a user ordered by skill."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"SELECT {STAT_COLUMNS} FROM core.stats WHERE user_id = $1 ORDER BY skill",
            user_id,
        )
        return [dict(row) for row in rows]

    async def rename_skill(
        self,
        stat_id: int,
        user_id: int,
        skill: str,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Change the skill key of a stat.

        Raises:
            UniqueConstraintViolationError: If the user already has the new skill.
        """
        _conn = self._get_connection(conn)
        query = f"""
            UPDATE core.stats
            SET skill = $3, updated_at = now()
            WHERE id = $1 AND user_id = $2
            RETURNING {STAT_COLUMNS}
        """
        try:
            row = await _conn.fetchrow(query, stat_id, user_id, skill)
        except UniqueViolationError as e:
            constraint = extract_constraint_name(e)
            raise UniqueConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="core.stats",
                detail=e.detail,
            ) from e
        return dict(row) if row else None

    async def delete_stat(self, stat_id: int, user_id: int, *, conn: Connection | None = None) -> bool:
        """Delete a stat. Returns True if a row was deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute("DELETE FROM core.stats WHERE id = $1 AND user_id = $2", stat_id, user_id)
        return result == "DELETE 1"


async def provide_stats_repository(state: State) -> StatsRepository:
    """Litestar DI provider for StatsRepository.

    Args:
        state: Application state.

    Returns:
        StatsRepository instance.
    """
    return StatsRepository(state.db_pool)
