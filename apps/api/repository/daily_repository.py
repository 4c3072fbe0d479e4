"""Repository for daily challenges, their challenges, rewards and history."""

from __future__ import annotations

import datetime as dt
from typing import Any

import asyncpg
from asyncpg import Connection, Pool
from litestar.datastructures import State

from repository.base import BaseRepository
from repository.exceptions import (
    CheckConstraintViolationError,
    ForeignKeyViolationError,
    extract_constraint_name,
)

DAILY_COLUMNS = "id, user_id, date, claimed_date"
CHALLENGE_COLUMNS = "id, daily_id, name, description, skill, completed, completed_at"
DAILY_REWARD_COLUMNS = "id, daily_id, type, amount"
HISTORY_COLUMNS = "id, daily_id, date, rewards_claimed"


class DailyRepository(BaseRepository):
    """Repository for the daily challenge tree."""

    def __init__(self, pool: Pool) -> None:
        """Initialize repository.

        Args:
            pool: AsyncPG connection pool.
        """
        super().__init__(pool)

    # ===== Daily challenges =====

    async def create_daily(self, user_id: int, date: dt.date | None, *, conn: Connection | None = None) -> dict:
        """Insert an unclaimed daily challenge, dated today when no date is given.

        Raises:
            ForeignKeyViolationError: If the user does not exist.
        """
        _conn = self._get_connection(conn)
        try:
            row = await _conn.fetchrow(
                f"""
                INSERT INTO daily.daily_challenges (user_id, date)
                VALUES ($1, coalesce($2::date, current_date))
                RETURNING {DAILY_COLUMNS}
                """,
                user_id,
                date,
            )
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="daily.daily_challenges",
                detail=str(e),
            ) from e
        return dict(row)

    async def fetch_daily(self, daily_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a daily challenge by ID."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {DAILY_COLUMNS} FROM daily.daily_challenges WHERE id = $1", daily_id)
        return dict(row) if row else None

    async def fetch_user_dailies(
        self,
        user_id: int,
        *,
        date: dt.date | None = None,
        conn: Connection | None = None,
    ) -> list[dict]:
        """Fetch the daily challenges of a user, newest day first.

        Args:
            user_id: Owner.
            date: Optional filter on the day.
            conn: Optional connection for transaction participation.

        Returns:
            List of daily challenge dicts.
        """
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"""
            SELECT {DAILY_COLUMNS}
            FROM daily.daily_challenges
            WHERE user_id = $1 AND ($2::date IS NULL OR date = $2::date)
            ORDER BY date DESC, id DESC
            """,
            user_id,
            date,
        )
        return [dict(row) for row in rows]

    async def check_daily_owner(self, daily_id: int, user_id: int, *, conn: Connection | None = None) -> bool:
        """Return True if the daily challenge exists and belongs to the user."""
        _conn = self._get_connection(conn)
        return bool(
            await _conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM daily.daily_challenges WHERE id = $1 AND user_id = $2)",
                daily_id,
                user_id,
            )
        )

    async def update_daily_date(
        self,
        daily_id: int,
        user_id: int,
        date: dt.date,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Move a daily challenge owned by the user to another day."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE daily.daily_challenges
            SET date = $3, updated_at = now()
            WHERE id = $1 AND user_id = $2
            RETURNING {DAILY_COLUMNS}
            """,
            daily_id,
            user_id,
            date,
        )
        return dict(row) if row else None

    async def delete_daily(self, daily_id: int, user_id: int, *, conn: Connection | None = None) -> bool:
        """Delete a daily challenge with its children. Returns True if deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute(
            "DELETE FROM daily.daily_challenges WHERE id = $1 AND user_id = $2",
            daily_id,
            user_id,
        )
        return result == "DELETE 1"

    async def mark_daily_claimed(
        self,
        daily_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Stamp the claim date of a daily challenge whose challenges are all completed.

        A daily challenge with no challenges counts as completed.

        Returns:
            The claimed daily challenge, or None if it is missing, not owned,
            already claimed or has a pending challenge.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE daily.daily_challenges d
            SET claimed_date = now(), updated_at = now()
            WHERE d.id = $1 AND d.user_id = $2 AND d.claimed_date IS NULL
              AND NOT EXISTS (
                  SELECT 1 FROM daily.challenges c WHERE c.daily_id = d.id AND NOT c.completed
              )
            RETURNING {DAILY_COLUMNS}
            """,
            daily_id,
            user_id,
        )
        return dict(row) if row else None

    async def fetch_daily_status(
        self,
        daily_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Fetch the claim marker and pending challenge flag of a daily challenge owned by the user."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            """
            SELECT d.claimed_date,
                   EXISTS (
                       SELECT 1 FROM daily.challenges c WHERE c.daily_id = d.id AND NOT c.completed
                   ) AS has_pending
            FROM daily.daily_challenges d
            WHERE d.id = $1 AND d.user_id = $2
            """,
            daily_id,
            user_id,
        )
        return dict(row) if row else None

    async def lock_daily_status(self, daily_id: int, *, conn: Connection) -> dict | None:
        """Share-lock a daily challenge row and return its owner and payout marker."""
        row = await conn.fetchrow(
            """
            SELECT user_id, claimed_date IS NOT NULL AS paid_out
            FROM daily.daily_challenges
            WHERE id = $1
            FOR SHARE
            """,
            daily_id,
        )
        return dict(row) if row else None

    async def lock_daily_for_claim(self, daily_id: int, user_id: int, *, conn: Connection) -> dict | None:
        """Exclusively lock a daily challenge owned by the user and return its claim marker.

        Challenge inserts share-lock the same row, so once this returns no new
        challenge can appear until the caller's transaction ends.
        """
        row = await conn.fetchrow(
            """
            SELECT claimed_date
            FROM daily.daily_challenges
            WHERE id = $1 AND user_id = $2
            FOR UPDATE
            """,
            daily_id,
            user_id,
        )
        return dict(row) if row else None

    # ===== Challenges =====

    async def create_challenge(
        self,
        daily_id: int,
        name: str,
        description: str | None,
        skill: str | None,
        *,
        conn: Connection | None = None,
    ) -> dict:
        """Insert a pending challenge.

        Raises:
            ForeignKeyViolationError: If the daily challenge does not exist.
        """
        _conn = self._get_connection(conn)
        try:
            row = await _conn.fetchrow(
                f"""
                INSERT INTO daily.challenges (daily_id, name, description, skill)
                VALUES ($1, $2, $3, $4)
                RETURNING {CHALLENGE_COLUMNS}
                """,
                daily_id,
                name,
                description,
                skill,
            )
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="daily.challenges",
                detail=str(e),
            ) from e
        return dict(row)

    async def fetch_challenge(self, challenge_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a challenge by ID."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {CHALLENGE_COLUMNS} FROM daily.challenges WHERE id = $1", challenge_id)
        return dict(row) if row else None

    async def fetch_challenges(self, daily_ids: list[int], *, conn: Connection | None = None) -> list[dict]:
        """Fetch the challenges of several daily challenges in creation order."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"SELECT {CHALLENGE_COLUMNS} FROM daily.challenges WHERE daily_id = ANY($1::int[]) ORDER BY id",
            daily_ids,
        )
        return [dict(row) for row in rows]

    async def update_challenge(
        self,
        challenge_id: int,
        user_id: int,
        data: dict[str, Any],
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Update descriptive columns of a challenge whose day belongs to the user."""
        _conn = self._get_connection(conn)
        if not data:
            row = await _conn.fetchrow(
                f"""
                SELECT {_prefixed("c", CHALLENGE_COLUMNS)}
                FROM daily.challenges c
                JOIN daily.daily_challenges d ON d.id = c.daily_id
                WHERE c.id = $1 AND d.user_id = $2
                """,
                challenge_id,
                user_id,
            )
            return dict(row) if row else None

        set_clause, values = self._build_set_clause(data, start=3)
        query = f"""
            UPDATE daily.challenges c
            SET {set_clause}
            FROM daily.daily_challenges d
            WHERE c.id = $1 AND c.daily_id = d.id AND d.user_id = $2
            RETURNING {_prefixed("c", CHALLENGE_COLUMNS)}
        """
        row = await _conn.fetchrow(query, challenge_id, user_id, *values)
        return dict(row) if row else None

    async def delete_challenge(self, challenge_id: int, user_id: int, *, conn: Connection | None = None) -> bool:
        """Delete a challenge whose day belongs to the user. Returns True if deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute(
            """
            DELETE FROM daily.challenges c
            USING daily.daily_challenges d
            WHERE c.id = $1 AND c.daily_id = d.id AND d.user_id = $2
            """,
            challenge_id,
            user_id,
        )
        return result == "DELETE 1"

    async def mark_challenge_completed(
        self,
        challenge_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Flip a pending challenge to completed.

        Returns:
            The challenge, or None if it is missing, not owned or already completed.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE daily.challenges c
            SET completed = true, completed_at = now()
            FROM daily.daily_challenges d
            WHERE c.id = $1 AND c.daily_id = d.id AND d.user_id = $2 AND NOT c.completed
            RETURNING {_prefixed("c", CHALLENGE_COLUMNS)}
            """,
            challenge_id,
            user_id,
        )
        return dict(row) if row else None

    async def fetch_challenge_status(
        self,
        challenge_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Fetch the completion marker of a challenge owned by the user."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            """
            SELECT c.completed
            FROM daily.challenges c
            JOIN daily.daily_challenges d ON d.id = c.daily_id
            WHERE c.id = $1 AND d.user_id = $2
            """,
            challenge_id,
            user_id,
        )
        return dict(row) if row else None

    # ===== Daily rewards =====

    async def create_daily_reward(
        self,
        daily_id: int,
        reward_type: str,
        amount: int,
        *,
        conn: Connection | None = None,
    ) -> dict:
        """Insert a reward of a daily challenge.

        Raises:
            ForeignKeyViolationError: If the daily challenge does not exist.
            CheckConstraintViolationError: If the type is unknown.
        """
        _conn = self._get_connection(conn)
        try:
            row = await _conn.fetchrow(
                f"""
                INSERT INTO daily.rewards (daily_id, type, amount)
                VALUES ($1, $2, $3)
                RETURNING {DAILY_REWARD_COLUMNS}
                """,
                daily_id,
                reward_type,
                amount,
            )
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="daily.rewards",
                detail=str(e),
            ) from e
        except asyncpg.CheckViolationError as e:
            constraint = extract_constraint_name(e)
            raise CheckConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="daily.rewards",
                detail=str(e),
            ) from e
        return dict(row)

    async def fetch_daily_reward(self, reward_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a daily reward by ID."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {DAILY_REWARD_COLUMNS} FROM daily.rewards WHERE id = $1", reward_id)
        return dict(row) if row else None

    async def fetch_daily_rewards(self, daily_ids: list[int], *, conn: Connection | None = None) -> list[dict]:
        """Fetch the rewards of several daily challenges in creation order."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"SELECT {DAILY_REWARD_COLUMNS} FROM daily.rewards WHERE daily_id = ANY($1::int[]) ORDER BY id",
            daily_ids,
        )
        return [dict(row) for row in rows]

    async def update_daily_reward(
        self,
        reward_id: int,
        data: dict[str, Any],
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Update columns of a daily reward.

        Raises:
            CheckConstraintViolationError: If the new type is unknown.
        """
        if not data:
            return await self.fetch_daily_reward(reward_id, conn=conn)

        _conn = self._get_connection(conn)
        set_clause, values = self._build_set_clause(data, start=2)
        query = f"UPDATE daily.rewards SET {set_clause} WHERE id = $1 RETURNING {DAILY_REWARD_COLUMNS}"
        try:
            row = await _conn.fetchrow(query, reward_id, *values)
        except asyncpg.CheckViolationError as e:
            constraint = extract_constraint_name(e)
            raise CheckConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="daily.rewards",
                detail=str(e),
            ) from e
        return dict(row) if row else None

    async def delete_daily_reward(self, reward_id: int, *, conn: Connection | None = None) -> bool:
        """Delete a daily reward. Returns True if a row was deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute("DELETE FROM daily.rewards WHERE id = $1", reward_id)
        return result == "DELETE 1"

    # ===== History =====

    async def create_history(
        self,
        daily_id: int,
        date: dt.datetime | None,
        rewards_claimed: bool,
        *,
        conn: Connection | None = None,
    ) -> dict:
        """Insert a history entry, dated now when no date is given.

        Raises:
            ForeignKeyViolationError: If the daily challenge does not exist.
        """
        _conn = self._get_connection(conn)
        try:
            row = await _conn.fetchrow(
                f"""
                INSERT INTO daily.history (daily_id, date, rewards_claimed)
                VALUES ($1, coalesce($2::timestamptz, now()), $3)
                RETURNING {HISTORY_COLUMNS}
                """,
                daily_id,
                date,
                rewards_claimed,
            )
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="daily.history",
                detail=str(e),
            ) from e
        return dict(row)

    async def fetch_history(self, history_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a history entry by ID together with the owner of its day."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            SELECT {_prefixed("h", HISTORY_COLUMNS)}, d.user_id
            FROM daily.history h
            JOIN daily.daily_challenges d ON d.id = h.daily_id
            WHERE h.id = $1
            """,
            history_id,
        )
        return dict(row) if row else None

    async def fetch_daily_history(self, daily_id: int, *, conn: Connection | None = None) -> list[dict]:
        """Fetch the history of a daily challenge, newest first."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"SELECT {HISTORY_COLUMNS} FROM daily.history WHERE daily_id = $1 ORDER BY date DESC, id DESC",
            daily_id,
        )
        return [dict(row) for row in rows]

    async def fetch_user_history(self, user_id: int, *, conn: Connection | None = None) -> list[dict]:
        """Fetch the history across every daily challenge of a user, newest first."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"""
            SELECT {_prefixed("h", HISTORY_COLUMNS)}
            FROM daily.history h
            JOIN daily.daily_challenges d ON d.id = h.daily_id
            WHERE d.user_id = $1
            ORDER BY h.date DESC, h.id DESC
            """,
            user_id,
        )
        return [dict(row) for row in rows]

    async def update_history(
        self,
        history_id: int,
        user_id: int,
        data: dict[str, Any],
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Update a history entry whose day belongs to the user."""
        if not data:
            history = await self.fetch_history(history_id, conn=conn)
            if not history or history.pop("user_id") != user_id:
                return None
            return history

        _conn = self._get_connection(conn)
        set_clause, values = self._build_set_clause(data, start=3)
        query = f"""
            UPDATE daily.history h
            SET {set_clause}
            FROM daily.daily_challenges d
            WHERE h.id = $1 AND h.daily_id = d.id AND d.user_id = $2
            RETURNING {_prefixed("h", HISTORY_COLUMNS)}
        """
        row = await _conn.fetchrow(query, history_id, user_id, *values)
        return dict(row) if row else None

    async def delete_history(self, history_id: int, user_id: int, *, conn: Connection | None = None) -> bool:
        """Delete a history entry whose day belongs to the user. Returns True if deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute(
            """
            DELETE FROM daily.history h
            USING daily.daily_challenges d
            WHERE h.id = $1 AND h.daily_id = d.id AND d.user_id = $2
            """,
            history_id,
            user_id,
        )
        return result == "DELETE 1"


def _prefixed(alias: str, columns: str) -> str:
    return ", ".join(f"{alias}.{column.strip()}" for column in columns.split(","))


async def provide_daily_repository(state: State) -> DailyRepository:
    """Litestar DI provider for DailyRepository.

    Args:
        state: Application state.

    Returns:
        DailyRepository instance.
    """
    return DailyRepository(state.db_pool)
