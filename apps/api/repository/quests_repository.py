"""Repository for quests, sub-quests and their rewards."""

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

QUEST_COLUMNS = "id, user_id, name, description, image, end_date, priority, is_completed, completed_at, created_at"
SUB_QUEST_COLUMNS = "id, quest_id, name, completed, claim, completed_at, claimed_at"
REWARD_COLUMNS = "id, type, amount, skill, item_id, quest_id, sub_quest_id"


class QuestsRepository(BaseRepository):
    """Repository for the quest tree: quests, sub-quests and rewards."""

    def __init__(self, pool: Pool) -> None:
        """Initialize repository.

        Args:
            pool: AsyncPG connection pool.
        """
        super().__init__(pool)

    # ===== Quests =====

    async def create_quest(  # noqa: PLR0913
        self,
        user_id: int,
        name: str,
        description: str | None,
        image: str | None,
        end_date: dt.datetime | None,
        priority: int,
        *,
        conn: Connection | None = None,
    ) -> dict:
        """Insert a pending quest.

        Raises:
            ForeignKeyViolationError: If the user does not exist.
        """
        _conn = self._get_connection(conn)
        query = f"""
            INSERT INTO quests.quests (user_id, name, description, image, end_date, priority)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {QUEST_COLUMNS}
        """
        try:
            row = await _conn.fetchrow(query, user_id, name, description, image, end_date, priority)
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="quests.quests",
                detail=str(e),
            ) from e
        return dict(row)

    async def fetch_quest(self, quest_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a quest by ID."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {QUEST_COLUMNS} FROM quests.quests WHERE id = $1", quest_id)
        return dict(row) if row else None

    async def fetch_user_quests(self, user_id: int, *, conn: Connection | None = None) -> list[dict]:
        """Fetch the quests of a user, highest priority then newest first."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"""
            SELECT {QUEST_COLUMNS}
            FROM quests.quests
            WHERE user_id = $1
            ORDER BY priority DESC, created_at DESC, id DESC
            """,
            user_id,
        )
        return [dict(row) for row in rows]

    async def check_quest_owner(self, quest_id: int, user_id: int, *, conn: Connection | None = None) -> bool:
        """Return True if the quest exists and belongs to the user."""
        _conn = self._get_connection(conn)
        return bool(
            await _conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM quests.quests WHERE id = $1 AND user_id = $2)",
                quest_id,
                user_id,
            )
        )

    async def update_quest(
        self,
        quest_id: int,
        user_id: int,
        data: dict[str, Any],
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Update descriptive columns of a quest owned by the user.

        Args:
            quest_id: Target quest ID.
            user_id: Owner.
            data: Columns to update (only provided fields are updated).
            conn: Optional connection for transaction participation.

        Returns:
            The updated quest, or None if not found for this owner.
        """
        if not data:
            quest = await self.fetch_quest(quest_id, conn=conn)
            return quest if quest and quest["user_id"] == user_id else None

        _conn = self._get_connection(conn)
        set_clause, values = self._build_set_clause(data, start=3)
        query = f"""
            UPDATE quests.quests
            SET {set_clause}, updated_at = now()
            WHERE id = $1 AND user_id = $2
            RETURNING {QUEST_COLUMNS}
        """
        row = await _conn.fetchrow(query, quest_id, user_id, *values)
        return dict(row) if row else None

    async def delete_quest(self, quest_id: int, user_id: int, *, conn: Connection | None = None) -> bool:
        """Delete a quest with its sub-quests and rewards. Returns True if deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute("DELETE FROM quests.quests WHERE id = $1 AND user_id = $2", quest_id, user_id)
        return result == "DELETE 1"

    async def mark_quest_completed(
        self,
        quest_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Flip a pending quest to completed.

        Returns:
            The completed quest, or None if it is missing, not owned or already completed.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE quests.quests
            SET is_completed = true, completed_at = now(), updated_at = now()
            WHERE id = $1 AND user_id = $2 AND NOT is_completed
            RETURNING {QUEST_COLUMNS}
            """,
            quest_id,
            user_id,
        )
        return dict(row) if row else None

    async def fetch_quest_status(
        self,
        quest_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Fetch the completion marker of a quest owned by the user."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            "SELECT is_completed FROM quests.quests WHERE id = $1 AND user_id = $2",
            quest_id,
            user_id,
        )
        return dict(row) if row else None

    async def lock_quest_status(self, quest_id: int, *, conn: Connection) -> dict | None:
        """Share-lock a quest row until the transaction ends and return its owner and payout marker.

        Blocks while a concurrent completion of the same quest is in flight.
        """
        row = await conn.fetchrow(
            "SELECT user_id, is_completed AS paid_out FROM quests.quests WHERE id = $1 FOR SHARE",
            quest_id,
        )
        return dict(row) if row else None

    # ===== Sub-quests =====

    async def create_sub_quest(self, quest_id: int, name: str, *, conn: Connection | None = None) -> dict:
        """Insert a pending sub-quest.

        Raises:
            ForeignKeyViolationError: If the quest does not exist.
        """
        _conn = self._get_connection(conn)
        try:
            row = await _conn.fetchrow(
                f"INSERT INTO quests.sub_quests (quest_id, name) VALUES ($1, $2) RETURNING {SUB_QUEST_COLUMNS}",
                quest_id,
                name,
            )
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="quests.sub_quests",
                detail=str(e),
            ) from e
        return dict(row)

    async def fetch_sub_quest(self, sub_quest_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a sub-quest by ID."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"SELECT {SUB_QUEST_COLUMNS} FROM quests.sub_quests WHERE id = $1",
            sub_quest_id,
        )
        return dict(row) if row else None

    async def fetch_sub_quests(self, quest_ids: list[int], *, conn: Connection | None = None) -> list[dict]:
        """Fetch the sub-quests of several quests in creation order."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"SELECT {SUB_QUEST_COLUMNS} FROM quests.sub_quests WHERE quest_id = ANY($1::int[]) ORDER BY id",
            quest_ids,
        )
        return [dict(row) for row in rows]

    async def rename_sub_quest(
        self,
        sub_quest_id: int,
        user_id: int,
        name: str,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Rename a sub-quest whose quest belongs to the user."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE quests.sub_quests sq
            SET name = $3, updated_at = now()
            FROM quests.quests q
            WHERE sq.id = $1 AND sq.quest_id = q.id AND q.user_id = $2
            RETURNING {_prefixed("sq", SUB_QUEST_COLUMNS)}
            """,
            sub_quest_id,
            user_id,
            name,
        )
        return dict(row) if row else None

    async def delete_sub_quest(self, sub_quest_id: int, user_id: int, *, conn: Connection | None = None) -> bool:
        """Delete a sub-quest whose quest belongs to the user. Returns True if deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute(
            """
            DELETE FROM quests.sub_quests sq
            USING quests.quests q
            WHERE sq.id = $1 AND sq.quest_id = q.id AND q.user_id = $2
            """,
            sub_quest_id,
            user_id,
        )
        return result == "DELETE 1"

    async def mark_sub_quest_completed(
        self,
        sub_quest_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Flip a pending sub-quest to completed.

        Returns:
            The sub-quest, or None if it is missing, not owned or already completed.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE quests.sub_quests sq
            SET completed = true, completed_at = now(), updated_at = now()
            FROM quests.quests q
            WHERE sq.id = $1 AND sq.quest_id = q.id AND q.user_id = $2 AND NOT sq.completed
            RETURNING {_prefixed("sq", SUB_QUEST_COLUMNS)}
            """,
            sub_quest_id,
            user_id,
        )
        return dict(row) if row else None

    async def mark_sub_quest_claimed(
        self,
        sub_quest_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Flip a completed, unclaimed sub-quest to claimed.

        Returns:
            The sub-quest, or None if it is missing, not owned, not completed or already claimed.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE quests.sub_quests sq
            SET claim = true, claimed_at = now(), updated_at = now()
            FROM quests.quests q
            WHERE sq.id = $1 AND sq.quest_id = q.id AND q.user_id = $2
              AND sq.completed AND NOT sq.claim
            RETURNING {_prefixed("sq", SUB_QUEST_COLUMNS)}
            """,
            sub_quest_id,
            user_id,
        )
        return dict(row) if row else None

    async def fetch_sub_quest_status(
        self,
        sub_quest_id: int,
        user_id: int,
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Fetch the completion and claim markers of a sub-quest owned by the user."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            """
            SELECT sq.completed, sq.claim
            FROM quests.sub_quests sq
            JOIN quests.quests q ON q.id = sq.quest_id
            WHERE sq.id = $1 AND q.user_id = $2
            """,
            sub_quest_id,
            user_id,
        )
        return dict(row) if row else None

    async def lock_sub_quest_status(self, sub_quest_id: int, *, conn: Connection) -> dict | None:
        """Share-lock a sub-quest row and return its owner and payout marker."""
        row = await conn.fetchrow(
            """
            SELECT q.user_id, sq.claim AS paid_out
            FROM quests.sub_quests sq
            JOIN quests.quests q ON q.id = sq.quest_id
            WHERE sq.id = $1
            FOR SHARE OF sq
            """,
            sub_quest_id,
        )
        return dict(row) if row else None

    # ===== Rewards =====

    async def create_reward(  # noqa: PLR0913
        self,
        reward_type: str,
        amount: int,
        skill: str | None,
        item_id: int | None,
        *,
        quest_id: int | None = None,
        sub_quest_id: int | None = None,
        conn: Connection | None = None,
    ) -> dict:
        """Insert a reward attached to a quest or a sub-quest.

        Raises:
            ForeignKeyViolationError: If the owner or the item does not exist.
            CheckConstraintViolationError: If the type is unknown or the owner is ambiguous.
        """
        _conn = self._get_connection(conn)
        query = f"""
            INSERT INTO quests.rewards (type, amount, skill, item_id, quest_id, sub_quest_id)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING {REWARD_COLUMNS}
        """
        try:
            row = await _conn.fetchrow(query, reward_type, amount, skill, item_id, quest_id, sub_quest_id)
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="quests.rewards",
                detail=str(e),
            ) from e
        except asyncpg.CheckViolationError as e:
            constraint = extract_constraint_name(e)
            raise CheckConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="quests.rewards",
                detail=str(e),
            ) from e
        return dict(row)

    async def fetch_reward(self, reward_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a reward by ID."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {REWARD_COLUMNS} FROM quests.rewards WHERE id = $1", reward_id)
        return dict(row) if row else None

    async def fetch_quest_rewards(self, quest_ids: list[int], *, conn: Connection | None = None) -> list[dict]:
        """Fetch the rewards attached directly to several quests, in creation order."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"SELECT {REWARD_COLUMNS} FROM quests.rewards WHERE quest_id = ANY($1::int[]) ORDER BY id",
            quest_ids,
        )
        return [dict(row) for row in rows]

    async def fetch_sub_quest_rewards(
        self,
        sub_quest_ids: list[int],
        *,
        conn: Connection | None = None,
    ) -> list[dict]:
        """Fetch the rewards attached to several sub-quests, in creation order."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"SELECT {REWARD_COLUMNS} FROM quests.rewards WHERE sub_quest_id = ANY($1::int[]) ORDER BY id",
            sub_quest_ids,
        )
        return [dict(row) for row in rows]

    async def update_reward(
        self,
        reward_id: int,
        data: dict[str, Any],
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Update columns of a reward.

        Raises:
            ForeignKeyViolationError: If the new item does not exist.
            CheckConstraintViolationError: If the new type is unknown.
        """
        if not data:
            return await self.fetch_reward(reward_id, conn=conn)

        _conn = self._get_connection(conn)
        set_clause, values = self._build_set_clause(data, start=2)
        query = f"UPDATE quests.rewards SET {set_clause} WHERE id = $1 RETURNING {REWARD_COLUMNS}"
        try:
            row = await _conn.fetchrow(query, reward_id, *values)
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="quests.rewards",
                detail=str(e),
            ) from e
        except asyncpg.CheckViolationError as e:
            constraint = extract_constraint_name(e)
            raise CheckConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="quests.rewards",
                detail=str(e),
            ) from e
        return dict(row) if row else None

    async def delete_reward(self, reward_id: int, *, conn: Connection | None = None) -> bool:
        """Delete a reward. Returns True if a row was deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute("DELETE FROM quests.rewards WHERE id = $1", reward_id)
        return result == "DELETE 1"


def _prefixed(alias: str, columns: str) -> str:
    return ", ".join(f"{alias}.{column.strip()}" for column in columns.split(","))


async def provide_quests_repository(state: State) -> QuestsRepository:
    """Litestar DI provider for QuestsRepository.

    Args:
        state: Application state.

    Returns:
        QuestsRepository instance.
    """
    return QuestsRepository(state.db_pool)
