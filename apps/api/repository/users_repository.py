"""Repository for users domain database operations."""

from __future__ import annotations

from typing import Any

from asyncpg import Connection, Pool
from asyncpg.exceptions import UniqueViolationError
from litestar.datastructures import State

from repository.base import BaseRepository
from repository.exceptions import UniqueConstraintViolationError, extract_constraint_name

USER_COLUMNS = """
    id, name, email, level, exp, health, coins, profile_pic, job, about,
    strength, weakness, master_objective, minor_objective, created_at
"""

PROGRESS_COLUMNS = "id, coins, exp, health, level"


class UsersRepository(BaseRepository):
    """Repository for users domain."""

    def __init__(self, pool: Pool) -> None:
        """Initialize repository.

        Args:
            pool: AsyncPG connection pool.
        """
        super().__init__(pool)

    async def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        *,
        conn: Connection | None = None,
    ) -> dict:
        """Insert a new user with default progression values.

        Args:
            name: Display name.
            email: Unique email address.
            password_hash: Bcrypt hash of the password.
            conn: Optional connection for transaction participation.

        Returns:
            The created user without credentials.

        Raises:
            UniqueConstraintViolationError: If the email is already registered.
        """
        _conn = self._get_connection(conn)
        query = f"""
            INSERT INTO core.users (name, email, password_hash)
            VALUES ($1, $2, $3)
            RETURNING {USER_COLUMNS}
        """
        try:
            row = await _conn.fetchrow(query, name, email, password_hash)
        except UniqueViolationError as e:
            constraint = extract_constraint_name(e)
            raise UniqueConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="core.users",
                detail=e.detail,
            ) from e
        return dict(row)

    async def fetch_user(self, user_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch a user without credentials.

        Args:
            user_id: Target user ID.
            conn: Optional connection for transaction participation.

        Returns:
            User dict, or None if the user does not exist.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {USER_COLUMNS} FROM core.users WHERE id = $1", user_id)
        return dict(row) if row else None

    async def fetch_credentials_by_email(self, email: str, *, conn: Connection | None = None) -> dict | None:
        """Fetch id and password hash for a login attempt.

        Args:
            email: Email address, compared case-insensitively.
            conn: Optional connection for transaction participation.

        Returns:
            Dict with ``id`` and ``password_hash``, or None.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            "SELECT id, password_hash FROM core.users WHERE lower(email) = lower($1)",
            email,
        )
        return dict(row) if row else None

    async def fetch_password_hash(self, user_id: int, *, conn: Connection | None = None) -> str | None:
        """Fetch the stored password hash of a user."""
        _conn = self._get_connection(conn)
        return await _conn.fetchval("SELECT password_hash FROM core.users WHERE id = $1", user_id)

    async def update_user(
        self,
        user_id: int,
        data: dict[str, Any],
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Update profile columns of a user.

        Args:
            user_id: Target user ID.
            data: Columns to update (only provided fields are updated).
            conn: Optional connection for transaction participation.

        Returns:
            The updated user, or None if the user does not exist.

        Raises:
            UniqueConstraintViolationError: If the new email is taken.
        """
        if not data:
            return await self.fetch_user(user_id, conn=conn)

        _conn = self._get_connection(conn)
        set_clause, values = self._build_set_clause(data, start=2)
        query = f"""
            UPDATE core.users
            SET {set_clause}, updated_at = now()
            WHERE id = $1
            RETURNING {USER_COLUMNS}
        """
        try:
            row = await _conn.fetchrow(query, user_id, *values)
        except UniqueViolationError as e:
            constraint = extract_constraint_name(e)
            raise UniqueConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="core.users",
                detail=e.detail,
            ) from e
        return dict(row) if row else None

    async def update_password_hash(
        self,
        user_id: int,
        password_hash: str,
        *,
        conn: Connection | None = None,
    ) -> None:
        """Replace the password hash of a user."""
        _conn = self._get_connection(conn)
        await _conn.execute(
            "UPDATE core.users SET password_hash = $2, updated_at = now() WHERE id = $1",
            user_id,
            password_hash,
        )

    async def fetch_progress(self, user_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch the numeric progression columns of a user."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {PROGRESS_COLUMNS} FROM core.users WHERE id = $1", user_id)
        return dict(row) if row else None

    async def increment_progress(
        self,
        user_id: int,
        *,
        coins: int = 0,
        exp: int = 0,
        health: int = 0,
        conn: Connection | None = None,
    ) -> dict | None:
        """Atomically add deltas to the balance columns of a user.

        Args:
            user_id: Target user ID.
            coins: Coins to add.
            exp: Experience to add.
            health: Health to add.
            conn: Optional connection for transaction participation.

        Returns:
            The progression columns after the update, or None if the user does not exist.
        """
        _conn = self._get_connection(conn)
        query = f"""
            UPDATE core.users
            SET coins = coins + $2,
                exp = exp + $3,
                health = health + $4,
                updated_at = now()
            WHERE id = $1
            RETURNING {PROGRESS_COLUMNS}
        """
        row = await _conn.fetchrow(query, user_id, coins, exp, health)
        return dict(row) if row else None

    async def deduct_coins(
        self,
        user_id: int,
        amount: int,
        *,
        conn: Connection | None = None,
    ) -> int | None:
        """Debit coins only if the balance covers the amount.

        Args:
            user_id: Target user ID.
            amount: Coins to debit.
            conn: Optional connection for transaction participation.

        Returns:
            The new balance, or None if the user is missing or cannot afford it.
        """
        _conn = self._get_connection(conn)
        query = """
            UPDATE core.users
            SET coins = coins - $2, updated_at = now()
            WHERE id = $1 AND coins >= $2
            RETURNING coins
        """
        return await _conn.fetchval(query, user_id, amount)

    async def fetch_user_coins(self, user_id: int, *, conn: Connection | None = None) -> int | None:
        """Get the coin balance of a user, or None if the user does not exist."""
        _conn = self._get_connection(conn)
        return await _conn.fetchval("SELECT coins FROM core.users WHERE id = $1", user_id)


async def provide_users_repository(state: State) -> UsersRepository:
    """Litestar DI provider for UsersRepository.

    Args:
        state: Application state.

    Returns:
        UsersRepository instance.
    """
    return UsersRepository(state.db_pool)
