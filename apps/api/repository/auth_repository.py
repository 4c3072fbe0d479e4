"""Repository for session token storage."""

from __future__ import annotations

import datetime as dt
from typing import Literal

import asyncpg
from asyncpg import Connection, Pool
from litestar.datastructures import State

from repository.base import BaseRepository
from repository.exceptions import ForeignKeyViolationError, extract_constraint_name

TokenKind = Literal["access", "refresh"]


class AuthRepository(BaseRepository):
    """Repository for access and refresh tokens.

    Only SHA256 hashes of tokens are stored.
    """

    def __init__(self, pool: Pool) -> None:
        """Initialize repository.

        Args:
            pool: AsyncPG connection pool.
        """
        super().__init__(pool)

    async def insert_token(
        self,
        user_id: int,
        token_hash: str,
        kind: TokenKind,
        expires_at: dt.datetime,
        *,
        conn: Connection | None = None,
    ) -> None:
        """Store a token hash.

        Args:
            user_id: Owner of the token.
            token_hash: SHA256 hash of the token.
            kind: Whether this is an access or a refresh token.
            expires_at: Token expiration datetime.
            conn: Optional connection for transaction participation.

        Raises:
            ForeignKeyViolationError: If user_id doesn't exist.
        """
        _conn = self._get_connection(conn)
        try:
            await _conn.execute(
                """
                INSERT INTO auth.tokens (token_hash, user_id, kind, expires_at)
                VALUES ($1, $2, $3, $4)
                """,
                token_hash,
                user_id,
                kind,
                expires_at,
            )
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="auth.tokens",
                detail=str(e),
            ) from e

    async def fetch_access_token_user(self, token_hash: str, *, conn: Connection | None = None) -> dict | None:
        """Resolve a valid access token to its user.

        Args:
            token_hash: SHA256 hash of the token.
            conn: Optional connection for transaction participation.

        Returns:
            Dict with ``id``, ``name`` and ``email``, or None if the token is unknown or expired.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            """
            SELECT u.id, u.name, u.email
            FROM auth.tokens t
            JOIN core.users u ON u.id = t.user_id
            WHERE t.token_hash = $1 AND t.kind = 'access' AND t.expires_at > now()
            """,
            token_hash,
        )
        return dict(row) if row else None

    async def consume_refresh_token(self, token_hash: str, *, conn: Connection | None = None) -> int | None:
        """Delete a refresh token and return its owner.

        A token can be consumed once. Concurrent refreshes with the same token
        see a single winner.

        Args:
            token_hash: SHA256 hash of the token.
            conn: Optional connection for transaction participation.

        Returns:
            Owner user ID, or None if the token is unknown, expired or already used.
        """
        _conn = self._get_connection(conn)
        return await _conn.fetchval(
            """
            DELETE FROM auth.tokens
            WHERE token_hash = $1 AND kind = 'refresh' AND expires_at > now()
            RETURNING user_id
            """,
            token_hash,
        )

    async def delete_user_tokens(self, user_id: int, *, conn: Connection | None = None) -> int:
        """Delete every token of a user.

        Returns:
            Number of tokens deleted.
        """
        _conn = self._get_connection(conn)
        result = await _conn.execute("DELETE FROM auth.tokens WHERE user_id = $1", user_id)
        return int(result.split()[-1]) if result else 0

    async def delete_expired_tokens(self, user_id: int, *, conn: Connection | None = None) -> int:
        """Delete the expired tokens of a user.

        Returns:
            Number of tokens deleted.
        """
        _conn = self._get_connection(conn)
        result = await _conn.execute(
            "DELETE FROM auth.tokens WHERE user_id = $1 AND expires_at <= now()",
            user_id,
        )
        return int(result.split()[-1]) if result else 0


async def provide_auth_repository(state: State) -> AuthRepository:
    """Litestar DI provider for AuthRepository.

    Args:
        state: Application state.

    Returns:
        AuthRepository instance.
    """
    return AuthRepository(state.db_pool)
