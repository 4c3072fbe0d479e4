"""Repository for store catalog and inventory items."""

from __future__ import annotations

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

ITEM_COLUMNS = "id, name, description, image, price, type, amount, attribute_name, claimed, user_id, created_at"


class StoreRepository(BaseRepository):
    """Repository for items.

    An item without an owner is a catalog entry. An owned item is an inventory copy.
    """

    def __init__(self, pool: Pool) -> None:
        """Initialize repository.

        Args:
            pool: AsyncPG connection pool.
        """
        super().__init__(pool)

    async def create_item(  # noqa: PLR0913
        self,
        name: str,
        description: str | None,
        image: str | None,
        price: int,
        item_type: str,
        amount: int,
        attribute_name: str | None,
        *,
        conn: Connection | None = None,
    ) -> dict:
        """Insert a catalog item.

        Raises:
            CheckConstraintViolationError: If the price is negative.
        """
        _conn = self._get_connection(conn)
        query = f"""
            INSERT INTO store.items (name, description, image, price, type, amount, attribute_name)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING {ITEM_COLUMNS}
        """
        try:
            row = await _conn.fetchrow(query, name, description, image, price, item_type, amount, attribute_name)
        except asyncpg.CheckViolationError as e:
            constraint = extract_constraint_name(e)
            raise CheckConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="store.items",
                detail=str(e),
            ) from e
        return dict(row)

    async def fetch_item(self, item_id: int, *, conn: Connection | None = None) -> dict | None:
        """Fetch an item by ID."""
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(f"SELECT {ITEM_COLUMNS} FROM store.items WHERE id = $1", item_id)
        return dict(row) if row else None

    async def fetch_catalog(self, *, conn: Connection | None = None) -> list[dict]:
        """Fetch every catalog item, cheapest first."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(f"SELECT {ITEM_COLUMNS} FROM store.items WHERE user_id IS NULL ORDER BY price, id")
        return [dict(row) for row in rows]

    async def fetch_inventory(self, user_id: int, *, conn: Connection | None = None) -> list[dict]:
        """Fetch the items owned by a user, newest first."""
        _conn = self._get_connection(conn)
        rows = await _conn.fetch(
            f"SELECT {ITEM_COLUMNS} FROM store.items WHERE user_id = $1 ORDER BY created_at DESC, id DESC",
            user_id,
        )
        return [dict(row) for row in rows]

    async def update_item(
        self,
        item_id: int,
        data: dict[str, Any],
        *,
        conn: Connection | None = None,
    ) -> dict | None:
        """Update descriptive columns of an item.

        Raises:
            CheckConstraintViolationError: If the new price is negative.
        """
        if not data:
            return await self.fetch_item(item_id, conn=conn)

        _conn = self._get_connection(conn)
        set_clause, values = self._build_set_clause(data, start=2)
        query = f"""
            UPDATE store.items
            SET {set_clause}, updated_at = now()
            WHERE id = $1
            RETURNING {ITEM_COLUMNS}
        """
        try:
            row = await _conn.fetchrow(query, item_id, *values)
        except asyncpg.CheckViolationError as e:
            constraint = extract_constraint_name(e)
            raise CheckConstraintViolationError(
                constraint_name=constraint or "unknown",
                table="store.items",
                detail=str(e),
            ) from e
        return dict(row) if row else None

    async def delete_item(self, item_id: int, *, conn: Connection | None = None) -> bool:
        """Delete an item. Returns True if a row was deleted."""
        _conn = self._get_connection(conn)
        result = await _conn.execute("DELETE FROM store.items WHERE id = $1", item_id)
        return result == "DELETE 1"

    async def clone_item_for_user(self, item_id: int, user_id: int, *, conn: Connection | None = None) -> dict | None:
        """Copy a catalog item into the inventory of a user as an unused item.

        Args:
            item_id: Catalog item to copy.
            user_id: New owner.
            conn: Optional connection for transaction participation.

        Returns:
            The inventory copy, or None if the item is not a catalog entry.

        Raises:
            ForeignKeyViolationError: If the user does not exist.
        """
        _conn = self._get_connection(conn)
        query = f"""
            INSERT INTO store.items (name, description, image, price, type, amount, attribute_name, claimed, user_id)
            SELECT name, description, image, price, type, amount, attribute_name, false, $2
            FROM store.items
            WHERE id = $1 AND user_id IS NULL
            RETURNING {ITEM_COLUMNS}
        """
        try:
            row = await _conn.fetchrow(query, item_id, user_id)
        except asyncpg.ForeignKeyViolationError as e:
            constraint = extract_constraint_name(e)
            raise ForeignKeyViolationError(
                constraint_name=constraint or "unknown",
                table="store.items",
                detail=str(e),
            ) from e
        return dict(row) if row else None

    async def mark_item_used(self, item_id: int, user_id: int, *, conn: Connection | None = None) -> dict | None:
        """Consume an unused inventory item owned by the user.

        Returns:
            The consumed item, or None if it is missing, not owned or already used.
        """
        _conn = self._get_connection(conn)
        row = await _conn.fetchrow(
            f"""
            UPDATE store.items
            SET claimed = true, updated_at = now()
            WHERE id = $1 AND user_id = $2 AND NOT claimed
            RETURNING {ITEM_COLUMNS}
            """,
            item_id,
            user_id,
        )
        return dict(row) if row else None


async def provide_store_repository(state: State) -> StoreRepository:
    """Litestar DI provider for StoreRepository.

    Args:
        state: Application state.

    Returns:
        StoreRepository instance.
    """
    return StoreRepository(state.db_pool)
