"""Service layer for store domain business logic."""

from __future__ import annotations

import logging

import msgspec
from asyncpg import Pool
from litestar.datastructures import State
from questline_sdk.store import (
    ItemCreateRequest,
    ItemPurchaseResponse,
    ItemResponse,
    ItemUpdateRequest,
    ItemUseResponse,
)

from repository.exceptions import CheckConstraintViolationError, ForeignKeyViolationError
from repository.stats_repository import StatsRepository
from repository.store_repository import StoreRepository
from repository.users_repository import UsersRepository
from utilities.retry import retry_on_conflict

from .base import BaseService
from .exceptions.store import (
    AlreadyUsedError,
    InsufficientFundsError,
    InvalidItemError,
    ItemNotFoundError,
    ItemNotOwnedError,
    NotPurchasableError,
)
from .exceptions.users import UserNotFoundError
from .progression import ProgressionApplier
from .rewards import item_use_effects

log = logging.getLogger(__name__)


def normalize_item_type(item_type: str) -> str:
    """Item types are stored upper-cased, e.g. ``MAGICAL ITEM``."""
    return item_type.strip().upper()


class StoreService(BaseService):
    """Service for the store catalog, purchases and item use."""

    def __init__(
        self,
        pool: Pool,
        state: State,
        store_repo: StoreRepository,
        users_repo: UsersRepository,
        stats_repo: StatsRepository,
    ) -> None:
        """Initialize service.

        Args:
            pool: AsyncPG connection pool.
            state: Application state.
            store_repo: Store repository instance.
            users_repo: Users repository instance.
            stats_repo: Stats repository instance.
        """
        super().__init__(pool, state)
        self._store_repo = store_repo
        self._users_repo = users_repo
        self._progression = ProgressionApplier(users_repo, stats_repo)

    async def _require_visible_item(self, item_id: int, user_id: int) -> dict:
        item = await self._store_repo.fetch_item(item_id)
        if not item or item["user_id"] not in (None, user_id):
            raise ItemNotFoundError(item_id)
        return item

    async def create_item(self, data: ItemCreateRequest) -> ItemResponse:
        """Add an item to the store catalog.

        Raises:
            InvalidItemError: If the name or type is blank or the price negative.
        """
        if not data.name.strip():
            raise InvalidItemError("name", "Name is required.")
        item_type = normalize_item_type(data.type)
        if not item_type:
            raise InvalidItemError("type", "Type is required.")
        if data.price < 0:
            raise InvalidItemError("price", "Price cannot be negative.")

        row = await self._store_repo.create_item(
            data.name.strip(),
            data.description,
            data.image,
            data.price,
            item_type,
            data.amount,
            data.attribute_name,
        )
        log.info("Added item %s (%s) to the catalog at %s coins", row["id"], item_type, data.price)
        return msgspec.convert(row, ItemResponse)

    async def list_catalog(self) -> list[ItemResponse]:
        """List the store catalog, cheapest first."""
        return msgspec.convert(await self._store_repo.fetch_catalog(), list[ItemResponse])

    async def list_inventory(self, user_id: int) -> list[ItemResponse]:
        """List the items owned by a user, newest first."""
        return msgspec.convert(await self._store_repo.fetch_inventory(user_id), list[ItemResponse])

    async def get_item(self, item_id: int, user_id: int) -> ItemResponse:
        """Get a catalog item or an item owned by the user."""
        return msgspec.convert(await self._require_visible_item(item_id, user_id), ItemResponse)

    async def update_item(self, item_id: int, user_id: int, data: ItemUpdateRequest) -> ItemResponse:
        """Update descriptive fields of a catalog item or an item owned by the user."""
        fields = self.supplied_fields(data)
        if "type" in fields:
            fields["type"] = normalize_item_type(fields["type"])
        if fields.get("price", 0) < 0:
            raise InvalidItemError("price", "Price cannot be negative.")

        await self._require_visible_item(item_id, user_id)
        try:
            row = await self._store_repo.update_item(item_id, fields)
        except CheckConstraintViolationError as e:
            raise InvalidItemError("price", "Price cannot be negative.") from e
        if not row:
            raise ItemNotFoundError(item_id)
        return msgspec.convert(row, ItemResponse)

    async def delete_item(self, item_id: int, user_id: int) -> None:
        """Delete a catalog item or an item owned by the user."""
        await self._require_visible_item(item_id, user_id)
        if not await self._store_repo.delete_item(item_id):
            raise ItemNotFoundError(item_id)

    @retry_on_conflict()
    async def purchase_item(self, item_id: int, user_id: int) -> ItemPurchaseResponse:
        """Buy a catalog item.

        The coin debit and the inventory copy are written in one transaction.

        Args:
            item_id: Catalog item to buy.
            user_id: Buyer.

        Returns:
            The new inventory copy and the buyer's remaining coins.

        Raises:
            ItemNotFoundError: If the item does not exist.
            NotPurchasableError: If the item is not a catalog entry.
            InsufficientFundsError: If the buyer cannot afford it.
        """
        async with self._pool.acquire() as conn, conn.transaction():
            item = await self._store_repo.fetch_item(item_id, conn=conn)
            if not item:
                raise ItemNotFoundError(item_id)
            if item["user_id"] is not None:
                raise NotPurchasableError(item_id)

            price = item["price"]
            remaining = await self._users_repo.deduct_coins(user_id, price, conn=conn)
            if remaining is None:
                coins = await self._users_repo.fetch_user_coins(user_id, conn=conn)
                if coins is None:
                    raise UserNotFoundError(user_id)
                raise InsufficientFundsError(coins, price)

            try:
                copy = await self._store_repo.clone_item_for_user(item_id, user_id, conn=conn)
            except ForeignKeyViolationError as e:
                raise UserNotFoundError(user_id) from e
            if copy is None:
                raise ItemNotFoundError(item_id)

        log.info("User %s bought item %s for %s coins", user_id, item_id, price)
        return ItemPurchaseResponse(item=msgspec.convert(copy, ItemResponse), remaining_coins=remaining)

    @retry_on_conflict()
    async def use_item(self, item_id: int, user_id: int) -> ItemUseResponse:
        """Consume an owned item and apply its effect.

        Only magical items with a health, coins or experience attribute change
        the owner. Every other item is consumed without an effect.

        Args:
            item_id: Inventory item to use.
            user_id: Owner.

        Returns:
            The consumed item and the owner's balances.

        Raises:
            ItemNotFoundError: If the item is missing or owned by someone else.
            ItemNotOwnedError: If the item is a catalog entry.
            AlreadyUsedError: If the item was already used.
        """
        async with self._pool.acquire() as conn, conn.transaction():
            item = await self._store_repo.mark_item_used(item_id, user_id, conn=conn)
            if item is None:
                current = await self._store_repo.fetch_item(item_id, conn=conn)
                if not current or current["user_id"] not in (None, user_id):
                    raise ItemNotFoundError(item_id)
                if current["user_id"] is None:
                    raise ItemNotOwnedError(item_id)
                raise AlreadyUsedError(item_id)

            applied = await self._progression.apply(user_id, item_use_effects(item), conn=conn)

        log.info("User %s used item %s", user_id, item_id)
        return ItemUseResponse(item=msgspec.convert(item, ItemResponse), user=applied.progress)


async def provide_store_service(state: State) -> StoreService:
    """Litestar DI provider for store service.

    Args:
        state: Application state.

    Returns:
        StoreService instance.
    """
    return StoreService(
        pool=state.db_pool,
        state=state,
        store_repo=StoreRepository(state.db_pool),
        users_repo=UsersRepository(state.db_pool),
        stats_repo=StatsRepository(state.db_pool),
    )
