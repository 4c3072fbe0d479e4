"""Store and inventory models."""

from __future__ import annotations

import datetime as dt

from msgspec import UNSET, Struct, UnsetType

from .users import UserProgress

__all__ = (
    "MAGICAL_ITEM_TYPE",
    "ItemCreateRequest",
    "ItemPurchaseRequest",
    "ItemPurchaseResponse",
    "ItemResponse",
    "ItemUpdateRequest",
    "ItemUseResponse",
)

MAGICAL_ITEM_TYPE = "MAGICAL ITEM"


class ItemCreateRequest(Struct):
    """Payload for adding an item to the store catalog.

    Attributes:
        name: Item name.
        price: Coin cost.
        type: Free text category, stored upper-cased.
        description: Free text description.
        image: Image URL.
        amount: Effect magnitude applied on use.
        attribute_name: User attribute affected by magical items.
    """

    name: str
    price: int
    type: str
    description: str | None = None
    image: str | None = None
    amount: int = 0
    attribute_name: str | None = None


class ItemUpdateRequest(Struct):
    """Partial update of descriptive item fields."""

    name: str | UnsetType = UNSET
    description: str | None | UnsetType = UNSET
    image: str | None | UnsetType = UNSET
    price: int | UnsetType = UNSET
    type: str | UnsetType = UNSET
    amount: int | UnsetType = UNSET
    attribute_name: str | None | UnsetType = UNSET


class ItemResponse(Struct):
    """A catalog entry or an owned inventory copy.

    Attributes:
        id: Item ID.
        name: Item name.
        description: Free text description.
        image: Image URL.
        price: Coin cost.
        type: Upper-cased category.
        amount: Effect magnitude.
        attribute_name: User attribute affected by magical items.
        claimed: Whether the owned copy has been used.
        user_id: Owner, None for catalog entries.
        created_at: When the record was created.
    """

    id: int
    name: str
    description: str | None
    image: str | None
    price: int
    type: str
    amount: int
    attribute_name: str | None
    claimed: bool
    user_id: int | None
    created_at: dt.datetime


class ItemPurchaseRequest(Struct):
    """Payload for buying a catalog item."""

    user_id: int


class ItemPurchaseResponse(Struct):
    """Result of a purchase.

    Attributes:
        item: The new inventory copy.
        remaining_coins: Buyer balance after the debit.
    """

    item: ItemResponse
    remaining_coins: int


class ItemUseResponse(Struct):
    """Result of using an owned item."""

    item: ItemResponse
    user: UserProgress
