"""Store items v1 controller."""

from __future__ import annotations

from typing import Annotated

import litestar
from litestar import Request
from litestar.datastructures import State
from litestar.di import Provide
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from questline_sdk.common import ApiResponse
from questline_sdk.store import (
    ItemCreateRequest,
    ItemPurchaseRequest,
    ItemPurchaseResponse,
    ItemResponse,
    ItemUpdateRequest,
    ItemUseResponse,
)

from middleware.auth import AuthUser
from services.store_service import StoreService, provide_store_service
from utilities.errors import DomainError
from utilities.responses import ensure_same_user, ok, to_http_exception


class ItemsController(litestar.Controller):
    """Store items v1 controller."""

    tags = ["Store"]
    path = "/items"
    dependencies = {"svc": Provide(provide_store_service)}

    @litestar.post(
        path="/",
        summary="Create Item",
        description="Add an item to the store catalog. The type is stored upper-cased.",
        status_code=HTTP_201_CREATED,
    )
    async def create_item(
        self,
        data: Annotated[ItemCreateRequest, Body(title="Catalog item")],
        svc: StoreService,
    ) -> ApiResponse[ItemResponse]:
        """Create a catalog item.

        Args:
            data: Item payload.
            svc: Store service.

        Returns:
            The created catalog entry.
        """
        try:
            item = await svc.create_item(data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(item, "Item created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/store",
        summary="List Store Catalog",
        description="List the items that can be bought, cheapest first. Does not require authentication.",
        opt={"exclude_from_auth": True},
    )
    async def list_store_items(self, svc: StoreService) -> ApiResponse[list[ItemResponse]]:
        """List the catalog."""
        return ok(await svc.list_catalog())

    @litestar.get(
        path="/user/{user_id:int}",
        summary="List User Inventory",
        description="List the items a user owns, newest first.",
    )
    async def list_user_items(
        self,
        request: Request[AuthUser, str, State],
        user_id: int,
        svc: StoreService,
    ) -> ApiResponse[list[ItemResponse]]:
        ensure_same_user(request.user.id, user_id)
        return ok(await svc.list_inventory(user_id))

    @litestar.get(
        path="/{item_id:int}",
        summary="Get Item",
        description="Fetch a catalog item or an item of the authenticated user.",
    )
    async def get_item(
        self,
        request: Request[AuthUser, str, State],
        item_id: int,
        svc: StoreService,
    ) -> ApiResponse[ItemResponse]:
        try:
            return ok(await svc.get_item(item_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(path="/{item_id:int}", summary="Update Item", description="Update descriptive fields of an item.")
    async def update_item(
        self,
        request: Request[AuthUser, str, State],
        item_id: int,
        data: Annotated[ItemUpdateRequest, Body(title="Item changes")],
        svc: StoreService,
    ) -> ApiResponse[ItemResponse]:
        try:
            item = await svc.update_item(item_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(item, "Item updated successfully.")

    @litestar.delete(
        path="/{item_id:int}",
        summary="Delete Item",
        description="Delete a catalog item or an item of the authenticated user.",
        status_code=HTTP_200_OK,
    )
    async def delete_item(
        self,
        request: Request[AuthUser, str, State],
        item_id: int,
        svc: StoreService,
    ) -> ApiResponse[None]:
        try:
            await svc.delete_item(item_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Item deleted successfully.")

    @litestar.post(
        path="/{item_id:int}/purchase",
        summary="Purchase Item",
        description=(
            "Buy a catalog item. The price is debited and a copy is added to the buyer's inventory "
            "in one transaction. The buyer must be the authenticated user."
        ),
        status_code=HTTP_201_CREATED,
    )
    async def purchase_item(
        self,
        request: Request[AuthUser, str, State],
        item_id: int,
        data: Annotated[ItemPurchaseRequest, Body(title="Buyer")],
        svc: StoreService,
    ) -> ApiResponse[ItemPurchaseResponse]:
        """Purchase an item.

        Args:
            request: Authenticated request.
            item_id: Catalog item to buy.
            data: Buyer, must be the authenticated user.
            svc: Store service.

        Returns:
            The inventory copy and the remaining coins.

        Raises:
            CustomHTTPException: 401 for another buyer, 404 for a missing item,
                400 for an owned item or insufficient coins.
        """
        ensure_same_user(request.user.id, data.user_id)
        try:
            result = await svc.purchase_item(item_id, data.user_id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(result, "Item purchased successfully.", HTTP_201_CREATED)

    @litestar.patch(
        path="/{item_id:int}/use",
        summary="Use Item",
        description=(
            "Consume an owned item. Magical items with a health, coins or experience attribute "
            "add their amount to the owner. An item is used once."
        ),
    )
    async def use_item(
        self,
        request: Request[AuthUser, str, State],
        item_id: int,
        svc: StoreService,
    ) -> ApiResponse[ItemUseResponse]:
        """Use an item.

        Args:
            request: Authenticated request.
            item_id: Inventory item to use.
            svc: Store service.

        Returns:
            The consumed item and the owner's balances.

        Raises:
            CustomHTTPException: 404 for a missing or foreign item, 400 for a catalog entry or a used item.
        """
        try:
            result = await svc.use_item(item_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(result, "Item used successfully.")
