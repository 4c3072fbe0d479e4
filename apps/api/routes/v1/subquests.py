"""Sub-quests v1 controller."""

from __future__ import annotations

from typing import Annotated

import litestar
from litestar import Request
from litestar.datastructures import State
from litestar.di import Provide
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from questline_sdk.common import ApiResponse
from questline_sdk.quests import (
    SubQuestClaimResponse,
    SubQuestCreateRequest,
    SubQuestResponse,
    SubQuestUpdateRequest,
)

from middleware.auth import AuthUser
from services.quests_service import QuestsService, provide_quests_service
from utilities.errors import DomainError
from utilities.responses import ok, to_http_exception


class SubQuestsController(litestar.Controller):
    """Sub-quests v1 controller."""

    tags = ["Sub-quests"]
    path = "/subquests"
    dependencies = {"svc": Provide(provide_quests_service)}

    @litestar.post(
        path="/",
        summary="Create Sub-quest",
        description="Add a sub-quest with its rewards to a quest of the authenticated user.",
        status_code=HTTP_201_CREATED,
    )
    async def create_sub_quest(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[SubQuestCreateRequest, Body(title="Sub-quest")],
        svc: QuestsService,
    ) -> ApiResponse[SubQuestResponse]:
        """Create a sub-quest.

        Args:
            request: Authenticated request.
            data: Sub-quest payload.
            svc: Quests service.

        Returns:
            The created sub-quest.
        """
        try:
            sub_quest = await svc.create_sub_quest(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(sub_quest, "Sub-quest created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/quest/{quest_id:int}",
        summary="List Quest Sub-quests",
        description="List the sub-quests of a quest.",
    )
    async def list_quest_sub_quests(
        self,
        request: Request[AuthUser, str, State],
        quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[list[SubQuestResponse]]:
        """List the sub-quests of a quest."""
        try:
            return ok(await svc.list_sub_quests(quest_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.get(path="/{sub_quest_id:int}", summary="Get Sub-quest", description="Fetch one sub-quest.")
    async def get_sub_quest(
        self,
        request: Request[AuthUser, str, State],
        sub_quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[SubQuestResponse]:
        try:
            return ok(await svc.get_sub_quest(sub_quest_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(path="/{sub_quest_id:int}", summary="Update Sub-quest", description="Rename a sub-quest.")
    async def update_sub_quest(
        self,
        request: Request[AuthUser, str, State],
        sub_quest_id: int,
        data: Annotated[SubQuestUpdateRequest, Body(title="Sub-quest changes")],
        svc: QuestsService,
    ) -> ApiResponse[SubQuestResponse]:
        try:
            sub_quest = await svc.update_sub_quest(sub_quest_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(sub_quest, "Sub-quest updated successfully.")

    @litestar.delete(
        path="/{sub_quest_id:int}",
        summary="Delete Sub-quest",
        description="Delete a sub-quest with its rewards.",
        status_code=HTTP_200_OK,
    )
    async def delete_sub_quest(
        self,
        request: Request[AuthUser, str, State],
        sub_quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[None]:
        try:
            await svc.delete_sub_quest(sub_quest_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Sub-quest deleted successfully.")

    @litestar.patch(
        path="/{sub_quest_id:int}/complete",
        summary="Complete Sub-quest",
        description="Mark a sub-quest completed. No reward is paid until it is claimed.",
    )
    async def complete_sub_quest(
        self,
        request: Request[AuthUser, str, State],
        sub_quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[SubQuestResponse]:
        """Complete a sub-quest.

        Args:
            request: Authenticated request.
            sub_quest_id: Sub-quest to complete.
            svc: Quests service.

        Returns:
            The completed sub-quest.

        Raises:
            CustomHTTPException: 404 if the sub-quest is missing, 400 if it was already completed.
        """
        try:
            sub_quest = await svc.complete_sub_quest(sub_quest_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(sub_quest, "Sub-quest completed successfully.")

    @litestar.patch(
        path="/{sub_quest_id:int}/claim",
        summary="Claim Sub-quest",
        description="Pay out the rewards of a completed sub-quest. Rewards are claimed once.",
    )
    async def claim_sub_quest(
        self,
        request: Request[AuthUser, str, State],
        sub_quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[SubQuestClaimResponse]:
        """Claim the rewards of a sub-quest.

        Args:
            request: Authenticated request.
            sub_quest_id: Completed sub-quest.
            svc: Quests service.

        Returns:
            The claimed sub-quest, the owner's balances and every stat that changed.

        Raises:
            CustomHTTPException: 404 if missing, 400 if not completed or already claimed.
        """
        try:
            result = await svc.claim_sub_quest(sub_quest_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(result, "Sub-quest rewards claimed successfully.")
