"""Quests v1 controller."""

from __future__ import annotations

from typing import Annotated

import litestar
from litestar import Request
from litestar.datastructures import State
from litestar.di import Provide
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from questline_sdk.common import ApiResponse
from questline_sdk.quests import QuestCompletionResponse, QuestCreateRequest, QuestResponse, QuestUpdateRequest

from middleware.auth import AuthUser
from services.quests_service import QuestsService, provide_quests_service
from utilities.errors import DomainError
from utilities.responses import ensure_same_user, ok, to_http_exception


class QuestsController(litestar.Controller):
    """Quests v1 controller."""

    tags = ["Quests"]
    path = "/quests"
    dependencies = {"svc": Provide(provide_quests_service)}

    @litestar.post(
        path="/",
        summary="Create Quest",
        description=(
            "Create a quest together with its rewards and sub-quests. "
            "Either the whole tree is created or nothing is."
        ),
        status_code=HTTP_201_CREATED,
    )
    async def create_quest(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[QuestCreateRequest, Body(title="Quest tree")],
        svc: QuestsService,
    ) -> ApiResponse[QuestResponse]:
        """Create a quest tree.

        Args:
            request: Authenticated request.
            data: Quest with nested rewards and sub-quests.
            svc: Quests service.

        Returns:
            The created quest tree.

        Raises:
            CustomHTTPException: 400 on invalid names or rewards, 404 for a missing reward item.
        """
        try:
            quest = await svc.create_quest(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(quest, "Quest created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/user/{user_id:int}",
        summary="List User Quests",
        description="List the quests of a user with their rewards and sub-quests.",
    )
    async def list_user_quests(
        self,
        request: Request[AuthUser, str, State],
        user_id: int,
        svc: QuestsService,
    ) -> ApiResponse[list[QuestResponse]]:
        """List a user's quests.

        Args:
            request: Authenticated request.
            user_id: Owner, must be the authenticated user.
            svc: Quests service.

        Returns:
            The quest trees.
        """
        ensure_same_user(request.user.id, user_id)
        return ok(await svc.list_quests(user_id))

    @litestar.get(path="/{quest_id:int}", summary="Get Quest", description="Fetch one quest tree.")
    async def get_quest(
        self,
        request: Request[AuthUser, str, State],
        quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[QuestResponse]:
        """Get a quest."""
        try:
            return ok(await svc.get_quest(quest_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(
        path="/{quest_id:int}",
        summary="Update Quest",
        description="Update descriptive fields of a quest. Completion cannot be set here.",
    )
    async def update_quest(
        self,
        request: Request[AuthUser, str, State],
        quest_id: int,
        data: Annotated[QuestUpdateRequest, Body(title="Quest changes")],
        svc: QuestsService,
    ) -> ApiResponse[QuestResponse]:
        """Update a quest."""
        try:
            quest = await svc.update_quest(quest_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(quest, "Quest updated successfully.")

    @litestar.delete(
        path="/{quest_id:int}",
        summary="Delete Quest",
        description="Delete a quest with its sub-quests and rewards.",
        status_code=HTTP_200_OK,
    )
    async def delete_quest(
        self,
        request: Request[AuthUser, str, State],
        quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[None]:
        """Delete a quest."""
        try:
            await svc.delete_quest(quest_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Quest deleted successfully.")

    @litestar.patch(
        path="/{quest_id:int}/complete",
        summary="Complete Quest",
        description=(
            "Mark a quest completed and pay out its own rewards. "
            "Sub-quest rewards are claimed separately. A quest completes once."
        ),
    )
    async def complete_quest(
        self,
        request: Request[AuthUser, str, State],
        quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[QuestCompletionResponse]:
        """Complete a quest.

        Args:
            request: Authenticated request.
            quest_id: Quest to complete.
            svc: Quests service.

        Returns:
            The completed quest, the owner's balances and every stat that changed.

        Raises:
            CustomHTTPException: 404 if the quest is missing, 400 if it was already completed.
        """
        try:
            result = await svc.complete_quest(quest_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(result, "Quest completed successfully.")
