"""Quest rewards v1 controller."""

from __future__ import annotations

from typing import Annotated

import litestar
from litestar import Request
from litestar.datastructures import State
from litestar.di import Provide
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from questline_sdk.common import ApiResponse
from questline_sdk.quests import RewardCreateRequest, RewardResponse, RewardUpdateRequest

from middleware.auth import AuthUser
from services.quests_service import QuestsService, provide_quests_service
from utilities.errors import DomainError
from utilities.responses import ok, to_http_exception


class RewardsController(litestar.Controller):
    """Quest rewards v1 controller."""

    tags = ["Rewards"]
    path = "/rewards"
    dependencies = {"svc": Provide(provide_quests_service)}

    @litestar.post(
        path="/",
        summary="Create Reward",
        description=(
            "Attach a reward to exactly one quest or sub-quest of the authenticated user. "
            "Owners that already paid out cannot get new rewards."
        ),
        status_code=HTTP_201_CREATED,
    )
    async def create_reward(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[RewardCreateRequest, Body(title="Reward")],
        svc: QuestsService,
    ) -> ApiResponse[RewardResponse]:
        """Create a reward.

        Args:
            request: Authenticated request.
            data: Reward payload naming its owner.
            svc: Quests service.

        Returns:
            The created reward.

        Raises:
            CustomHTTPException: 400 for an ambiguous owner, malformed reward or locked owner; 404 for a missing owner.
        """
        try:
            reward = await svc.create_reward(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(reward, "Reward created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/quest/{quest_id:int}",
        summary="List Quest Rewards",
        description="List the rewards attached directly to a quest.",
    )
    async def list_quest_rewards(
        self,
        request: Request[AuthUser, str, State],
        quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[list[RewardResponse]]:
        try:
            return ok(await svc.list_quest_rewards(quest_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.get(
        path="/subquest/{sub_quest_id:int}",
        summary="List Sub-quest Rewards",
        description="List the rewards of a sub-quest.",
    )
    async def list_sub_quest_rewards(
        self,
        request: Request[AuthUser, str, State],
        sub_quest_id: int,
        svc: QuestsService,
    ) -> ApiResponse[list[RewardResponse]]:
        try:
            return ok(await svc.list_sub_quest_rewards(sub_quest_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.get(path="/{reward_id:int}", summary="Get Reward", description="Fetch one reward.")
    async def get_reward(
        self,
        request: Request[AuthUser, str, State],
        reward_id: int,
        svc: QuestsService,
    ) -> ApiResponse[RewardResponse]:
        try:
            return ok(await svc.get_reward(reward_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(
        path="/{reward_id:int}",
        summary="Update Reward",
        description="Change a reward whose owner has not paid out yet.",
    )
    async def update_reward(
        self,
        request: Request[AuthUser, str, State],
        reward_id: int,
        data: Annotated[RewardUpdateRequest, Body(title="Reward changes")],
        svc: QuestsService,
    ) -> ApiResponse[RewardResponse]:
        """Update a reward.

        Raises:
            CustomHTTPException: 400 once the owner has paid out.
        """
        try:
            reward = await svc.update_reward(reward_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(reward, "Reward updated successfully.")

    @litestar.delete(
        path="/{reward_id:int}",
        summary="Delete Reward",
        description="Delete a reward whose owner has not paid out yet.",
        status_code=HTTP_200_OK,
    )
    async def delete_reward(
        self,
        request: Request[AuthUser, str, State],
        reward_id: int,
        svc: QuestsService,
    ) -> ApiResponse[None]:
        try:
            await svc.delete_reward(reward_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Reward deleted successfully.")
