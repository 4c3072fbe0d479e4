"""Daily rewards v1 controller."""

from __future__ import annotations

from typing import Annotated

import litestar
from litestar import Request
from litestar.datastructures import State
from litestar.di import Provide
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from questline_sdk.common import ApiResponse
from questline_sdk.daily import DailyRewardCreateRequest, DailyRewardResponse, DailyRewardUpdateRequest

from middleware.auth import AuthUser
from services.daily_service import DailyService, provide_daily_service
from utilities.errors import DomainError
from utilities.responses import ok, to_http_exception


class DailyRewardsController(litestar.Controller):
    """Daily rewards v1 controller."""

    tags = ["Daily Rewards"]
    path = "/daily-rewards"
    dependencies = {"svc": Provide(provide_daily_service)}

    @litestar.post(
        path="/",
        summary="Create Daily Reward",
        description="Add a reward to a daily challenge that has not been claimed.",
        status_code=HTTP_201_CREATED,
    )
    async def create_daily_reward(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[DailyRewardCreateRequest, Body(title="Daily reward")],
        svc: DailyService,
    ) -> ApiResponse[DailyRewardResponse]:
        """Create a daily reward.

        Raises:
            CustomHTTPException: 400 for a negative amount or a claimed day, 404 for a missing day.
        """
        try:
            reward = await svc.create_daily_reward(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(reward, "Daily reward created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/daily/{daily_id:int}",
        summary="List Daily Rewards",
        description="List the rewards of a daily challenge.",
    )
    async def list_daily_rewards(
        self,
        request: Request[AuthUser, str, State],
        daily_id: int,
        svc: DailyService,
    ) -> ApiResponse[list[DailyRewardResponse]]:
        try:
            return ok(await svc.list_daily_rewards(daily_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.get(path="/{reward_id:int}", summary="Get Daily Reward", description="Fetch one daily reward.")
    async def get_daily_reward(
        self,
        request: Request[AuthUser, str, State],
        reward_id: int,
        svc: DailyService,
    ) -> ApiResponse[DailyRewardResponse]:
        try:
            return ok(await svc.get_daily_reward(reward_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(
        path="/{reward_id:int}",
        summary="Update Daily Reward",
        description="Change a daily reward before its day is claimed.",
    )
    async def update_daily_reward(
        self,
        request: Request[AuthUser, str, State],
        reward_id: int,
        data: Annotated[DailyRewardUpdateRequest, Body(title="Daily reward changes")],
        svc: DailyService,
    ) -> ApiResponse[DailyRewardResponse]:
        try:
            reward = await svc.update_daily_reward(reward_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(reward, "Daily reward updated successfully.")

    @litestar.delete(
        path="/{reward_id:int}",
        summary="Delete Daily Reward",
        description="Delete a daily reward before its day is claimed.",
        status_code=HTTP_200_OK,
    )
    async def delete_daily_reward(
        self,
        request: Request[AuthUser, str, State],
        reward_id: int,
        svc: DailyService,
    ) -> ApiResponse[None]:
        try:
            await svc.delete_daily_reward(reward_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Daily reward deleted successfully.")
