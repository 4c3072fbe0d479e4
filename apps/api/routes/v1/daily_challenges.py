"""Daily challenges v1 controller."""

from __future__ import annotations

from typing import Annotated

import litestar
from litestar import Request
from litestar.datastructures import State
from litestar.di import Provide
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from questline_sdk.common import ApiResponse
from questline_sdk.daily import (
    DailyChallengeCreateRequest,
    DailyChallengeResponse,
    DailyChallengeUpdateRequest,
    DailyClaimResponse,
)

from middleware.auth import AuthUser
from services.daily_service import DailyService, provide_daily_service
from utilities.errors import DomainError
from utilities.responses import ensure_same_user, ok, to_http_exception


class DailyChallengesController(litestar.Controller):
    """Daily challenges v1 controller."""

    tags = ["Daily Challenges"]
    path = "/daily-challenges"
    dependencies = {"svc": Provide(provide_daily_service)}

    @litestar.post(
        path="/",
        summary="Create Daily Challenge",
        description="Create a day of challenges with its rewards. The day defaults to today (UTC).",
        status_code=HTTP_201_CREATED,
    )
    async def create_daily_challenge(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[DailyChallengeCreateRequest, Body(title="Daily challenge")],
        svc: DailyService,
    ) -> ApiResponse[DailyChallengeResponse]:
        """Create a daily challenge.

        Args:
            request: Authenticated request.
            data: Daily challenge with nested challenges and rewards.
            svc: Daily service.

        Returns:
            The created daily challenge.
        """
        try:
            daily = await svc.create_daily(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(daily, "Daily challenge created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/user/{user_id:int}",
        summary="List User Daily Challenges",
        description="List the daily challenges of a user, newest day first.",
    )
    async def list_user_daily_challenges(
        self,
        request: Request[AuthUser, str, State],
        user_id: int,
        svc: DailyService,
    ) -> ApiResponse[list[DailyChallengeResponse]]:
        ensure_same_user(request.user.id, user_id)
        return ok(await svc.list_dailies(user_id))

    @litestar.get(
        path="/today/{user_id:int}",
        summary="Get Today's Daily Challenge",
        description="Fetch the daily challenge of a user for the current UTC day.",
    )
    async def get_today_daily_challenge(
        self,
        request: Request[AuthUser, str, State],
        user_id: int,
        svc: DailyService,
    ) -> ApiResponse[DailyChallengeResponse]:
        """Get today's daily challenge.

        Raises:
            CustomHTTPException: 404 if the user has nothing planned today.
        """
        ensure_same_user(request.user.id, user_id)
        try:
            return ok(await svc.get_today(user_id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.get(path="/{daily_id:int}", summary="Get Daily Challenge", description="Fetch one daily challenge.")
    async def get_daily_challenge(
        self,
        request: Request[AuthUser, str, State],
        daily_id: int,
        svc: DailyService,
    ) -> ApiResponse[DailyChallengeResponse]:
        try:
            return ok(await svc.get_daily(daily_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(
        path="/{daily_id:int}",
        summary="Update Daily Challenge",
        description="Move a daily challenge to another day.",
    )
    async def update_daily_challenge(
        self,
        request: Request[AuthUser, str, State],
        daily_id: int,
        data: Annotated[DailyChallengeUpdateRequest, Body(title="New day")],
        svc: DailyService,
    ) -> ApiResponse[DailyChallengeResponse]:
        try:
            daily = await svc.update_daily(daily_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(daily, "Daily challenge updated successfully.")

    @litestar.delete(
        path="/{daily_id:int}",
        summary="Delete Daily Challenge",
        description="Delete a daily challenge with its challenges, rewards and history.",
        status_code=HTTP_200_OK,
    )
    async def delete_daily_challenge(
        self,
        request: Request[AuthUser, str, State],
        daily_id: int,
        svc: DailyService,
    ) -> ApiResponse[None]:
        try:
            await svc.delete_daily(daily_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Daily challenge deleted successfully.")

    @litestar.patch(
        path="/{daily_id:int}/claim",
        summary="Claim Daily Challenge",
        description=(
            "Collect the rewards of a daily challenge once every challenge is completed. "
            "A history entry is recorded and rewards are paid once."
        ),
    )
    async def claim_daily_challenge(
        self,
        request: Request[AuthUser, str, State],
        daily_id: int,
        svc: DailyService,
    ) -> ApiResponse[DailyClaimResponse]:
        """Claim a daily challenge.

        Args:
            request: Authenticated request.
            daily_id: Daily challenge to claim.
            svc: Daily service.

        Returns:
            The claimed daily challenge, the owner's balances and the history entry.

        Raises:
            CustomHTTPException: 404 if missing, 400 if already claimed or a challenge is pending.
        """
        try:
            result = await svc.claim_daily(daily_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(result, "Daily challenge rewards claimed successfully.")
