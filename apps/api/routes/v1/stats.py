"""Skill stats v1 controller."""

from __future__ import annotations

from typing import Annotated

import litestar
from litestar import Request
from litestar.datastructures import State
from litestar.di import Provide
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from questline_sdk.common import ApiResponse
from questline_sdk.stats import StatCreateRequest, StatIncrementRequest, StatResponse, StatUpdateRequest

from middleware.auth import AuthUser
from services.stats_service import StatsService, provide_stats_service
from utilities.errors import DomainError
from utilities.responses import ensure_same_user, ok, to_http_exception


class StatsController(litestar.Controller):
    """Skill stats v1 controller."""

    tags = ["Stats"]
    path = "/stats"
    dependencies = {"svc": Provide(provide_stats_service)}

    @litestar.post(
        path="/",
        summary="Create Stat",
        description="Create a skill stat for the authenticated user. Each skill exists once per user.",
        status_code=HTTP_201_CREATED,
    )
    async def create_stat(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[StatCreateRequest, Body(title="Stat")],
        svc: StatsService,
    ) -> ApiResponse[StatResponse]:
        """Create a stat.

        Args:
            request: Authenticated request.
            data: Skill and initial value.
            svc: Stats service.

        Returns:
            The created stat with its derived level.

        Raises:
            CustomHTTPException: 400 for a blank skill or negative value, 409 if the skill exists.
        """
        try:
            stat = await svc.create_stat(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(stat, "Stat created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/user/{user_id:int}",
        summary="List User Stats",
        description="List the skill stats of a user ordered by skill.",
    )
    async def list_user_stats(
        self,
        request: Request[AuthUser, str, State],
        user_id: int,
        svc: StatsService,
    ) -> ApiResponse[list[StatResponse]]:
        ensure_same_user(request.user.id, user_id)
        return ok(await svc.list_stats(user_id))

    @litestar.get(
        path="/user/{user_id:int}/skill/{skill:str}",
        summary="Get User Stat By Skill",
        description="Fetch the stat of a user for one skill.",
    )
    async def get_user_stat_by_skill(
        self,
        request: Request[AuthUser, str, State],
        user_id: int,
        skill: str,
        svc: StatsService,
    ) -> ApiResponse[StatResponse]:
        ensure_same_user(request.user.id, user_id)
        try:
            return ok(await svc.get_stat_by_skill(user_id, skill))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.get(path="/{stat_id:int}", summary="Get Stat", description="Fetch one stat.")
    async def get_stat(
        self,
        request: Request[AuthUser, str, State],
        stat_id: int,
        svc: StatsService,
    ) -> ApiResponse[StatResponse]:
        try:
            return ok(await svc.get_stat(stat_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(path="/{stat_id:int}", summary="Update Stat", description="Rename the skill of a stat.")
    async def update_stat(
        self,
        request: Request[AuthUser, str, State],
        stat_id: int,
        data: Annotated[StatUpdateRequest, Body(title="Stat changes")],
        svc: StatsService,
    ) -> ApiResponse[StatResponse]:
        try:
            stat = await svc.update_stat(stat_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(stat, "Stat updated successfully.")

    @litestar.delete(
        path="/{stat_id:int}",
        summary="Delete Stat",
        description="Delete a stat.",
        status_code=HTTP_200_OK,
    )
    async def delete_stat(
        self,
        request: Request[AuthUser, str, State],
        stat_id: int,
        svc: StatsService,
    ) -> ApiResponse[None]:
        try:
            await svc.delete_stat(stat_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Stat deleted successfully.")

    @litestar.patch(
        path="/{stat_id:int}/increment",
        summary="Increment Stat",
        description="Atomically add to a stat and recompute its level. The amount defaults to 1.",
    )
    async def increment_stat(
        self,
        request: Request[AuthUser, str, State],
        stat_id: int,
        svc: StatsService,
        data: Annotated[StatIncrementRequest | None, Body(title="Increment")] = None,
    ) -> ApiResponse[StatResponse]:
        """Increment a stat.

        Args:
            request: Authenticated request.
            stat_id: Stat to increment.
            svc: Stats service.
            data: Optional amount.

        Returns:
            The updated stat.
        """
        try:
            stat = await svc.increment_stat(stat_id, request.user.id, data or StatIncrementRequest())
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(stat, "Stat incremented successfully.")
