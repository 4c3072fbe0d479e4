"""Challenge history v1 controller."""

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
    ChallengeHistoryCreateRequest,
    ChallengeHistoryResponse,
    ChallengeHistoryUpdateRequest,
)

from middleware.auth import AuthUser
from services.daily_service import DailyService, provide_daily_service
from utilities.errors import DomainError
from utilities.responses import ensure_same_user, ok, to_http_exception


class ChallengeHistoryController(litestar.Controller):
    """Challenge history v1 controller."""

    tags = ["Challenge History"]
    path = "/challenge-history"
    dependencies = {"svc": Provide(provide_daily_service)}

    @litestar.post(
        path="/",
        summary="Create History Entry",
        description="Record a history entry for a daily challenge. Claims record their own entries.",
        status_code=HTTP_201_CREATED,
    )
    async def create_history(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[ChallengeHistoryCreateRequest, Body(title="History entry")],
        svc: DailyService,
    ) -> ApiResponse[ChallengeHistoryResponse]:
        try:
            history = await svc.create_history(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(history, "History entry created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/daily/{daily_id:int}",
        summary="List Daily Challenge History",
        description="List the history of one daily challenge, newest first.",
    )
    async def list_daily_history(
        self,
        request: Request[AuthUser, str, State],
        daily_id: int,
        svc: DailyService,
    ) -> ApiResponse[list[ChallengeHistoryResponse]]:
        try:
            return ok(await svc.list_daily_history(daily_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.get(
        path="/user/{user_id:int}",
        summary="List User History",
        description="List the history across every daily challenge of a user, newest first.",
    )
    async def list_user_history(
        self,
        request: Request[AuthUser, str, State],
        user_id: int,
        svc: DailyService,
    ) -> ApiResponse[list[ChallengeHistoryResponse]]:
        ensure_same_user(request.user.id, user_id)
        return ok(await svc.list_user_history(user_id))

    @litestar.get(path="/{history_id:int}", summary="Get History Entry", description="Fetch one history entry.")
    async def get_history(
        self,
        request: Request[AuthUser, str, State],
        history_id: int,
        svc: DailyService,
    ) -> ApiResponse[ChallengeHistoryResponse]:
        try:
            return ok(await svc.get_history(history_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(path="/{history_id:int}", summary="Update History Entry", description="Edit a history entry.")
    async def update_history(
        self,
        request: Request[AuthUser, str, State],
        history_id: int,
        data: Annotated[ChallengeHistoryUpdateRequest, Body(title="History changes")],
        svc: DailyService,
    ) -> ApiResponse[ChallengeHistoryResponse]:
        try:
            history = await svc.update_history(history_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(history, "History entry updated successfully.")

    @litestar.delete(
        path="/{history_id:int}",
        summary="Delete History Entry",
        description="Delete a history entry.",
        status_code=HTTP_200_OK,
    )
    async def delete_history(
        self,
        request: Request[AuthUser, str, State],
        history_id: int,
        svc: DailyService,
    ) -> ApiResponse[None]:
        try:
            await svc.delete_history(history_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "History entry deleted successfully.")
