"""Challenges v1 controller."""

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
    ChallengeCompletionResponse,
    ChallengeCreateRequest,
    ChallengeResponse,
    ChallengeUpdateRequest,
)

from middleware.auth import AuthUser
from services.daily_service import DailyService, provide_daily_service
from utilities.errors import DomainError
from utilities.responses import ok, to_http_exception


class ChallengesController(litestar.Controller):
    """Challenges v1 controller."""

    tags = ["Challenges"]
    path = "/challenges"
    dependencies = {"svc": Provide(provide_daily_service)}

    @litestar.post(
        path="/",
        summary="Create Challenge",
        description="Add a challenge to a daily challenge that has not been claimed.",
        status_code=HTTP_201_CREATED,
    )
    async def create_challenge(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[ChallengeCreateRequest, Body(title="Challenge")],
        svc: DailyService,
    ) -> ApiResponse[ChallengeResponse]:
        try:
            challenge = await svc.create_challenge(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(challenge, "Challenge created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/daily/{daily_id:int}",
        summary="List Daily Challenge Challenges",
        description="List the challenges of a daily challenge.",
    )
    async def list_daily_challenges(
        self,
        request: Request[AuthUser, str, State],
        daily_id: int,
        svc: DailyService,
    ) -> ApiResponse[list[ChallengeResponse]]:
        try:
            return ok(await svc.list_challenges(daily_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.get(path="/{challenge_id:int}", summary="Get Challenge", description="Fetch one challenge.")
    async def get_challenge(
        self,
        request: Request[AuthUser, str, State],
        challenge_id: int,
        svc: DailyService,
    ) -> ApiResponse[ChallengeResponse]:
        try:
            return ok(await svc.get_challenge(challenge_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(
        path="/{challenge_id:int}",
        summary="Update Challenge",
        description="Update the name, description or skill of a challenge.",
    )
    async def update_challenge(
        self,
        request: Request[AuthUser, str, State],
        challenge_id: int,
        data: Annotated[ChallengeUpdateRequest, Body(title="Challenge changes")],
        svc: DailyService,
    ) -> ApiResponse[ChallengeResponse]:
        try:
            challenge = await svc.update_challenge(challenge_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(challenge, "Challenge updated successfully.")

    @litestar.delete(
        path="/{challenge_id:int}",
        summary="Delete Challenge",
        description="Delete a challenge.",
        status_code=HTTP_200_OK,
    )
    async def delete_challenge(
        self,
        request: Request[AuthUser, str, State],
        challenge_id: int,
        svc: DailyService,
    ) -> ApiResponse[None]:
        try:
            await svc.delete_challenge(challenge_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Challenge deleted successfully.")

    @litestar.patch(
        path="/{challenge_id:int}/complete",
        summary="Complete Challenge",
        description="Mark a challenge completed and credit its skill. A challenge completes once.",
    )
    async def complete_challenge(
        self,
        request: Request[AuthUser, str, State],
        challenge_id: int,
        svc: DailyService,
    ) -> ApiResponse[ChallengeCompletionResponse]:
        """Complete a challenge.

        Args:
            request: Authenticated request.
            challenge_id: Challenge to complete.
            svc: Daily service.

        Returns:
            The completed challenge and the credited stat, if any.

        Raises:
            CustomHTTPException: 404 if the challenge is missing, 400 if it was already completed.
        """
        try:
            result = await svc.complete_challenge(challenge_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(result, "Challenge completed successfully.")
