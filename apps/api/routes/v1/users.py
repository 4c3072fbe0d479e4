"""Users v1 controller."""

from __future__ import annotations

import logging
from typing import Annotated

import litestar
from litestar import Request
from litestar.datastructures import Cookie, State
from litestar.di import Provide
from litestar.params import Body
from litestar.response import Response
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from questline_sdk.common import ApiResponse
from questline_sdk.users import (
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    TokenPairResponse,
    UpdatePasswordRequest,
    UpdateProfileRequest,
    UserResponse,
)

from middleware.auth import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, AuthUser
from services.auth_service import (
    ACCESS_TOKEN_EXPIRY_MINUTES,
    REFRESH_TOKEN_EXPIRY_DAYS,
    AuthService,
    provide_auth_service,
)
from services.users_service import UsersService, provide_users_service
from utilities.errors import DomainError
from utilities.responses import ok, to_http_exception

log = logging.getLogger(__name__)


def _token_cookies(access_token: str, refresh_token: str) -> list[Cookie]:
    return [
        Cookie(
            key=ACCESS_TOKEN_COOKIE,
            value=access_token,
            max_age=ACCESS_TOKEN_EXPIRY_MINUTES * 60,
            httponly=True,
            secure=True,
            samesite="strict",
        ),
        Cookie(
            key=REFRESH_TOKEN_COOKIE,
            value=refresh_token,
            max_age=REFRESH_TOKEN_EXPIRY_DAYS * 24 * 60 * 60,
            httponly=True,
            secure=True,
            samesite="strict",
        ),
    ]


class UsersController(litestar.Controller):
    """Users v1 controller."""

    tags = ["Users"]
    path = "/users"
    dependencies = {
        "auth_service": Provide(provide_auth_service),
        "users_service": Provide(provide_users_service),
    }

    @litestar.post(
        path="/register",
        summary="Register",
        description="Create an account and start a session. Tokens are set as httpOnly cookies and returned.",
        opt={"exclude_from_auth": True},
    )
    async def register(
        self,
        data: Annotated[RegisterRequest, Body(title="Registration data")],
        auth_service: AuthService,
    ) -> Response[ApiResponse[LoginResponse]]:
        """Register a new user.

        Args:
            data: Registration payload.
            auth_service: Auth service.

        Returns:
            The new user and its tokens with 201 status.

        Raises:
            CustomHTTPException: On validation errors (400) or a taken email (409).
        """
        try:
            result = await auth_service.register(data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return Response(
            ok(result, "User registered successfully.", HTTP_201_CREATED),
            status_code=HTTP_201_CREATED,
            cookies=_token_cookies(result.access_token, result.refresh_token),
        )

    @litestar.post(
        path="/login",
        summary="Login",
        description="Log in with email and password.",
        status_code=HTTP_200_OK,
        opt={"exclude_from_auth": True},
    )
    async def login(
        self,
        data: Annotated[LoginRequest, Body(title="Login credentials")],
        auth_service: AuthService,
    ) -> Response[ApiResponse[LoginResponse]]:
        """Log a user in.

        Args:
            data: Login payload.
            auth_service: Auth service.

        Returns:
            The user and its tokens.

        Raises:
            CustomHTTPException: Unknown email (404) or wrong password (401).
        """
        try:
            result = await auth_service.login(data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return Response(
            ok(result, "Logged in successfully."),
            cookies=_token_cookies(result.access_token, result.refresh_token),
        )

    @litestar.post(
        path="/refresh-access-token",
        summary="Refresh Access Token",
        description="Exchange the refresh token cookie for a new token pair. The old refresh token stops working.",
        status_code=HTTP_200_OK,
        opt={"exclude_from_auth": True},
    )
    async def refresh_access_token(
        self,
        request: Request,
        auth_service: AuthService,
    ) -> Response[ApiResponse[TokenPairResponse]]:
        """Rotate the session tokens.

        Args:
            request: Current request carrying the refresh cookie.
            auth_service: Auth service.

        Returns:
            The new token pair.

        Raises:
            CustomHTTPException: If the refresh token is missing or invalid (401).
        """
        try:
            tokens = await auth_service.refresh(request.cookies.get(REFRESH_TOKEN_COOKIE))
        except DomainError as e:
            raise to_http_exception(e) from e
        return Response(
            ok(tokens, "Access token refreshed."),
            cookies=_token_cookies(tokens.access_token, tokens.refresh_token),
        )

    @litestar.get(
        path="/logout",
        summary="Logout",
        description="Revoke every token of the current user and clear the session cookies.",
    )
    async def logout(
        self,
        request: Request[AuthUser, str, State],
        auth_service: AuthService,
    ) -> Response[ApiResponse[None]]:
        """Log the current user out.

        Args:
            request: Authenticated request.
            auth_service: Auth service.

        Returns:
            Empty envelope.
        """
        await auth_service.logout(request.user.id)
        response = Response(ok(None, "Logged out successfully."))
        response.delete_cookie(ACCESS_TOKEN_COOKIE)
        response.delete_cookie(REFRESH_TOKEN_COOKIE)
        return response

    @litestar.get(
        path="/me",
        summary="Get Current User",
        description="Fetch the profile and balances of the authenticated user.",
    )
    async def get_current_user(
        self,
        request: Request[AuthUser, str, State],
        users_service: UsersService,
    ) -> ApiResponse[UserResponse]:
        """Get the authenticated user.

        Args:
            request: Authenticated request.
            users_service: Users service.

        Returns:
            The user.
        """
        try:
            return ok(await users_service.get_user(request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.get(
        path="/{user_id:int}",
        summary="Get User Details",
        description="Fetch the public profile of a user. Credentials are never included.",
    )
    async def get_user_details(self, user_id: int, users_service: UsersService) -> ApiResponse[UserResponse]:
        """Get a user's public profile.

        Args:
            user_id: Target user ID.
            users_service: Users service.

        Returns:
            The user.

        Raises:
            CustomHTTPException: If the user does not exist (404).
        """
        try:
            return ok(await users_service.get_user(user_id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(
        path="/update-profile",
        summary="Update Profile",
        description="Update the profile fields that are present in the body. Balances cannot be edited.",
    )
    async def update_profile(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[UpdateProfileRequest, Body(title="Profile fields")],
        users_service: UsersService,
    ) -> ApiResponse[UserResponse]:
        """Update the authenticated user's profile.

        Args:
            request: Authenticated request.
            data: Fields to change.
            users_service: Users service.

        Returns:
            The updated user.
        """
        try:
            user = await users_service.update_profile(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(user, "Profile updated successfully.")

    @litestar.put(
        path="/update-password",
        summary="Update Password",
        description="Change the password of the authenticated user. The previous password is required.",
    )
    async def update_password(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[UpdatePasswordRequest, Body(title="Password change")],
        users_service: UsersService,
    ) -> ApiResponse[None]:
        """Change the authenticated user's password.

        Args:
            request: Authenticated request.
            data: Previous and new password.
            users_service: Users service.

        Returns:
            Empty envelope.

        Raises:
            CustomHTTPException: If the previous password is wrong (401).
        """
        try:
            await users_service.update_password(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Password updated successfully.")
