"""Service layer for users domain business logic."""

from __future__ import annotations

import logging

import msgspec
from asyncpg import Pool
from litestar.datastructures import State
from questline_sdk.users import UpdatePasswordRequest, UpdateProfileRequest, UserResponse

from repository.exceptions import UniqueConstraintViolationError
from repository.users_repository import UsersRepository

from .auth_service import AuthService
from .base import BaseService
from .exceptions.users import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    UserNotFoundError,
    UserValidationError,
)

log = logging.getLogger(__name__)


class UsersService(BaseService):
    """Service for user profiles and passwords."""

    def __init__(self, pool: Pool, state: State, users_repo: UsersRepository) -> None:
        """Initialize service.

        Args:
            pool: AsyncPG connection pool.
            state: Application state.
            users_repo: Users repository instance.
        """
        super().__init__(pool, state)
        self._users_repo = users_repo

    async def get_user(self, user_id: int) -> UserResponse:
        """Get the public profile of a user.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        user = await self._users_repo.fetch_user(user_id)
        if not user:
            raise UserNotFoundError(user_id)
        return msgspec.convert(user, UserResponse)

    async def update_profile(self, user_id: int, data: UpdateProfileRequest) -> UserResponse:
        """Update the profile fields that were sent.

        Balances and level cannot be changed here.

        Raises:
            UserValidationError: If the name is blank or the email malformed.
            EmailAlreadyExistsError: If the new email is taken.
            UserNotFoundError: If the user does not exist.
        """
        fields = self.supplied_fields(data)
        if "name" in fields:
            AuthService.validate_required("name", fields["name"])
            fields["name"] = fields["name"].strip()
        if "email" in fields:
            AuthService.validate_email(fields["email"])
            fields["email"] = fields["email"].strip().lower()

        try:
            user = await self._users_repo.update_user(user_id, fields)
        except UniqueConstraintViolationError as e:
            raise EmailAlreadyExistsError(fields["email"]) from e
        if not user:
            raise UserNotFoundError(user_id)
        return msgspec.convert(user, UserResponse)

    async def update_password(self, user_id: int, data: UpdatePasswordRequest) -> None:
        """Change the password after checking the previous one.

        Raises:
            UserValidationError: If the new password is blank.
            InvalidCredentialsError: If the previous password does not match.
            UserNotFoundError: If the user does not exist.
        """
        if not data.new_password.strip():
            raise UserValidationError("new_password", "New password is required.")

        current = await self._users_repo.fetch_password_hash(user_id)
        if current is None:
            raise UserNotFoundError(user_id)
        if not AuthService.verify_password(data.prev_password, current):
            raise InvalidCredentialsError("prev_password")

        await self._users_repo.update_password_hash(user_id, AuthService.hash_password(data.new_password))
        log.info("User %s changed their password", user_id)


async def provide_users_service(state: State) -> UsersService:
    """Litestar DI provider for users service.

    Args:
        state: Application state.

    Returns:
        UsersService instance.
    """
    return UsersService(pool=state.db_pool, state=state, users_repo=UsersRepository(state.db_pool))
