"""User account and progression models."""

from __future__ import annotations

import datetime as dt

from msgspec import UNSET, Struct, UnsetType

__all__ = (
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "TokenPairResponse",
    "UpdatePasswordRequest",
    "UpdateProfileRequest",
    "UserProgress",
    "UserResponse",
)


class RegisterRequest(Struct):
    """Payload for registering a new user.

    Attributes:
        name: Display name.
        email: Email address, unique across users.
        password: Plaintext password (hashed server-side).
    """

    name: str
    email: str
    password: str


class LoginRequest(Struct):
    """Payload for logging in with email and password."""

    email: str
    password: str


class UserResponse(Struct):
    """Public view of a user, without any credentials.

    Attributes:
        id: User ID.
        name: Display name.
        email: Email address.
        level: Stored user level.
        exp: Experience points.
        health: Health points.
        coins: Coin balance.
        profile_pic: URL of the profile picture.
        job: Free text job title.
        about: Free text biography.
        strength: Self described strength.
        weakness: Self described weakness.
        master_objective: Long term objective.
        minor_objective: Short term objective.
        created_at: When the account was created.
    """

    id: int
    name: str
    email: str
    level: int
    exp: int
    health: int
    coins: int
    profile_pic: str | None = None
    job: str | None = None
    about: str | None = None
    strength: str | None = None
    weakness: str | None = None
    master_objective: str | None = None
    minor_objective: str | None = None
    created_at: dt.datetime | None = None


class TokenPairResponse(Struct):
    """Freshly issued access and refresh tokens."""

    access_token: str
    refresh_token: str


class LoginResponse(Struct):
    """Response for a successful login or registration."""

    user: UserResponse
    access_token: str
    refresh_token: str


class UpdateProfileRequest(Struct):
    """Partial update of profile fields. Omitted fields are left untouched."""

    name: str | UnsetType = UNSET
    email: str | UnsetType = UNSET
    profile_pic: str | None | UnsetType = UNSET
    job: str | None | UnsetType = UNSET
    about: str | None | UnsetType = UNSET
    strength: str | None | UnsetType = UNSET
    weakness: str | None | UnsetType = UNSET
    master_objective: str | None | UnsetType = UNSET
    minor_objective: str | None | UnsetType = UNSET


class UpdatePasswordRequest(Struct):
    """Payload for changing the current user's password."""

    prev_password: str
    new_password: str


class UserProgress(Struct):
    """Numeric progression state of a user after a reward was applied.

    Attributes:
        user_id: User ID.
        coins: Coin balance.
        exp: Experience points.
        health: Health points.
        level: Stored user level.
    """

    user_id: int
    coins: int
    exp: int
    health: int
    level: int
