"""Skill stat models."""

from __future__ import annotations

import datetime as dt

from msgspec import Struct

__all__ = (
    "StatCreateRequest",
    "StatIncrementRequest",
    "StatResponse",
    "StatUpdateRequest",
)


class StatCreateRequest(Struct):
    """Payload for creating a skill stat for the current user.

    Attributes:
        skill: Skill key, unique per user.
        value: Initial value. Level is derived from it.
    """

    skill: str
    value: int = 0


class StatUpdateRequest(Struct):
    """Payload for renaming the skill of a stat."""

    skill: str


class StatIncrementRequest(Struct):
    """Payload for incrementing a stat."""

    amount: int = 1


class StatResponse(Struct):
    """Per-user, per-skill aggregate.

    Attributes:
        id: Stat ID.
        user_id: Owner.
        skill: Skill key.
        value: Accumulated value.
        level: Derived level, ``value // 100 + 1``.
        updated_at: Last time the value changed.
    """

    id: int
    user_id: int
    skill: str
    value: int
    level: int
    updated_at: dt.datetime | None = None
