"""Daily challenge models."""

from __future__ import annotations

import datetime as dt

import msgspec
from msgspec import UNSET, Struct, UnsetType

from .quests import REWARD_TYPE
from .stats import StatResponse
from .users import UserProgress

__all__ = (
    "ChallengeCompletionResponse",
    "ChallengeCreateRequest",
    "ChallengeHistoryCreateRequest",
    "ChallengeHistoryResponse",
    "ChallengeHistoryUpdateRequest",
    "ChallengeResponse",
    "ChallengeUpdateRequest",
    "DailyChallengeCreateRequest",
    "DailyChallengeResponse",
    "DailyChallengeUpdateRequest",
    "DailyClaimResponse",
    "DailyRewardCreateRequest",
    "DailyRewardResponse",
    "DailyRewardUpdateRequest",
    "NestedChallengeRequest",
    "NestedDailyRewardRequest",
)


class NestedChallengeRequest(Struct):
    """Challenge created together with its daily challenge."""

    name: str
    description: str | None = None
    skill: str | None = None


class ChallengeCreateRequest(Struct):
    """Payload for adding a challenge to an existing daily challenge."""

    daily_id: int
    name: str
    description: str | None = None
    skill: str | None = None


class ChallengeUpdateRequest(Struct):
    """Partial update of descriptive challenge fields."""

    name: str | UnsetType = UNSET
    description: str | None | UnsetType = UNSET
    skill: str | None | UnsetType = UNSET


class ChallengeResponse(Struct):
    """A single challenge of a day.

    Attributes:
        id: Challenge ID.
        daily_id: Parent daily challenge.
        name: Challenge name.
        description: Free text description.
        skill: Skill stat credited on completion.
        completed: Whether the challenge is completed.
        completed_at: When the challenge was completed.
    """

    id: int
    daily_id: int
    name: str
    description: str | None
    skill: str | None
    completed: bool
    completed_at: dt.datetime | None = None


class NestedDailyRewardRequest(Struct):
    """Daily reward created together with its daily challenge."""

    type: REWARD_TYPE
    amount: int = 0


class DailyRewardCreateRequest(Struct):
    """Payload for adding a reward to an existing daily challenge."""

    daily_id: int
    type: REWARD_TYPE
    amount: int = 0


class DailyRewardUpdateRequest(Struct):
    """Partial update of a daily reward that has not paid out yet."""

    type: REWARD_TYPE | UnsetType = UNSET
    amount: int | UnsetType = UNSET


class DailyRewardResponse(Struct):
    """A payout of a daily challenge."""

    id: int
    daily_id: int
    type: REWARD_TYPE
    amount: int


class ChallengeHistoryCreateRequest(Struct):
    """Payload for recording a history entry by hand."""

    daily_id: int
    date: dt.datetime | None = None
    rewards_claimed: bool = False


class ChallengeHistoryUpdateRequest(Struct):
    """Partial update of a history entry."""

    date: dt.datetime | UnsetType = UNSET
    rewards_claimed: bool | UnsetType = UNSET


class ChallengeHistoryResponse(Struct):
    """A history entry of a daily challenge."""

    id: int
    daily_id: int
    date: dt.datetime
    rewards_claimed: bool


class DailyChallengeCreateRequest(Struct):
    """Payload for creating a day of challenges with its rewards.

    Attributes:
        date: Day the challenges belong to. Defaults to today.
        challenges: Challenges that must all be completed before claiming.
        rewards: Rewards paid out on claim.
    """

    date: dt.date | None = None
    challenges: list[NestedChallengeRequest] = msgspec.field(default_factory=list)
    rewards: list[NestedDailyRewardRequest] = msgspec.field(default_factory=list)


class DailyChallengeUpdateRequest(Struct):
    """Payload for moving a daily challenge to another day."""

    date: dt.date


class DailyChallengeResponse(Struct):
    """A day of challenges.

    Attributes:
        id: Daily challenge ID.
        user_id: Owner.
        date: Day the challenges belong to.
        claimed_date: When the rewards were claimed.
        challenges: Child challenges.
        rewards: Rewards paid out on claim.
    """

    id: int
    user_id: int
    date: dt.date
    claimed_date: dt.datetime | None
    challenges: list[ChallengeResponse] = msgspec.field(default_factory=list)
    rewards: list[DailyRewardResponse] = msgspec.field(default_factory=list)


class ChallengeCompletionResponse(Struct):
    """Result of completing a challenge.

    Attributes:
        challenge: The completed challenge.
        stat: The credited skill stat, if the challenge names a skill.
    """

    challenge: ChallengeResponse
    stat: StatResponse | None = None


class DailyClaimResponse(Struct):
    """Result of claiming the rewards of a daily challenge."""

    daily_challenge: DailyChallengeResponse
    progress: UserProgress
    history: ChallengeHistoryResponse
