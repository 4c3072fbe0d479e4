"""Quest, sub-quest and reward models."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Literal

import msgspec
from msgspec import UNSET, Struct, UnsetType

from .stats import StatResponse
from .users import UserProgress

__all__ = (
    "REWARD_TYPE",
    "NestedRewardRequest",
    "NestedSubQuestRequest",
    "QuestCompletionResponse",
    "QuestCreateRequest",
    "QuestResponse",
    "QuestUpdateRequest",
    "RewardCreateRequest",
    "RewardKind",
    "RewardResponse",
    "RewardUpdateRequest",
    "SubQuestClaimResponse",
    "SubQuestCreateRequest",
    "SubQuestResponse",
    "SubQuestUpdateRequest",
)


class RewardKind(str, Enum):
    """Kinds of payout a reward descriptor can carry."""

    COINS = "COINS"
    EXPERIENCE = "EXPERIENCE"
    SKILL = "SKILL"
    ITEM = "ITEM"


REWARD_TYPE = Literal["COINS", "EXPERIENCE", "SKILL", "ITEM"]


class NestedRewardRequest(Struct):
    """Reward created together with its quest or sub-quest.

    Attributes:
        type: Payout kind.
        amount: Payout magnitude.
        skill: Skill key, required for SKILL rewards.
        item_id: Store item referenced by ITEM rewards.
    """

    type: REWARD_TYPE
    amount: int = 0
    skill: str | None = None
    item_id: int | None = None


class RewardCreateRequest(Struct):
    """Reward attached to exactly one of a quest or a sub-quest."""

    type: REWARD_TYPE
    amount: int = 0
    skill: str | None = None
    item_id: int | None = None
    quest_id: int | None = None
    sub_quest_id: int | None = None


class RewardUpdateRequest(Struct):
    """Partial update of a reward that has not paid out yet."""

    type: REWARD_TYPE | UnsetType = UNSET
    amount: int | UnsetType = UNSET
    skill: str | None | UnsetType = UNSET
    item_id: int | None | UnsetType = UNSET


class RewardResponse(Struct):
    """A stored reward descriptor.

    Attributes:
        id: Reward ID.
        type: Payout kind.
        amount: Payout magnitude.
        skill: Skill key for SKILL rewards.
        item_id: Store item referenced by ITEM rewards.
        quest_id: Owning quest, if attached to a quest.
        sub_quest_id: Owning sub-quest, if attached to a sub-quest.
    """

    id: int
    type: REWARD_TYPE
    amount: int
    skill: str | None = None
    item_id: int | None = None
    quest_id: int | None = None
    sub_quest_id: int | None = None


class NestedSubQuestRequest(Struct):
    """Sub-quest created together with its quest."""

    name: str
    rewards: list[NestedRewardRequest] = msgspec.field(default_factory=list)


class SubQuestCreateRequest(Struct):
    """Payload for adding a sub-quest to an existing quest."""

    quest_id: int
    name: str
    rewards: list[NestedRewardRequest] = msgspec.field(default_factory=list)


class SubQuestUpdateRequest(Struct):
    """Payload for renaming a sub-quest."""

    name: str


class SubQuestResponse(Struct):
    """A sub-quest.

    Attributes:
        id: Sub-quest ID.
        quest_id: Parent quest.
        name: Sub-quest name.
        completed: Whether the work is done.
        claim: Whether the rewards were collected.
        completed_at: When the work was marked done.
        claimed_at: When the rewards were collected.
        rewards: Rewards paid out on claim.
    """

    id: int
    quest_id: int
    name: str
    completed: bool
    claim: bool
    completed_at: dt.datetime | None = None
    claimed_at: dt.datetime | None = None
    rewards: list[RewardResponse] = msgspec.field(default_factory=list)


class QuestCreateRequest(Struct):
    """Payload for creating a quest with its rewards and sub-quests.

    Attributes:
        name: Quest name.
        description: Free text description.
        image: Image URL.
        end_date: Deadline.
        priority: Ordering priority, higher first.
        rewards: Rewards paid out when the quest completes.
        sub_quests: Sub-quests created with the quest.
    """

    name: str
    description: str | None = None
    image: str | None = None
    end_date: dt.datetime | None = None
    priority: int = 1
    rewards: list[NestedRewardRequest] = msgspec.field(default_factory=list)
    sub_quests: list[NestedSubQuestRequest] = msgspec.field(default_factory=list)


class QuestUpdateRequest(Struct):
    """Partial update of descriptive quest fields."""

    name: str | UnsetType = UNSET
    description: str | None | UnsetType = UNSET
    image: str | None | UnsetType = UNSET
    end_date: dt.datetime | None | UnsetType = UNSET
    priority: int | UnsetType = UNSET


class QuestResponse(Struct):
    """A quest with its rewards and sub-quests.

    Attributes:
        id: Quest ID.
        user_id: Owner.
        name: Quest name.
        description: Free text description.
        image: Image URL.
        end_date: Deadline.
        priority: Ordering priority.
        is_completed: Whether the quest is completed.
        completed_at: When the quest was completed.
        created_at: When the quest was created.
        rewards: Rewards paid out when the quest completes.
        sub_quests: Child sub-quests.
    """

    id: int
    user_id: int
    name: str
    description: str | None
    image: str | None
    end_date: dt.datetime | None
    priority: int
    is_completed: bool
    completed_at: dt.datetime | None
    created_at: dt.datetime
    rewards: list[RewardResponse] = msgspec.field(default_factory=list)
    sub_quests: list[SubQuestResponse] = msgspec.field(default_factory=list)


class QuestCompletionResponse(Struct):
    """Result of completing a quest.

    Attributes:
        quest: The completed quest.
        progress: Owner progression after the rewards were applied.
        stats: Skill stats touched by SKILL rewards.
    """

    quest: QuestResponse
    progress: UserProgress
    stats: list[StatResponse]


class SubQuestClaimResponse(Struct):
    """Result of claiming a sub-quest."""

    sub_quest: SubQuestResponse
    progress: UserProgress
    stats: list[StatResponse]
