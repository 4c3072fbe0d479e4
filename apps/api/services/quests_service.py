"""Service layer for quests, sub-quests and their rewards."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any

import msgspec
from asyncpg import Connection, Pool
from litestar.datastructures import State
from questline_sdk.quests import (
    NestedRewardRequest,
    QuestCompletionResponse,
    QuestCreateRequest,
    QuestResponse,
    QuestUpdateRequest,
    RewardCreateRequest,
    RewardKind,
    RewardResponse,
    RewardUpdateRequest,
    SubQuestClaimResponse,
    SubQuestCreateRequest,
    SubQuestResponse,
    SubQuestUpdateRequest,
)

from repository.exceptions import ForeignKeyViolationError
from repository.quests_repository import QuestsRepository
from repository.stats_repository import StatsRepository
from repository.users_repository import UsersRepository
from utilities.retry import retry_on_conflict

from .base import BaseService
from .exceptions.progression import (
    AlreadyClaimedError,
    AlreadyCompletedError,
    EntityNotFoundError,
    InvalidRewardError,
    NotYetCompletedError,
    ProgressionValidationError,
    RewardLockedError,
)
from .exceptions.users import UserNotFoundError
from .progression import ProgressionApplier
from .rewards import resolve_rewards

log = logging.getLogger(__name__)


def _validate_reward(reward_type: str, amount: int, skill: str | None) -> None:
    if amount < 0:
        raise InvalidRewardError("Reward amount cannot be negative.", field="amount")
    if reward_type == RewardKind.SKILL and not skill:
        raise InvalidRewardError("SKILL rewards require a skill.", field="skill")


def _require_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ProgressionValidationError("name", "Name is required.")
    return name


class QuestsService(BaseService):
    """Service for the quest tree.

    Quest completion pays the quest's own rewards. Sub-quest completion only
    marks the work done; the sub-quest's rewards are paid by a separate claim.
    """

    def __init__(
        self,
        pool: Pool,
        state: State,
        quests_repo: QuestsRepository,
        users_repo: UsersRepository,
        stats_repo: StatsRepository,
    ) -> None:
        """Initialize service.

        Args:
            pool: AsyncPG connection pool.
            state: Application state.
            quests_repo: Quests repository instance.
            users_repo: Users repository instance.
            stats_repo: Stats repository instance.
        """
        super().__init__(pool, state)
        self._quests_repo = quests_repo
        self._progression = ProgressionApplier(users_repo, stats_repo)

    # ===== Assembly =====

    async def _assemble_sub_quests(
        self,
        sub_quests: list[dict],
        *,
        conn: Connection | None = None,
    ) -> list[dict[str, Any]]:
        rewards = await self._quests_repo.fetch_sub_quest_rewards([sq["id"] for sq in sub_quests], conn=conn)
        by_owner: dict[int, list[dict]] = defaultdict(list)
        for reward in rewards:
            by_owner[reward["sub_quest_id"]].append(reward)
        return [{**sq, "rewards": by_owner[sq["id"]]} for sq in sub_quests]

    async def _assemble_quests(self, quests: list[dict], *, conn: Connection | None = None) -> list[QuestResponse]:
        if not quests:
            return []
        quest_ids = [q["id"] for q in quests]
        rewards = await self._quests_repo.fetch_quest_rewards(quest_ids, conn=conn)
        sub_quests = await self._assemble_sub_quests(
            await self._quests_repo.fetch_sub_quests(quest_ids, conn=conn),
            conn=conn,
        )

        rewards_by_quest: dict[int, list[dict]] = defaultdict(list)
        for reward in rewards:
            rewards_by_quest[reward["quest_id"]].append(reward)
        sub_quests_by_quest: dict[int, list[dict]] = defaultdict(list)
        for sq in sub_quests:
            sub_quests_by_quest[sq["quest_id"]].append(sq)

        assembled = [
            {**q, "rewards": rewards_by_quest[q["id"]], "sub_quests": sub_quests_by_quest[q["id"]]} for q in quests
        ]
        return msgspec.convert(assembled, list[QuestResponse])

    async def _insert_rewards(
        self,
        rewards: list[NestedRewardRequest],
        *,
        quest_id: int | None = None,
        sub_quest_id: int | None = None,
        conn: Connection,
    ) -> None:
        for reward in rewards:
            try:
                await self._quests_repo.create_reward(
                    reward.type,
                    reward.amount,
                    reward.skill,
                    reward.item_id,
                    quest_id=quest_id,
                    sub_quest_id=sub_quest_id,
                    conn=conn,
                )
            except ForeignKeyViolationError as e:
                raise EntityNotFoundError("Item", reward.item_id or 0) from e

    # ===== Quests =====

    async def create_quest(self, user_id: int, data: QuestCreateRequest) -> QuestResponse:
        """Create a quest with its nested rewards and sub-quests in one transaction.

        Args:
            user_id: Owner.
            data: Quest payload.

        Returns:
            The created quest tree.

        Raises:
            ProgressionValidationError: If a name is blank.
            InvalidRewardError: If a nested reward is malformed.
            EntityNotFoundError: If a reward references a missing item.
            UserNotFoundError: If the user does not exist.
        """
        name = _require_name(data.name)
        sub_quest_names = [_require_name(sq.name) for sq in data.sub_quests]
        for reward in [*data.rewards, *(r for sq in data.sub_quests for r in sq.rewards)]:
            _validate_reward(reward.type, reward.amount, reward.skill)

        async with self._pool.acquire() as conn, conn.transaction():
            try:
                quest = await self._quests_repo.create_quest(
                    user_id,
                    name,
                    data.description,
                    data.image,
                    data.end_date,
                    data.priority,
                    conn=conn,
                )
            except ForeignKeyViolationError as e:
                raise UserNotFoundError(user_id) from e

            await self._insert_rewards(data.rewards, quest_id=quest["id"], conn=conn)
            for sq_name, sq in zip(sub_quest_names, data.sub_quests):
                sub_quest = await self._quests_repo.create_sub_quest(quest["id"], sq_name, conn=conn)
                await self._insert_rewards(sq.rewards, sub_quest_id=sub_quest["id"], conn=conn)

            (response,) = await self._assemble_quests([quest], conn=conn)

        log.info("User %s created quest %s", user_id, quest["id"])
        return response

    async def list_quests(self, user_id: int) -> list[QuestResponse]:
        """List the quests of a user with their rewards and sub-quests."""
        return await self._assemble_quests(await self._quests_repo.fetch_user_quests(user_id))

    async def get_quest(self, quest_id: int, user_id: int) -> QuestResponse:
        """Get a quest tree owned by the user.

        Raises:
            EntityNotFoundError: If the quest is missing or owned by someone else.
        """
        quest = await self._quests_repo.fetch_quest(quest_id)
        if not quest or quest["user_id"] != user_id:
            raise EntityNotFoundError("Quest", quest_id)
        (response,) = await self._assemble_quests([quest])
        return response

    async def update_quest(self, quest_id: int, user_id: int, data: QuestUpdateRequest) -> QuestResponse:
        """Update descriptive fields of a quest. Completion is never changed here."""
        fields = self.supplied_fields(data)
        if "name" in fields:
            fields["name"] = _require_name(fields["name"])
        quest = await self._quests_repo.update_quest(quest_id, user_id, fields)
        if not quest:
            raise EntityNotFoundError("Quest", quest_id)
        (response,) = await self._assemble_quests([quest])
        return response

    async def delete_quest(self, quest_id: int, user_id: int) -> None:
        """Delete a quest with its sub-quests and rewards."""
        if not await self._quests_repo.delete_quest(quest_id, user_id):
            raise EntityNotFoundError("Quest", quest_id)

    @retry_on_conflict()
    async def complete_quest(self, quest_id: int, user_id: int) -> QuestCompletionResponse:
        """Complete a quest and pay out the rewards attached to it.

        Sub-quest rewards are not part of this payout.

        Args:
            quest_id: Quest to complete.
            user_id: Authenticated owner.

        Returns:
            The completed quest, the owner's balances and the stats that changed.

        Raises:
            EntityNotFoundError: If the quest is missing or owned by someone else.
            AlreadyCompletedError: If the quest was already completed.
        """
        async with self._pool.acquire() as conn, conn.transaction():
            quest = await self._quests_repo.mark_quest_completed(quest_id, user_id, conn=conn)
            if quest is None:
                status = await self._quests_repo.fetch_quest_status(quest_id, user_id, conn=conn)
                if status is None:
                    raise EntityNotFoundError("Quest", quest_id)
                raise AlreadyCompletedError("Quest", quest_id)

            rewards = await self._quests_repo.fetch_quest_rewards([quest_id], conn=conn)
            applied = await self._progression.apply(user_id, resolve_rewards(rewards), conn=conn)
            (response,) = await self._assemble_quests([quest], conn=conn)

        log.info("User %s completed quest %s (%d rewards)", user_id, quest_id, len(rewards))
        return QuestCompletionResponse(quest=response, progress=applied.progress, stats=applied.stats)

    # ===== Sub-quests =====

    async def _require_sub_quest(self, sub_quest_id: int, user_id: int) -> dict:
        sub_quest = await self._quests_repo.fetch_sub_quest(sub_quest_id)
        if not sub_quest or not await self._quests_repo.check_quest_owner(sub_quest["quest_id"], user_id):
            raise EntityNotFoundError("SubQuest", sub_quest_id)
        return sub_quest

    async def _to_sub_quest_response(self, sub_quest: dict, *, conn: Connection | None = None) -> SubQuestResponse:
        (assembled,) = await self._assemble_sub_quests([sub_quest], conn=conn)
        return msgspec.convert(assembled, SubQuestResponse)

    async def create_sub_quest(self, user_id: int, data: SubQuestCreateRequest) -> SubQuestResponse:
        """Create a sub-quest with its rewards under a quest owned by the user.

        Raises:
            EntityNotFoundError: If the quest is missing or owned by someone else.
        """
        name = _require_name(data.name)
        for reward in data.rewards:
            _validate_reward(reward.type, reward.amount, reward.skill)

        async with self._pool.acquire() as conn, conn.transaction():
            owner = await self._quests_repo.lock_quest_status(data.quest_id, conn=conn)
            if not owner or owner["user_id"] != user_id:
                raise EntityNotFoundError("Quest", data.quest_id)
            sub_quest = await self._quests_repo.create_sub_quest(data.quest_id, name, conn=conn)
            await self._insert_rewards(data.rewards, sub_quest_id=sub_quest["id"], conn=conn)
            return await self._to_sub_quest_response(sub_quest, conn=conn)

    async def list_sub_quests(self, quest_id: int, user_id: int) -> list[SubQuestResponse]:
        """List the sub-quests of a quest owned by the user."""
        if not await self._quests_repo.check_quest_owner(quest_id, user_id):
            raise EntityNotFoundError("Quest", quest_id)
        sub_quests = await self._assemble_sub_quests(await self._quests_repo.fetch_sub_quests([quest_id]))
        return msgspec.convert(sub_quests, list[SubQuestResponse])

    async def get_sub_quest(self, sub_quest_id: int, user_id: int) -> SubQuestResponse:
        """Get a sub-quest owned by the user."""
        return await self._to_sub_quest_response(await self._require_sub_quest(sub_quest_id, user_id))

    async def update_sub_quest(self, sub_quest_id: int, user_id: int, data: SubQuestUpdateRequest) -> SubQuestResponse:
        """Rename a sub-quest owned by the user."""
        sub_quest = await self._quests_repo.rename_sub_quest(sub_quest_id, user_id, _require_name(data.name))
        if not sub_quest:
            raise EntityNotFoundError("SubQuest", sub_quest_id)
        return await self._to_sub_quest_response(sub_quest)

    async def delete_sub_quest(self, sub_quest_id: int, user_id: int) -> None:
        """Delete a sub-quest owned by the user."""
        if not await self._quests_repo.delete_sub_quest(sub_quest_id, user_id):
            raise EntityNotFoundError("SubQuest", sub_quest_id)

    @retry_on_conflict()
    async def complete_sub_quest(self, sub_quest_id: int, user_id: int) -> SubQuestResponse:
        """Mark a sub-quest's work as done. No reward is paid until it is claimed.

        Raises:
            EntityNotFoundError: If the sub-quest is missing or owned by someone else.
            AlreadyCompletedError: If the sub-quest was already completed.
        """
        async with self._pool.acquire() as conn, conn.transaction():
            sub_quest = await self._quests_repo.mark_sub_quest_completed(sub_quest_id, user_id, conn=conn)
            if sub_quest is None:
                status = await self._quests_repo.fetch_sub_quest_status(sub_quest_id, user_id, conn=conn)
                if status is None:
                    raise EntityNotFoundError("SubQuest", sub_quest_id)
                raise AlreadyCompletedError("SubQuest", sub_quest_id)
            response = await self._to_sub_quest_response(sub_quest, conn=conn)

        log.info("User %s completed sub-quest %s", user_id, sub_quest_id)
        return response

    @retry_on_conflict()
    async def claim_sub_quest(self, sub_quest_id: int, user_id: int) -> SubQuestClaimResponse:
        """Collect the rewards of a completed sub-quest.

        Args:
            sub_quest_id: Sub-quest to claim.
            user_id: Authenticated owner.

        Returns:
            The claimed sub-quest, the owner's balances and the stats that changed.

        Raises:
            EntityNotFoundError: If the sub-quest is missing or owned by someone else.
            NotYetCompletedError: If the sub-quest is not completed.
            AlreadyClaimedError: If the rewards were already claimed.
        """
        async with self._pool.acquire() as conn, conn.transaction():
            sub_quest = await self._quests_repo.mark_sub_quest_claimed(sub_quest_id, user_id, conn=conn)
            if sub_quest is None:
                status = await self._quests_repo.fetch_sub_quest_status(sub_quest_id, user_id, conn=conn)
                if status is None:
                    raise EntityNotFoundError("SubQuest", sub_quest_id)
                if not status["completed"]:
                    raise NotYetCompletedError("SubQuest", sub_quest_id)
                raise AlreadyClaimedError("SubQuest", sub_quest_id)

            rewards = await self._quests_repo.fetch_sub_quest_rewards([sub_quest_id], conn=conn)
            applied = await self._progression.apply(user_id, resolve_rewards(rewards), conn=conn)
            response = msgspec.convert({**sub_quest, "rewards": rewards}, SubQuestResponse)

        log.info("User %s claimed sub-quest %s (%d rewards)", user_id, sub_quest_id, len(rewards))
        return SubQuestClaimResponse(sub_quest=response, progress=applied.progress, stats=applied.stats)

    # ===== Rewards =====

    async def _lock_reward_owner(
        self,
        user_id: int,
        *,
        quest_id: int | None,
        sub_quest_id: int | None,
        conn: Connection,
    ) -> None:
        """Share-lock the entity a reward belongs to and ensure it has not paid out yet."""
        if quest_id is not None:
            owner = await self._quests_repo.lock_quest_status(quest_id, conn=conn)
            entity, entity_id = "Quest", quest_id
        else:
            owner = await self._quests_repo.lock_sub_quest_status(sub_quest_id or 0, conn=conn)
            entity, entity_id = "SubQuest", sub_quest_id or 0
        if not owner or owner["user_id"] != user_id:
            raise EntityNotFoundError(entity, entity_id)
        if owner["paid_out"]:
            raise RewardLockedError()

    async def _reward_is_owned(self, reward: dict, user_id: int) -> bool:
        quest_id = reward["quest_id"]
        if quest_id is None:
            sub_quest = await self._quests_repo.fetch_sub_quest(reward["sub_quest_id"])
            if not sub_quest:
                return False
            quest_id = sub_quest["quest_id"]
        return await self._quests_repo.check_quest_owner(quest_id, user_id)

    async def create_reward(self, user_id: int, data: RewardCreateRequest) -> RewardResponse:
        """Attach a reward to exactly one quest or sub-quest of the user.

        Raises:
            InvalidRewardError: If the owner is ambiguous or the payload is malformed.
            EntityNotFoundError: If the owner or the referenced item is missing.
            RewardLockedError: If the owner has already paid out.
        """
        if (data.quest_id is None) == (data.sub_quest_id is None):
            raise InvalidRewardError("A reward must belong to exactly one quest or sub-quest.", field="quest_id")
        _validate_reward(data.type, data.amount, data.skill)

        async with self._pool.acquire() as conn, conn.transaction():
            await self._lock_reward_owner(user_id, quest_id=data.quest_id, sub_quest_id=data.sub_quest_id, conn=conn)
            try:
                reward = await self._quests_repo.create_reward(
                    data.type,
                    data.amount,
                    data.skill,
                    data.item_id,
                    quest_id=data.quest_id,
                    sub_quest_id=data.sub_quest_id,
                    conn=conn,
                )
            except ForeignKeyViolationError as e:
                raise EntityNotFoundError("Item", data.item_id or 0) from e
        return msgspec.convert(reward, RewardResponse)

    async def list_quest_rewards(self, quest_id: int, user_id: int) -> list[RewardResponse]:
        """List the rewards attached directly to a quest of the user."""
        if not await self._quests_repo.check_quest_owner(quest_id, user_id):
            raise EntityNotFoundError("Quest", quest_id)
        rewards = await self._quests_repo.fetch_quest_rewards([quest_id])
        return msgspec.convert(rewards, list[RewardResponse])

    async def list_sub_quest_rewards(self, sub_quest_id: int, user_id: int) -> list[RewardResponse]:
        """List the rewards of a sub-quest of the user."""
        await self._require_sub_quest(sub_quest_id, user_id)
        rewards = await self._quests_repo.fetch_sub_quest_rewards([sub_quest_id])
        return msgspec.convert(rewards, list[RewardResponse])

    async def get_reward(self, reward_id: int, user_id: int) -> RewardResponse:
        """Get a reward whose owning quest belongs to the user."""
        reward = await self._quests_repo.fetch_reward(reward_id)
        if not reward or not await self._reward_is_owned(reward, user_id):
            raise EntityNotFoundError("Reward", reward_id)
        return msgspec.convert(reward, RewardResponse)

    async def update_reward(self, reward_id: int, user_id: int, data: RewardUpdateRequest) -> RewardResponse:
        """Edit a reward that has not been paid out yet.

        Raises:
            EntityNotFoundError: If the reward is missing or owned by someone else.
            RewardLockedError: If its owner has already paid out.
            InvalidRewardError: If the resulting reward is malformed.
        """
        fields = self.supplied_fields(data)
        async with self._pool.acquire() as conn, conn.transaction():
            reward = await self._quests_repo.fetch_reward(reward_id, conn=conn)
            if not reward:
                raise EntityNotFoundError("Reward", reward_id)
            try:
                await self._lock_reward_owner(
                    user_id,
                    quest_id=reward["quest_id"],
                    sub_quest_id=reward["sub_quest_id"],
                    conn=conn,
                )
            except EntityNotFoundError as e:
                raise EntityNotFoundError("Reward", reward_id) from e

            merged = {**reward, **fields}
            _validate_reward(merged["type"], merged["amount"], merged["skill"])
            try:
                updated = await self._quests_repo.update_reward(reward_id, fields, conn=conn)
            except ForeignKeyViolationError as e:
                raise EntityNotFoundError("Item", fields.get("item_id") or 0) from e
        return msgspec.convert(updated, RewardResponse)

    async def delete_reward(self, reward_id: int, user_id: int) -> None:
        """Delete a reward that has not been paid out yet."""
        async with self._pool.acquire() as conn, conn.transaction():
            reward = await self._quests_repo.fetch_reward(reward_id, conn=conn)
            if not reward:
                raise EntityNotFoundError("Reward", reward_id)
            try:
                await self._lock_reward_owner(
                    user_id,
                    quest_id=reward["quest_id"],
                    sub_quest_id=reward["sub_quest_id"],
                    conn=conn,
                )
            except EntityNotFoundError as e:
                raise EntityNotFoundError("Reward", reward_id) from e
            await self._quests_repo.delete_reward(reward_id, conn=conn)


async def provide_quests_service(state: State) -> QuestsService:
    """Litestar DI provider for quests service.

    Args:
        state: Application state.

    Returns:
        QuestsService instance.
    """
    return QuestsService(
        pool=state.db_pool,
        state=state,
        quests_repo=QuestsRepository(state.db_pool),
        users_repo=UsersRepository(state.db_pool),
        stats_repo=StatsRepository(state.db_pool),
    )
