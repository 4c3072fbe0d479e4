"""Unit tests for QuestsService."""

import datetime as dt

import pytest
from questline_sdk.quests import (
    NestedRewardRequest,
    NestedSubQuestRequest,
    QuestCreateRequest,
    RewardCreateRequest,
    RewardUpdateRequest,
    SubQuestCreateRequest,
)

from repository.exceptions import ForeignKeyViolationError
from services.exceptions.progression import (
    AlreadyClaimedError,
    AlreadyCompletedError,
    EntityNotFoundError,
    InvalidRewardError,
    NotYetCompletedError,
    ProgressionValidationError,
    RewardLockedError,
)
from services.quests_service import QuestsService

pytestmark = [
    pytest.mark.domain_progression,
]

NOW = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


def _quest_row(quest_id: int = 1, user_id: int = 1, *, is_completed: bool = False) -> dict:
    return {
        "id": quest_id,
        "user_id": user_id,
        "name": "Learn to cook",
        "description": None,
        "image": None,
        "end_date": None,
        "priority": 1,
        "is_completed": is_completed,
        "completed_at": NOW if is_completed else None,
        "created_at": NOW,
    }


def _sub_quest_row(sub_quest_id: int = 10, quest_id: int = 1, *, completed: bool = False, claim: bool = False) -> dict:
    return {
        "id": sub_quest_id,
        "quest_id": quest_id,
        "name": "Boil an egg",
        "completed": completed,
        "claim": claim,
        "completed_at": NOW if completed else None,
        "claimed_at": NOW if claim else None,
    }


def _reward_row(reward_id: int, reward_type: str, amount: int, *, quest_id=None, sub_quest_id=None, skill=None):
    return {
        "id": reward_id,
        "type": reward_type,
        "amount": amount,
        "skill": skill,
        "item_id": None,
        "quest_id": quest_id,
        "sub_quest_id": sub_quest_id,
    }


@pytest.fixture
def service(mock_pool, mock_state, mock_quests_repo, mock_users_repo, mock_stats_repo):
    mock_quests_repo.fetch_quest_rewards.return_value = []
    mock_quests_repo.fetch_sub_quests.return_value = []
    mock_quests_repo.fetch_sub_quest_rewards.return_value = []
    return QuestsService(mock_pool, mock_state, mock_quests_repo, mock_users_repo, mock_stats_repo)


class TestCreateQuest:
    """Nested quest creation."""

    async def test_creates_tree(self, service, mock_quests_repo, mock_conn):
        mock_quests_repo.create_quest.return_value = _quest_row()
        mock_quests_repo.create_sub_quest.return_value = _sub_quest_row()
        data = QuestCreateRequest(
            name="Learn to cook",
            rewards=[NestedRewardRequest(type="COINS", amount=100)],
            sub_quests=[
                NestedSubQuestRequest(
                    name="Boil an egg",
                    rewards=[NestedRewardRequest(type="SKILL", amount=5, skill="cooking")],
                )
            ],
        )

        quest = await service.create_quest(1, data)

        assert quest.id == 1
        mock_quests_repo.create_sub_quest.assert_awaited_once_with(1, "Boil an egg", conn=mock_conn)
        calls = mock_quests_repo.create_reward.await_args_list
        assert calls[0].kwargs["quest_id"] == 1
        assert calls[1].kwargs["sub_quest_id"] == 10

    async def test_invalid_nested_reward_creates_nothing(self, service, mock_quests_repo):
        data = QuestCreateRequest(
            name="Learn to cook",
            sub_quests=[NestedSubQuestRequest(name="Egg", rewards=[NestedRewardRequest(type="SKILL", amount=5)])],
        )

        with pytest.raises(InvalidRewardError) as exc_info:
            await service.create_quest(1, data)

        assert exc_info.value.context["field"] == "skill"
        mock_quests_repo.create_quest.assert_not_called()

    async def test_negative_amount_rejected(self, service, mock_quests_repo):
        data = QuestCreateRequest(name="Quest", rewards=[NestedRewardRequest(type="COINS", amount=-1)])

        with pytest.raises(InvalidRewardError):
            await service.create_quest(1, data)

    async def test_blank_sub_quest_name_rejected(self, service):
        data = QuestCreateRequest(name="Quest", sub_quests=[NestedSubQuestRequest(name=" ")])

        with pytest.raises(ProgressionValidationError):
            await service.create_quest(1, data)

    async def test_missing_reward_item(self, service, mock_quests_repo):
        mock_quests_repo.create_quest.return_value = _quest_row()
        mock_quests_repo.create_reward.side_effect = ForeignKeyViolationError("rewards_item_id_fkey", "quests.rewards")
        data = QuestCreateRequest(name="Quest", rewards=[NestedRewardRequest(type="ITEM", item_id=404)])

        with pytest.raises(EntityNotFoundError) as exc_info:
            await service.create_quest(1, data)

        assert exc_info.value.context["entity"] == "Item"


class TestCompleteQuest:
    """Quest completion pays the quest's own rewards exactly once."""

    async def test_pays_quest_rewards(
        self, service, mock_quests_repo, mock_users_repo, mock_stats_repo, mock_conn, progress_row, stat_row
    ):
        mock_quests_repo.mark_quest_completed.return_value = _quest_row(is_completed=True)
        mock_quests_repo.fetch_quest_rewards.return_value = [
            _reward_row(1, "COINS", 100, quest_id=1),
            _reward_row(2, "EXPERIENCE", 40, quest_id=1),
            _reward_row(3, "SKILL", 15, quest_id=1, skill="cooking"),
            _reward_row(4, "COINS", 20, quest_id=1),
        ]
        mock_users_repo.increment_progress.return_value = progress_row(1, coins=1120, exp=90)
        mock_stats_repo.add_skill_value.return_value = stat_row("cooking", 15)

        result = await service.complete_quest(1, 1)

        mock_users_repo.increment_progress.assert_awaited_once_with(1, conn=mock_conn, coins=120, exp=40)
        mock_stats_repo.add_skill_value.assert_awaited_once_with(1, "cooking", 15, conn=mock_conn)
        assert result.quest.is_completed is True
        assert result.progress.coins == 1120
        assert [s.skill for s in result.stats] == ["cooking"]

    async def test_sub_quest_rewards_are_not_paid(
        self, service, mock_quests_repo, mock_users_repo, mock_conn, progress_row
    ):
        mock_quests_repo.mark_quest_completed.return_value = _quest_row(is_completed=True)
        mock_quests_repo.fetch_sub_quests.return_value = [_sub_quest_row()]
        mock_quests_repo.fetch_sub_quest_rewards.return_value = [_reward_row(5, "COINS", 999, sub_quest_id=10)]
        mock_users_repo.fetch_progress.return_value = progress_row(1)

        result = await service.complete_quest(1, 1)

        mock_users_repo.increment_progress.assert_not_called()
        assert result.progress.coins == 1000
        assert result.quest.sub_quests[0].rewards[0].amount == 999

    async def test_already_completed(self, service, mock_quests_repo, mock_users_repo):
        mock_quests_repo.mark_quest_completed.return_value = None
        mock_quests_repo.fetch_quest_status.return_value = {"is_completed": True}

        with pytest.raises(AlreadyCompletedError):
            await service.complete_quest(1, 1)

        mock_users_repo.increment_progress.assert_not_called()
        mock_users_repo.fetch_progress.assert_not_called()

    async def test_missing_or_foreign(self, service, mock_quests_repo):
        mock_quests_repo.mark_quest_completed.return_value = None
        mock_quests_repo.fetch_quest_status.return_value = None

        with pytest.raises(EntityNotFoundError):
            await service.complete_quest(1, 2)


class TestSubQuests:
    """Sub-quest creation, completion and claim."""

    async def test_create_under_foreign_quest(self, service, mock_quests_repo):
        mock_quests_repo.lock_quest_status.return_value = {"user_id": 2, "paid_out": False}

        with pytest.raises(EntityNotFoundError):
            await service.create_sub_quest(1, SubQuestCreateRequest(quest_id=1, name="Egg"))

        mock_quests_repo.create_sub_quest.assert_not_called()

    async def test_complete_pays_nothing(self, service, mock_quests_repo, mock_users_repo):
        mock_quests_repo.mark_sub_quest_completed.return_value = _sub_quest_row(completed=True)

        sub_quest = await service.complete_sub_quest(10, 1)

        assert sub_quest.completed is True
        assert sub_quest.claim is False
        mock_users_repo.increment_progress.assert_not_called()
        mock_users_repo.fetch_progress.assert_not_called()

    async def test_complete_twice(self, service, mock_quests_repo):
        mock_quests_repo.mark_sub_quest_completed.return_value = None
        mock_quests_repo.fetch_sub_quest_status.return_value = {"completed": True, "claim": False}

        with pytest.raises(AlreadyCompletedError):
            await service.complete_sub_quest(10, 1)

    async def test_claim_pays_sub_quest_rewards(
        self, service, mock_quests_repo, mock_users_repo, mock_conn, progress_row
    ):
        mock_quests_repo.mark_sub_quest_claimed.return_value = _sub_quest_row(completed=True, claim=True)
        mock_quests_repo.fetch_sub_quest_rewards.return_value = [_reward_row(5, "EXPERIENCE", 25, sub_quest_id=10)]
        mock_users_repo.increment_progress.return_value = progress_row(1, exp=75)

        result = await service.claim_sub_quest(10, 1)

        mock_users_repo.increment_progress.assert_awaited_once_with(1, conn=mock_conn, exp=25)
        assert result.sub_quest.claim is True
        assert result.progress.exp == 75

    async def test_claim_before_completion(self, service, mock_quests_repo, mock_users_repo):
        mock_quests_repo.mark_sub_quest_claimed.return_value = None
        mock_quests_repo.fetch_sub_quest_status.return_value = {"completed": False, "claim": False}

        with pytest.raises(NotYetCompletedError):
            await service.claim_sub_quest(10, 1)

        mock_users_repo.increment_progress.assert_not_called()

    async def test_claim_twice(self, service, mock_quests_repo, mock_users_repo):
        mock_quests_repo.mark_sub_quest_claimed.return_value = None
        mock_quests_repo.fetch_sub_quest_status.return_value = {"completed": True, "claim": True}

        with pytest.raises(AlreadyClaimedError):
            await service.claim_sub_quest(10, 1)

        mock_users_repo.increment_progress.assert_not_called()


class TestRewards:
    """Reward CRUD and the payout lock."""

    async def test_requires_exactly_one_owner(self, service):
        with pytest.raises(InvalidRewardError):
            await service.create_reward(1, RewardCreateRequest(type="COINS", amount=1))
        with pytest.raises(InvalidRewardError):
            await service.create_reward(1, RewardCreateRequest(type="COINS", amount=1, quest_id=1, sub_quest_id=2))

    async def test_create_on_completed_quest_is_locked(self, service, mock_quests_repo):
        mock_quests_repo.lock_quest_status.return_value = {"user_id": 1, "paid_out": True}

        with pytest.raises(RewardLockedError):
            await service.create_reward(1, RewardCreateRequest(type="COINS", amount=1, quest_id=1))

        mock_quests_repo.create_reward.assert_not_called()

    async def test_create_on_sub_quest(self, service, mock_quests_repo):
        mock_quests_repo.lock_sub_quest_status.return_value = {"user_id": 1, "paid_out": False}
        mock_quests_repo.create_reward.return_value = _reward_row(7, "COINS", 5, sub_quest_id=10)

        reward = await service.create_reward(1, RewardCreateRequest(type="COINS", amount=5, sub_quest_id=10))

        assert reward.sub_quest_id == 10

    async def test_update_after_payout_is_locked(self, service, mock_quests_repo):
        mock_quests_repo.fetch_reward.return_value = _reward_row(7, "COINS", 5, quest_id=1)
        mock_quests_repo.lock_quest_status.return_value = {"user_id": 1, "paid_out": True}

        with pytest.raises(RewardLockedError):
            await service.update_reward(7, 1, RewardUpdateRequest(amount=500))

        mock_quests_repo.update_reward.assert_not_called()

    async def test_update_validates_merged_reward(self, service, mock_quests_repo):
        mock_quests_repo.fetch_reward.return_value = _reward_row(7, "COINS", 5, quest_id=1)
        mock_quests_repo.lock_quest_status.return_value = {"user_id": 1, "paid_out": False}

        with pytest.raises(InvalidRewardError):
            await service.update_reward(7, 1, RewardUpdateRequest(type="SKILL"))

    async def test_foreign_reward_is_not_found(self, service, mock_quests_repo):
        mock_quests_repo.fetch_reward.return_value = _reward_row(7, "COINS", 5, quest_id=1)
        mock_quests_repo.lock_quest_status.return_value = {"user_id": 2, "paid_out": False}

        with pytest.raises(EntityNotFoundError) as exc_info:
            await service.delete_reward(7, 1)

        assert exc_info.value.context["entity"] == "Reward"
        mock_quests_repo.delete_reward.assert_not_called()

    async def test_get_reward_of_sub_quest_checks_parent_owner(self, service, mock_quests_repo):
        mock_quests_repo.fetch_reward.return_value = _reward_row(7, "COINS", 5, sub_quest_id=10)
        mock_quests_repo.fetch_sub_quest.return_value = _sub_quest_row()
        mock_quests_repo.check_quest_owner.return_value = True

        reward = await service.get_reward(7, 1)

        mock_quests_repo.check_quest_owner.assert_awaited_once_with(1, 1)
        assert reward.id == 7
