"""Unit tests for DailyService."""

import datetime as dt

import pytest
from questline_sdk.daily import (
    ChallengeCreateRequest,
    DailyChallengeCreateRequest,
    DailyRewardCreateRequest,
    DailyRewardUpdateRequest,
    NestedChallengeRequest,
    NestedDailyRewardRequest,
)

from services.daily_service import DailyService, utc_today
from services.exceptions.progression import (
    AlreadyClaimedError,
    AlreadyCompletedError,
    EntityNotFoundError,
    InvalidRewardError,
    NotYetCompletedError,
    RewardLockedError,
)

pytestmark = [
    pytest.mark.domain_progression,
]

NOW = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


def _daily_row(daily_id: int = 1, user_id: int = 1, *, claimed: bool = False) -> dict:
    return {
        "id": daily_id,
        "user_id": user_id,
        "date": NOW.date(),
        "claimed_date": NOW if claimed else None,
    }


def _challenge_row(challenge_id: int = 5, daily_id: int = 1, *, skill: str | None = "focus", completed=False) -> dict:
    return {
        "id": challenge_id,
        "daily_id": daily_id,
        "name": "Meditate",
        "description": None,
        "skill": skill,
        "completed": completed,
        "completed_at": NOW if completed else None,
    }


def _history_row(history_id: int = 3, daily_id: int = 1) -> dict:
    return {"id": history_id, "daily_id": daily_id, "date": NOW, "rewards_claimed": True}


@pytest.fixture
def service(mock_pool, mock_state, mock_daily_repo, mock_users_repo, mock_stats_repo):
    mock_daily_repo.fetch_challenges.return_value = []
    mock_daily_repo.fetch_daily_rewards.return_value = []
    return DailyService(mock_pool, mock_state, mock_daily_repo, mock_users_repo, mock_stats_repo)


class TestCreateDaily:
    async def test_defaults_to_today(self, service, mock_daily_repo, mock_conn):
        mock_daily_repo.create_daily.return_value = _daily_row()

        await service.create_daily(1, DailyChallengeCreateRequest())

        mock_daily_repo.create_daily.assert_awaited_once_with(1, utc_today(), conn=mock_conn)

    async def test_creates_children(self, service, mock_daily_repo, mock_conn):
        mock_daily_repo.create_daily.return_value = _daily_row()
        data = DailyChallengeCreateRequest(
            date=dt.date(2024, 5, 1),
            challenges=[NestedChallengeRequest(name=" Meditate ", skill="focus")],
            rewards=[NestedDailyRewardRequest(type="COINS", amount=20)],
        )

        await service.create_daily(1, data)

        mock_daily_repo.create_challenge.assert_awaited_once_with(1, "Meditate", None, "focus", conn=mock_conn)
        mock_daily_repo.create_daily_reward.assert_awaited_once_with(1, "COINS", 20, conn=mock_conn)

    async def test_negative_reward_rejected(self, service, mock_daily_repo):
        data = DailyChallengeCreateRequest(rewards=[NestedDailyRewardRequest(type="COINS", amount=-5)])

        with pytest.raises(InvalidRewardError):
            await service.create_daily(1, data)

        mock_daily_repo.create_daily.assert_not_called()


class TestGetToday:
    async def test_nothing_planned(self, service, mock_daily_repo):
        mock_daily_repo.fetch_user_dailies.return_value = []

        with pytest.raises(EntityNotFoundError):
            await service.get_today(1)

    async def test_queries_utc_today(self, service, mock_daily_repo):
        mock_daily_repo.fetch_user_dailies.return_value = [_daily_row()]

        daily = await service.get_today(1)

        mock_daily_repo.fetch_user_dailies.assert_awaited_once_with(1, date=utc_today())
        assert daily.id == 1


class TestClaimDaily:
    """Daily claim requires every challenge to be completed and pays once."""

    async def test_pays_rewards_and_records_history(
        self, service, mock_daily_repo, mock_users_repo, mock_conn, progress_row
    ):
        claimed = _daily_row(claimed=True)
        mock_daily_repo.lock_daily_for_claim.return_value = {"claimed_date": None}
        mock_daily_repo.fetch_daily_status.return_value = {"claimed_date": None, "has_pending": False}
        mock_daily_repo.mark_daily_claimed.return_value = claimed
        mock_daily_repo.fetch_daily_rewards.return_value = [
            {"id": 1, "daily_id": 1, "type": "COINS", "amount": 30},
            {"id": 2, "daily_id": 1, "type": "EXPERIENCE", "amount": 15},
            {"id": 3, "daily_id": 1, "type": "SKILL", "amount": 15},
        ]
        mock_daily_repo.create_history.return_value = _history_row()
        mock_users_repo.increment_progress.return_value = progress_row(1, coins=1030, exp=65)

        result = await service.claim_daily(1, 1)

        mock_daily_repo.lock_daily_for_claim.assert_awaited_once_with(1, 1, conn=mock_conn)
        mock_users_repo.increment_progress.assert_awaited_once_with(1, conn=mock_conn, coins=30, exp=15)
        mock_daily_repo.create_history.assert_awaited_once_with(1, claimed["claimed_date"], True, conn=mock_conn)
        assert result.progress.coins == 1030
        assert result.history.rewards_claimed is True
        assert result.daily_challenge.claimed_date == NOW

    async def test_pending_challenge_blocks_claim(self, service, mock_daily_repo, mock_users_repo):
        mock_daily_repo.lock_daily_for_claim.return_value = {"claimed_date": None}
        mock_daily_repo.fetch_daily_status.return_value = {"claimed_date": None, "has_pending": True}

        with pytest.raises(NotYetCompletedError):
            await service.claim_daily(1, 1)

        mock_daily_repo.mark_daily_claimed.assert_not_called()
        mock_users_repo.increment_progress.assert_not_called()
        mock_daily_repo.create_history.assert_not_called()

    async def test_pending_check_runs_after_lock(self, service, mock_daily_repo, mocker):
        """The pending-challenge check must not be read before the row lock is held."""
        calls = mocker.MagicMock()
        calls.attach_mock(mock_daily_repo.lock_daily_for_claim, "lock")
        calls.attach_mock(mock_daily_repo.fetch_daily_status, "status")
        mock_daily_repo.lock_daily_for_claim.return_value = {"claimed_date": None}
        mock_daily_repo.fetch_daily_status.return_value = {"claimed_date": None, "has_pending": True}

        with pytest.raises(NotYetCompletedError):
            await service.claim_daily(1, 1)

        assert [c[0] for c in calls.mock_calls] == ["lock", "status"]

    async def test_second_claim_rejected(self, service, mock_daily_repo, mock_users_repo):
        mock_daily_repo.lock_daily_for_claim.return_value = {"claimed_date": NOW}

        with pytest.raises(AlreadyClaimedError):
            await service.claim_daily(1, 1)

        mock_daily_repo.mark_daily_claimed.assert_not_called()
        mock_users_repo.increment_progress.assert_not_called()

    async def test_foreign_daily(self, service, mock_daily_repo):
        mock_daily_repo.lock_daily_for_claim.return_value = None

        with pytest.raises(EntityNotFoundError):
            await service.claim_daily(1, 2)

        mock_daily_repo.fetch_daily_status.assert_not_called()


class TestCreateChallenge:
    async def test_adds_pending_challenge(self, service, mock_daily_repo, mock_conn):
        mock_daily_repo.lock_daily_status.return_value = {"user_id": 1, "paid_out": False}
        mock_daily_repo.create_challenge.return_value = _challenge_row()

        challenge = await service.create_challenge(1, ChallengeCreateRequest(daily_id=1, name=" Meditate "))

        mock_daily_repo.create_challenge.assert_awaited_once_with(1, "Meditate", None, None, conn=mock_conn)
        assert challenge.completed is False

    async def test_claimed_day_is_locked(self, service, mock_daily_repo):
        mock_daily_repo.lock_daily_status.return_value = {"user_id": 1, "paid_out": True}

        with pytest.raises(RewardLockedError):
            await service.create_challenge(1, ChallengeCreateRequest(daily_id=1, name="Stretch"))

        mock_daily_repo.create_challenge.assert_not_called()

    async def test_foreign_day(self, service, mock_daily_repo):
        mock_daily_repo.lock_daily_status.return_value = {"user_id": 2, "paid_out": False}

        with pytest.raises(EntityNotFoundError):
            await service.create_challenge(1, ChallengeCreateRequest(daily_id=1, name="Stretch"))

        mock_daily_repo.create_challenge.assert_not_called()


class TestCompleteChallenge:
    async def test_credits_skill(
        self, service, mock_daily_repo, mock_users_repo, mock_stats_repo, mock_conn, progress_row, stat_row
    ):
        mock_daily_repo.mark_challenge_completed.return_value = _challenge_row(completed=True)
        mock_users_repo.fetch_progress.return_value = progress_row(1)
        mock_stats_repo.add_skill_value.return_value = stat_row("focus", 10)

        result = await service.complete_challenge(5, 1)

        mock_stats_repo.add_skill_value.assert_awaited_once_with(1, "focus", 10, conn=mock_conn)
        mock_users_repo.increment_progress.assert_not_called()
        assert result.challenge.completed is True
        assert result.stat.value == 10

    async def test_without_skill(self, service, mock_daily_repo, mock_users_repo, mock_stats_repo, progress_row):
        mock_daily_repo.mark_challenge_completed.return_value = _challenge_row(skill=None, completed=True)
        mock_users_repo.fetch_progress.return_value = progress_row(1)

        result = await service.complete_challenge(5, 1)

        mock_stats_repo.add_skill_value.assert_not_called()
        assert result.stat is None

    async def test_twice(self, service, mock_daily_repo, mock_stats_repo):
        mock_daily_repo.mark_challenge_completed.return_value = None
        mock_daily_repo.fetch_challenge_status.return_value = {"completed": True}

        with pytest.raises(AlreadyCompletedError):
            await service.complete_challenge(5, 1)

        mock_stats_repo.add_skill_value.assert_not_called()


class TestDailyRewards:
    async def test_create_on_claimed_day_is_locked(self, service, mock_daily_repo):
        mock_daily_repo.lock_daily_status.return_value = {"user_id": 1, "paid_out": True}

        with pytest.raises(RewardLockedError):
            await service.create_daily_reward(1, DailyRewardCreateRequest(daily_id=1, type="COINS", amount=5))

        mock_daily_repo.create_daily_reward.assert_not_called()

    async def test_update_of_foreign_reward_is_not_found(self, service, mock_daily_repo):
        mock_daily_repo.fetch_daily_reward.return_value = {"id": 4, "daily_id": 1, "type": "COINS", "amount": 5}
        mock_daily_repo.lock_daily_status.return_value = {"user_id": 2, "paid_out": False}

        with pytest.raises(EntityNotFoundError) as exc_info:
            await service.update_daily_reward(4, 1, DailyRewardUpdateRequest(amount=50))

        assert exc_info.value.context["entity"] == "DailyReward"
        mock_daily_repo.update_daily_reward.assert_not_called()

    async def test_update_rejects_negative_amount(self, service, mock_daily_repo):
        with pytest.raises(InvalidRewardError):
            await service.update_daily_reward(4, 1, DailyRewardUpdateRequest(amount=-1))

        mock_daily_repo.fetch_daily_reward.assert_not_called()
