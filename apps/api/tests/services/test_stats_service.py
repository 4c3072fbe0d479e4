"""Unit tests for StatsService."""

import pytest
from questline_sdk.stats import StatCreateRequest, StatIncrementRequest, StatUpdateRequest

from repository.exceptions import UniqueConstraintViolationError
from services.exceptions.progression import DuplicateSkillError, EntityNotFoundError, ProgressionValidationError
from services.stats_service import StatsService

pytestmark = [
    pytest.mark.domain_stats,
]


@pytest.fixture
def service(mock_pool, mock_state, mock_stats_repo):
    return StatsService(mock_pool, mock_state, mock_stats_repo)


class TestCreateStat:
    async def test_strips_skill(self, service, mock_stats_repo, stat_row):
        mock_stats_repo.create_stat.return_value = stat_row("focus", 0)

        stat = await service.create_stat(1, StatCreateRequest(skill=" focus "))

        mock_stats_repo.create_stat.assert_awaited_once_with(1, "focus", 0)
        assert stat.level == 1

    async def test_duplicate_skill(self, service, mock_stats_repo):
        mock_stats_repo.create_stat.side_effect = UniqueConstraintViolationError(
            "stats_user_id_skill_key", "core.stats"
        )

        with pytest.raises(DuplicateSkillError) as exc_info:
            await service.create_stat(1, StatCreateRequest(skill="focus"))

        assert exc_info.value.context["skill"] == "focus"

    async def test_negative_value(self, service, mock_stats_repo):
        with pytest.raises(ProgressionValidationError) as exc_info:
            await service.create_stat(1, StatCreateRequest(skill="focus", value=-1))

        assert exc_info.value.context["field"] == "value"
        mock_stats_repo.create_stat.assert_not_called()

    async def test_blank_skill(self, service, mock_stats_repo):
        with pytest.raises(ProgressionValidationError):
            await service.create_stat(1, StatCreateRequest(skill="  "))


class TestReadStats:
    async def test_foreign_stat_is_not_found(self, service, mock_stats_repo, stat_row):
        mock_stats_repo.fetch_stat.return_value = stat_row(user_id=2)

        with pytest.raises(EntityNotFoundError):
            await service.get_stat(1, 1)

    async def test_missing_skill(self, service, mock_stats_repo):
        mock_stats_repo.fetch_user_stat_by_skill.return_value = None

        with pytest.raises(EntityNotFoundError) as exc_info:
            await service.get_stat_by_skill(1, "art")

        assert exc_info.value.context["entity_id"] == "art"


class TestUpdateStat:
    async def test_rename_to_existing_skill(self, service, mock_stats_repo):
        mock_stats_repo.rename_skill.side_effect = UniqueConstraintViolationError(
            "stats_user_id_skill_key", "core.stats"
        )

        with pytest.raises(DuplicateSkillError):
            await service.update_stat(1, 1, StatUpdateRequest(skill="art"))

    async def test_rename_missing_stat(self, service, mock_stats_repo):
        mock_stats_repo.rename_skill.return_value = None

        with pytest.raises(EntityNotFoundError):
            await service.update_stat(1, 1, StatUpdateRequest(skill="art"))


class TestIncrementStat:
    async def test_default_increment_is_one(self, service, mock_stats_repo, stat_row):
        mock_stats_repo.increment_stat.return_value = stat_row("focus", 100)

        stat = await service.increment_stat(1, 1, StatIncrementRequest())

        mock_stats_repo.increment_stat.assert_awaited_once_with(1, 1, 1)
        assert stat.level == 2

    async def test_missing_stat(self, service, mock_stats_repo):
        mock_stats_repo.increment_stat.return_value = None

        with pytest.raises(EntityNotFoundError):
            await service.increment_stat(1, 1, StatIncrementRequest(amount=5))

    @pytest.mark.parametrize("amount", [0, -500])
    async def test_non_positive_amount_rejected(self, service, mock_stats_repo, amount):
        with pytest.raises(ProgressionValidationError) as exc_info:
            await service.increment_stat(1, 1, StatIncrementRequest(amount=amount))

        assert exc_info.value.context["field"] == "amount"
        mock_stats_repo.increment_stat.assert_not_called()
