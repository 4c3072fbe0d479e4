"""Unit tests for TasksService."""

import datetime as dt

import pytest
from questline_sdk.tasks import TaskCreateRequest, TaskUpdateRequest

from repository.exceptions import ForeignKeyViolationError
from services.exceptions.progression import AlreadyCompletedError, EntityNotFoundError, ProgressionValidationError
from services.exceptions.users import UserNotFoundError
from services.rewards import TASK_COMPLETION_EXP
from services.tasks_service import TasksService

pytestmark = [
    pytest.mark.domain_progression,
]

NOW = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


def _task_row(task_id: int = 1, user_id: int = 1, *, completed: bool = False) -> dict:
    return {
        "id": task_id,
        "user_id": user_id,
        "name": "Read a chapter",
        "completed": completed,
        "completed_at": NOW if completed else None,
        "created_at": NOW,
    }


@pytest.fixture
def service(mock_pool, mock_state, mock_tasks_repo, mock_users_repo, mock_stats_repo):
    return TasksService(mock_pool, mock_state, mock_tasks_repo, mock_users_repo, mock_stats_repo)


class TestCreateTask:
    async def test_strips_name(self, service, mock_tasks_repo):
        mock_tasks_repo.create_task.return_value = _task_row()

        task = await service.create_task(1, TaskCreateRequest(name="  Read a chapter  "))

        mock_tasks_repo.create_task.assert_awaited_once_with(1, "Read a chapter")
        assert task.completed is False

    async def test_blank_name_rejected(self, service, mock_tasks_repo):
        with pytest.raises(ProgressionValidationError) as exc_info:
            await service.create_task(1, TaskCreateRequest(name="   "))

        assert exc_info.value.context["field"] == "name"
        mock_tasks_repo.create_task.assert_not_called()

    async def test_unknown_user(self, service, mock_tasks_repo):
        mock_tasks_repo.create_task.side_effect = ForeignKeyViolationError("tasks_user_id_fkey", "core.tasks")

        with pytest.raises(UserNotFoundError):
            await service.create_task(42, TaskCreateRequest(name="Run"))


class TestTaskOwnership:
    async def test_get_foreign_task_is_not_found(self, service, mock_tasks_repo):
        mock_tasks_repo.fetch_task.return_value = _task_row(user_id=2)

        with pytest.raises(EntityNotFoundError):
            await service.get_task(1, user_id=1)

    async def test_update_missing_task(self, service, mock_tasks_repo):
        mock_tasks_repo.rename_task.return_value = None

        with pytest.raises(EntityNotFoundError):
            await service.update_task(1, 1, TaskUpdateRequest(name="New"))

    async def test_delete_missing_task(self, service, mock_tasks_repo):
        mock_tasks_repo.delete_task.return_value = False

        with pytest.raises(EntityNotFoundError):
            await service.delete_task(1, 1)


class TestCompleteTask:
    """Task completion state machine."""

    async def test_first_completion_grants_experience(
        self, service, mock_tasks_repo, mock_users_repo, mock_conn, progress_row
    ):
        mock_tasks_repo.mark_task_completed.return_value = _task_row(completed=True)
        mock_users_repo.increment_progress.return_value = progress_row(1, exp=60)

        result = await service.complete_task(1, 1)

        mock_users_repo.increment_progress.assert_awaited_once_with(1, conn=mock_conn, exp=TASK_COMPLETION_EXP)
        assert result.task.completed is True
        assert result.progress.exp == 60

    async def test_second_completion_is_rejected_without_payout(self, service, mock_tasks_repo, mock_users_repo):
        mock_tasks_repo.mark_task_completed.return_value = None
        mock_tasks_repo.fetch_task_status.return_value = {"completed": True}

        with pytest.raises(AlreadyCompletedError):
            await service.complete_task(1, 1)

        mock_users_repo.increment_progress.assert_not_called()

    async def test_missing_or_foreign_task(self, service, mock_tasks_repo, mock_users_repo):
        mock_tasks_repo.mark_task_completed.return_value = None
        mock_tasks_repo.fetch_task_status.return_value = None

        with pytest.raises(EntityNotFoundError):
            await service.complete_task(1, 1)

        mock_users_repo.increment_progress.assert_not_called()

    async def test_concurrent_completions_pay_once(
        self, service, mock_tasks_repo, mock_users_repo, progress_row
    ):
        """Only the caller whose conditional update matched gets the payout."""
        mock_tasks_repo.mark_task_completed.side_effect = [_task_row(completed=True), None]
        mock_tasks_repo.fetch_task_status.return_value = {"completed": True}
        mock_users_repo.increment_progress.return_value = progress_row(1, exp=60)

        await service.complete_task(1, 1)
        with pytest.raises(AlreadyCompletedError):
            await service.complete_task(1, 1)

        assert mock_users_repo.increment_progress.await_count == 1
