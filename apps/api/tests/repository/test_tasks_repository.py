"""Tests for TasksRepository."""

import datetime as dt

import pytest

from repository.tasks_repository import TasksRepository

pytestmark = [
    pytest.mark.integration,
    pytest.mark.domain_progression,
]


@pytest.fixture
async def repository(asyncpg_pool):
    return TasksRepository(asyncpg_pool)


class TestMarkTaskCompleted:
    async def test_completed_once(self, repository, create_test_user):
        user_id = await create_test_user()
        task = await repository.create_task(user_id, "Read")

        first = await repository.mark_task_completed(task["id"], user_id)

        assert first["completed"] is True
        assert first["completed_at"] is not None
        assert await repository.mark_task_completed(task["id"], user_id) is None

    async def test_other_owner_cannot_complete(self, repository, create_test_user):
        owner = await create_test_user()
        task = await repository.create_task(owner, "Read")

        assert await repository.mark_task_completed(task["id"], await create_test_user()) is None
        assert (await repository.fetch_task_status(task["id"], owner))["completed"] is False


class TestFetchUserTasks:
    async def test_filters_by_creation_day(self, repository, create_test_user):
        user_id = await create_test_user()
        task = await repository.create_task(user_id, "Today")

        today = await repository.fetch_user_tasks(user_id, created_on=task["created_at"].date())
        yesterday = await repository.fetch_user_tasks(
            user_id, created_on=task["created_at"].date() - dt.timedelta(days=1)
        )

        assert [t["id"] for t in today] == [task["id"]]
        assert yesterday == []
