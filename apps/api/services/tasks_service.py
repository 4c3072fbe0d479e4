"""Service layer for task business logic."""

from __future__ import annotations

import datetime as dt
import logging

import msgspec
from asyncpg import Pool
from litestar.datastructures import State
from questline_sdk.tasks import TaskCompletionResponse, TaskCreateRequest, TaskResponse, TaskUpdateRequest

from repository.exceptions import ForeignKeyViolationError
from repository.stats_repository import StatsRepository
from repository.tasks_repository import TasksRepository
from repository.users_repository import UsersRepository
from utilities.retry import retry_on_conflict

from .base import BaseService
from .exceptions.progression import AlreadyCompletedError, EntityNotFoundError, ProgressionValidationError
from .exceptions.users import UserNotFoundError
from .progression import ProgressionApplier
from .rewards import task_completion_effects

log = logging.getLogger(__name__)


def _require_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ProgressionValidationError("name", "Name is required.")
    return name


class TasksService(BaseService):
    """Service for tasks and their completion payout."""

    def __init__(
        self,
        pool: Pool,
        state: State,
        tasks_repo: TasksRepository,
        users_repo: UsersRepository,
        stats_repo: StatsRepository,
    ) -> None:
        """Initialize service.

        Args:
            pool: AsyncPG connection pool.
            state: Application state.
            tasks_repo: Tasks repository instance.
            users_repo: Users repository instance.
            stats_repo: Stats repository instance.
        """
        super().__init__(pool, state)
        self._tasks_repo = tasks_repo
        self._progression = ProgressionApplier(users_repo, stats_repo)

    async def create_task(self, user_id: int, data: TaskCreateRequest) -> TaskResponse:
        """Create a pending task for a user.

        Raises:
            ProgressionValidationError: If the name is blank.
            UserNotFoundError: If the user does not exist.
        """
        name = _require_name(data.name)
        try:
            row = await self._tasks_repo.create_task(user_id, name)
        except ForeignKeyViolationError as e:
            raise UserNotFoundError(user_id) from e
        return msgspec.convert(row, TaskResponse)

    async def list_tasks(self, user_id: int, created_on: dt.date | None = None) -> list[TaskResponse]:
        """List the tasks of a user, optionally only those created on a given day."""
        rows = await self._tasks_repo.fetch_user_tasks(user_id, created_on=created_on)
        return msgspec.convert(rows, list[TaskResponse])

    async def get_task(self, task_id: int, user_id: int) -> TaskResponse:
        """Get a task owned by the user.

        Raises:
            EntityNotFoundError: If the task is missing or owned by someone else.
        """
        row = await self._tasks_repo.fetch_task(task_id)
        if not row or row["user_id"] != user_id:
            raise EntityNotFoundError("Task", task_id)
        return msgspec.convert(row, TaskResponse)

    async def update_task(self, task_id: int, user_id: int, data: TaskUpdateRequest) -> TaskResponse:
        """Rename a task owned by the user."""
        row = await self._tasks_repo.rename_task(task_id, user_id, _require_name(data.name))
        if not row:
            raise EntityNotFoundError("Task", task_id)
        return msgspec.convert(row, TaskResponse)

    async def delete_task(self, task_id: int, user_id: int) -> None:
        """Delete a task owned by the user."""
        if not await self._tasks_repo.delete_task(task_id, user_id):
            raise EntityNotFoundError("Task", task_id)

    @retry_on_conflict()
    async def complete_task(self, task_id: int, user_id: int) -> TaskCompletionResponse:
        """Complete a task and grant its fixed experience payout.

        Args:
            task_id: Task to complete.
            user_id: Authenticated owner.

        Returns:
            The completed task and the owner's balances.

        Raises:
            EntityNotFoundError: If the task is missing or owned by someone else.
            AlreadyCompletedError: If the task was already completed.
        """
        async with self._pool.acquire() as conn, conn.transaction():
            row = await self._tasks_repo.mark_task_completed(task_id, user_id, conn=conn)
            if row is None:
                status = await self._tasks_repo.fetch_task_status(task_id, user_id, conn=conn)
                if status is None:
                    raise EntityNotFoundError("Task", task_id)
                raise AlreadyCompletedError("Task", task_id)

            applied = await self._progression.apply(user_id, task_completion_effects(), conn=conn)

        log.info("User %s completed task %s", user_id, task_id)
        return TaskCompletionResponse(task=msgspec.convert(row, TaskResponse), progress=applied.progress)


async def provide_tasks_service(state: State) -> TasksService:
    """Litestar DI provider for tasks service.

    Args:
        state: Application state.

    Returns:
        TasksService instance.
    """
    return TasksService(
        pool=state.db_pool,
        state=state,
        tasks_repo=TasksRepository(state.db_pool),
        users_repo=UsersRepository(state.db_pool),
        stats_repo=StatsRepository(state.db_pool),
    )
