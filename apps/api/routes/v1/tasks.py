"""Tasks v1 controller."""

from __future__ import annotations

import datetime as dt
from typing import Annotated

import litestar
from litestar import Request
from litestar.datastructures import State
from litestar.di import Provide
from litestar.params import Body
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from questline_sdk.common import ApiResponse
from questline_sdk.tasks import TaskCompletionResponse, TaskCreateRequest, TaskResponse, TaskUpdateRequest

from middleware.auth import AuthUser
from services.tasks_service import TasksService, provide_tasks_service
from utilities.errors import DomainError
from utilities.responses import ensure_same_user, ok, to_http_exception


class TasksController(litestar.Controller):
    """Tasks v1 controller."""

    tags = ["Tasks"]
    path = "/tasks"
    dependencies = {"svc": Provide(provide_tasks_service)}

    @litestar.post(
        path="/",
        summary="Create Task",
        description="Create a task owned by the authenticated user.",
        status_code=HTTP_201_CREATED,
    )
    async def create_task(
        self,
        request: Request[AuthUser, str, State],
        data: Annotated[TaskCreateRequest, Body(title="Task")],
        svc: TasksService,
    ) -> ApiResponse[TaskResponse]:
        """Create a task.

        Args:
            request: Authenticated request.
            data: Task payload.
            svc: Tasks service.

        Returns:
            The created task.
        """
        try:
            task = await svc.create_task(request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(task, "Task created successfully.", HTTP_201_CREATED)

    @litestar.get(
        path="/user/{user_id:int}",
        summary="List User Tasks",
        description="List every task of a user, newest first.",
    )
    async def list_user_tasks(
        self,
        request: Request[AuthUser, str, State],
        user_id: int,
        svc: TasksService,
    ) -> ApiResponse[list[TaskResponse]]:
        """List a user's tasks.

        Args:
            request: Authenticated request.
            user_id: Owner, must be the authenticated user.
            svc: Tasks service.

        Returns:
            The tasks.
        """
        ensure_same_user(request.user.id, user_id)
        return ok(await svc.list_tasks(user_id))

    @litestar.get(
        path="/date/{date:date}/user/{user_id:int}",
        summary="List User Tasks By Date",
        description="List the tasks a user created on the given day.",
    )
    async def list_user_tasks_by_date(
        self,
        request: Request[AuthUser, str, State],
        date: dt.date,
        user_id: int,
        svc: TasksService,
    ) -> ApiResponse[list[TaskResponse]]:
        """List a user's tasks created on one day.

        Args:
            request: Authenticated request.
            date: Creation day.
            user_id: Owner, must be the authenticated user.
            svc: Tasks service.

        Returns:
            The tasks.
        """
        ensure_same_user(request.user.id, user_id)
        return ok(await svc.list_tasks(user_id, created_on=date))

    @litestar.get(path="/{task_id:int}", summary="Get Task", description="Fetch one task.")
    async def get_task(
        self,
        request: Request[AuthUser, str, State],
        task_id: int,
        svc: TasksService,
    ) -> ApiResponse[TaskResponse]:
        """Get a task."""
        try:
            return ok(await svc.get_task(task_id, request.user.id))
        except DomainError as e:
            raise to_http_exception(e) from e

    @litestar.put(path="/{task_id:int}", summary="Update Task", description="Rename a task.")
    async def update_task(
        self,
        request: Request[AuthUser, str, State],
        task_id: int,
        data: Annotated[TaskUpdateRequest, Body(title="Task changes")],
        svc: TasksService,
    ) -> ApiResponse[TaskResponse]:
        """Update a task."""
        try:
            task = await svc.update_task(task_id, request.user.id, data)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(task, "Task updated successfully.")

    @litestar.delete(
        path="/{task_id:int}",
        summary="Delete Task",
        description="Delete a task.",
        status_code=HTTP_200_OK,
    )
    async def delete_task(
        self,
        request: Request[AuthUser, str, State],
        task_id: int,
        svc: TasksService,
    ) -> ApiResponse[None]:
        """Delete a task."""
        try:
            await svc.delete_task(task_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(None, "Task deleted successfully.")

    @litestar.patch(
        path="/{task_id:int}/complete",
        summary="Complete Task",
        description="Mark a task completed and grant the completion experience. A task completes once.",
    )
    async def complete_task(
        self,
        request: Request[AuthUser, str, State],
        task_id: int,
        svc: TasksService,
    ) -> ApiResponse[TaskCompletionResponse]:
        """Complete a task.

        Args:
            request: Authenticated request.
            task_id: Task to complete.
            svc: Tasks service.

        Returns:
            The completed task and the owner's new progression.

        Raises:
            CustomHTTPException: 404 if the task is missing, 400 if it was already completed.
        """
        try:
            result = await svc.complete_task(task_id, request.user.id)
        except DomainError as e:
            raise to_http_exception(e) from e
        return ok(result, "Task completed successfully.")
