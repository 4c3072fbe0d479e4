"""Task models."""

from __future__ import annotations

import datetime as dt

from msgspec import Struct

from .users import UserProgress

__all__ = (
    "TaskCompletionResponse",
    "TaskCreateRequest",
    "TaskResponse",
    "TaskUpdateRequest",
)


class TaskCreateRequest(Struct):
    """Payload for creating a task owned by the current user."""

    name: str


class TaskUpdateRequest(Struct):
    """Payload for renaming a task."""

    name: str


class TaskResponse(Struct):
    """A single task.

    Attributes:
        id: Task ID.
        user_id: Owner.
        name: Task name.
        completed: Whether the task has been completed.
        completed_at: When the task was completed.
        created_at: When the task was created.
    """

    id: int
    user_id: int
    name: str
    completed: bool
    completed_at: dt.datetime | None
    created_at: dt.datetime


class TaskCompletionResponse(Struct):
    """Result of completing a task.

    Attributes:
        task: The completed task.
        progress: Owner progression after the experience bonus.
    """

    task: TaskResponse
    progress: UserProgress
