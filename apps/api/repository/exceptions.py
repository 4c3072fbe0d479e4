"""Database errors raised by the Questline repositories.

Repositories convert asyncpg integrity errors into these so services never
import asyncpg. A service decides what a violated constraint means for the
caller (unknown user, duplicate skill, overdrawn balance).
"""

from __future__ import annotations


class RepositoryError(Exception):
    """Base exception for repository layer errors."""

    def __init__(self, message: str, **context: object) -> None:
        self.message = message
        self.context = context
        super().__init__(message)


class ConstraintViolationError(RepositoryError):
    """A table constraint rejected a write.

    Attributes:
        constraint_name: Postgres name of the constraint, or "unknown".
        table: Schema-qualified table, e.g. "core.tasks".
        detail: Raw driver message, kept for logs only.
    """

    kind = "Constraint"

    def __init__(self, constraint_name: str, table: str, detail: str | None = None) -> None:
        super().__init__(
            f"{self.kind} '{constraint_name}' failed on {table}",
            constraint_name=constraint_name,
            table=table,
            detail=detail,
        )
        self.constraint_name = constraint_name
        self.table = table
        self.detail = detail


class UniqueConstraintViolationError(ConstraintViolationError):
    """Duplicate email, skill name or token hash."""

    kind = "Unique constraint"


class ForeignKeyViolationError(ConstraintViolationError):
    """Write referenced a user, quest, daily or item that does not exist."""

    kind = "Foreign key"


class CheckConstraintViolationError(ConstraintViolationError):
    """Write broke a CHECK rule such as non-negative coins or a single reward owner."""

    kind = "Check constraint"


def extract_constraint_name(error: Exception) -> str | None:
    """Return the constraint name asyncpg attached to an integrity error, if any."""
    return getattr(error, "constraint_name", None)
