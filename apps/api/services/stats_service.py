"""Service layer for skill stats."""

from __future__ import annotations

import logging

import msgspec
from asyncpg import Pool
from litestar.datastructures import State
from questline_sdk.stats import StatCreateRequest, StatIncrementRequest, StatResponse, StatUpdateRequest

from repository.exceptions import UniqueConstraintViolationError
from repository.stats_repository import StatsRepository
from utilities.retry import retry_on_conflict

from .base import BaseService
from .exceptions.progression import DuplicateSkillError, EntityNotFoundError, ProgressionValidationError

log = logging.getLogger(__name__)


def _require_skill(skill: str) -> str:
    skill = skill.strip()
    if not skill:
        raise ProgressionValidationError("skill", "Skill is required.")
    return skill


class StatsService(BaseService):
    """Service for per-user, per-skill stats."""

    def __init__(self, pool: Pool, state: State, stats_repo: StatsRepository) -> None:
        """Initialize service.

        Args:
            pool: AsyncPG connection pool.
            state: Application state.
            stats_repo: Stats repository instance.
        """
        super().__init__(pool, state)
        self._stats_repo = stats_repo

    async def create_stat(self, user_id: int, data: StatCreateRequest) -> StatResponse:
        """Create a stat for a skill the user does not have yet.

        Raises:
            ProgressionValidationError: If the skill is blank or the value negative.
            DuplicateSkillError: If the user already has this skill.
        """
        skill = _require_skill(data.skill)
        if data.value < 0:
            raise ProgressionValidationError("value", "Value cannot be negative.")
        try:
            row = await self._stats_repo.create_stat(user_id, skill, data.value)
        except UniqueConstraintViolationError as e:
            raise DuplicateSkillError(skill) from e
        return msgspec.convert(row, StatResponse)

    async def list_stats(self, user_id: int) -> list[StatResponse]:
        """List the stats of a user ordered by skill."""
        return msgspec.convert(await self._stats_repo.fetch_user_stats(user_id), list[StatResponse])

    async def get_stat(self, stat_id: int, user_id: int) -> StatResponse:
        """Get a stat owned by the user."""
        row = await self._stats_repo.fetch_stat(stat_id)
        if not row or row["user_id"] != user_id:
            raise EntityNotFoundError("Stat", stat_id)
        return msgspec.convert(row, StatResponse)

    async def get_stat_by_skill(self, user_id: int, skill: str) -> StatResponse:
        """Get the stat of a user for a skill."""
        row = await self._stats_repo.fetch_user_stat_by_skill(user_id, skill)
        if not row:
            raise EntityNotFoundError("Stat", skill)
        return msgspec.convert(row, StatResponse)

    async def update_stat(self, stat_id: int, user_id: int, data: StatUpdateRequest) -> StatResponse:
        """Rename the skill of a stat.

        Raises:
            DuplicateSkillError: If the user already has the new skill.
        """
        skill = _require_skill(data.skill)
        try:
            row = await self._stats_repo.rename_skill(stat_id, user_id, skill)
        except UniqueConstraintViolationError as e:
            raise DuplicateSkillError(skill) from e
        if not row:
            raise EntityNotFoundError("Stat", stat_id)
        return msgspec.convert(row, StatResponse)

    async def delete_stat(self, stat_id: int, user_id: int) -> None:
        """Delete a stat owned by the user."""
        if not await self._stats_repo.delete_stat(stat_id, user_id):
            raise EntityNotFoundError("Stat", stat_id)

    @retry_on_conflict()
    async def increment_stat(self, stat_id: int, user_id: int, data: StatIncrementRequest) -> StatResponse:
        """Atomically add to a stat and recompute its level.

        Raises:
            ProgressionValidationError: If the amount is not positive.
            EntityNotFoundError: If the stat is missing or owned by someone else.
        """
        if data.amount < 1:
            raise ProgressionValidationError("amount", "Amount must be at least 1.")
        row = await self._stats_repo.increment_stat(stat_id, user_id, data.amount)
        if not row:
            raise EntityNotFoundError("Stat", stat_id)
        log.debug("Stat %s of user %s is now %s (level %s)", stat_id, user_id, row["value"], row["level"])
        return msgspec.convert(row, StatResponse)


async def provide_stats_service(state: State) -> StatsService:
    """Litestar DI provider for stats service.

    Args:
        state: Application state.

    Returns:
        StatsService instance.
    """
    return StatsService(pool=state.db_pool, state=state, stats_repo=StatsRepository(state.db_pool))
