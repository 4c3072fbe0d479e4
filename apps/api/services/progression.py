"""Applies resolved reward effects to user balances and skill stats."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import msgspec
from asyncpg import Connection
from questline_sdk.stats import StatResponse
from questline_sdk.users import UserProgress

from repository.stats_repository import StatsRepository
from repository.users_repository import UsersRepository

from .exceptions.users import UserNotFoundError
from .rewards import Effect, EffectTarget, merge_effects

log = logging.getLogger(__name__)


class AppliedProgress(msgspec.Struct):
    """Balances and touched stats after a completion event."""

    progress: UserProgress
    stats: list[StatResponse]


def to_user_progress(row: dict) -> UserProgress:
    """Build a UserProgress from a progression row keyed by ``id``."""
    return UserProgress(
        user_id=row["id"],
        coins=row["coins"],
        exp=row["exp"],
        health=row["health"],
        level=row["level"],
    )


class ProgressionApplier:
    """Writes effects for one user on the caller's connection.

    Balance effects are merged so the user row is updated once. Each skill
    effect goes through the atomic stat upsert.
    """

    def __init__(self, users_repo: UsersRepository, stats_repo: StatsRepository) -> None:
        """Initialize applier.

        Args:
            users_repo: Users repository instance.
            stats_repo: Stats repository instance.
        """
        self._users_repo = users_repo
        self._stats_repo = stats_repo

    async def apply(self, user_id: int, effects: Iterable[Effect], *, conn: Connection) -> AppliedProgress:
        """Apply effects inside the caller's transaction.

        Args:
            user_id: User receiving the effects.
            effects: Effects to apply.
            conn: Connection with an open transaction.

        Returns:
            The user's balances and every stat that changed.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        merged = merge_effects(effects)
        balances = {e.field: e.delta for e in merged if e.target is EffectTarget.USER}

        if balances:
            row = await self._users_repo.increment_progress(user_id, conn=conn, **balances)
        else:
            row = await self._users_repo.fetch_progress(user_id, conn=conn)
        if row is None:
            raise UserNotFoundError(user_id)

        stats = []
        for effect in merged:
            if effect.target is not EffectTarget.STAT:
                continue
            stat = await self._stats_repo.add_skill_value(user_id, effect.field, effect.delta, conn=conn)
            stats.append(msgspec.convert(stat, StatResponse))

        if merged:
            log.debug("Applied %d effects for user %s", len(merged), user_id)
        return AppliedProgress(progress=to_user_progress(row), stats=stats)
