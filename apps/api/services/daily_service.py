"""Service layer for daily challenges, their challenges, rewards and history."""

from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict

import msgspec
from asyncpg import Connection, Pool
from litestar.datastructures import State
from questline_sdk.daily import (
    ChallengeCompletionResponse,
    ChallengeCreateRequest,
    ChallengeHistoryCreateRequest,
    ChallengeHistoryResponse,
    ChallengeHistoryUpdateRequest,
    ChallengeResponse,
    ChallengeUpdateRequest,
    DailyChallengeCreateRequest,
    DailyChallengeResponse,
    DailyChallengeUpdateRequest,
    DailyClaimResponse,
    DailyRewardCreateRequest,
    DailyRewardResponse,
    DailyRewardUpdateRequest,
)

from repository.daily_repository import DailyRepository
from repository.exceptions import ForeignKeyViolationError
from repository.stats_repository import StatsRepository
from repository.users_repository import UsersRepository
from utilities.retry import retry_on_conflict

from .base import BaseService
from .exceptions.progression import (
    AlreadyClaimedError,
    AlreadyCompletedError,
    EntityNotFoundError,
    InvalidRewardError,
    NotYetCompletedError,
    ProgressionValidationError,
    RewardLockedError,
)
from .exceptions.users import UserNotFoundError
from .progression import ProgressionApplier
from .rewards import challenge_completion_effects, resolve_rewards

log = logging.getLogger(__name__)


def utc_today() -> dt.date:
    """Current calendar day in UTC."""
    return dt.datetime.now(dt.timezone.utc).date()


def _require_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise ProgressionValidationError("name", "Name is required.")
    return name


def _validate_amount(amount: int) -> None:
    if amount < 0:
        raise InvalidRewardError("Reward amount cannot be negative.", field="amount")


class DailyService(BaseService):
    """Service for daily challenges.

    Completing a challenge pays its skill points at once. The daily rewards
    are paid by a claim that requires every challenge of the day to be done.
    """

    def __init__(
        self,
        pool: Pool,
        state: State,
        daily_repo: DailyRepository,
        users_repo: UsersRepository,
        stats_repo: StatsRepository,
    ) -> None:
        """Initialize service.

        Args:
            pool: AsyncPG connection pool.
            state: Application state.
            daily_repo: Daily repository instance.
            users_repo: Users repository instance.
            stats_repo: Stats repository instance.
        """
        super().__init__(pool, state)
        self._daily_repo = daily_repo
        self._progression = ProgressionApplier(users_repo, stats_repo)

    async def _assemble(self, dailies: list[dict], *, conn: Connection | None = None) -> list[DailyChallengeResponse]:
        if not dailies:
            return []
        daily_ids = [d["id"] for d in dailies]
        challenges: dict[int, list[dict]] = defaultdict(list)
        for challenge in await self._daily_repo.fetch_challenges(daily_ids, conn=conn):
            challenges[challenge["daily_id"]].append(challenge)
        rewards: dict[int, list[dict]] = defaultdict(list)
        for reward in await self._daily_repo.fetch_daily_rewards(daily_ids, conn=conn):
            rewards[reward["daily_id"]].append(reward)
        assembled = [{**d, "challenges": challenges[d["id"]], "rewards": rewards[d["id"]]} for d in dailies]
        return msgspec.convert(assembled, list[DailyChallengeResponse])

    async def _require_owned_daily(self, daily_id: int, user_id: int) -> None:
        if not await self._daily_repo.check_daily_owner(daily_id, user_id):
            raise EntityNotFoundError("DailyChallenge", daily_id)

    async def _lock_unclaimed_daily(self, daily_id: int, user_id: int, *, conn: Connection) -> None:
        owner = await self._daily_repo.lock_daily_status(daily_id, conn=conn)
        if not owner or owner["user_id"] != user_id:
            raise EntityNotFoundError("DailyChallenge", daily_id)
        if owner["paid_out"]:
            raise RewardLockedError()

    # ===== Daily challenges =====

    async def create_daily(self, user_id: int, data: DailyChallengeCreateRequest) -> DailyChallengeResponse:
        """Create a daily challenge with its challenges and rewards in one transaction.

        Args:
            user_id: Owner.
            data: Payload. The day defaults to today (UTC).

        Returns:
            The created daily challenge tree.

        Raises:
            ProgressionValidationError: If a challenge name is blank.
            InvalidRewardError: If a reward amount is negative.
            UserNotFoundError: If the user does not exist.
        """
        names = [_require_name(c.name) for c in data.challenges]
        for reward in data.rewards:
            _validate_amount(reward.amount)

        async with self._pool.acquire() as conn, conn.transaction():
            try:
                daily = await self._daily_repo.create_daily(user_id, data.date or utc_today(), conn=conn)
            except ForeignKeyViolationError as e:
                raise UserNotFoundError(user_id) from e
            for name, challenge in zip(names, data.challenges):
                await self._daily_repo.create_challenge(
                    daily["id"],
                    name,
                    challenge.description,
                    challenge.skill,
                    conn=conn,
                )
            for reward in data.rewards:
                await self._daily_repo.create_daily_reward(daily["id"], reward.type, reward.amount, conn=conn)
            (response,) = await self._assemble([daily], conn=conn)

        log.info("User %s created daily challenge %s for %s", user_id, daily["id"], daily["date"])
        return response

    async def list_dailies(self, user_id: int) -> list[DailyChallengeResponse]:
        """List the daily challenges of a user, newest day first."""
        return await self._assemble(await self._daily_repo.fetch_user_dailies(user_id))

    async def get_today(self, user_id: int) -> DailyChallengeResponse:
        """Get the daily challenge of a user for today (UTC).

        Raises:
            EntityNotFoundError: If the user has no daily challenge today.
        """
        dailies = await self._daily_repo.fetch_user_dailies(user_id, date=utc_today())
        if not dailies:
            raise EntityNotFoundError("DailyChallenge", "today")
        (response,) = await self._assemble(dailies[:1])
        return response

    async def get_daily(self, daily_id: int, user_id: int) -> DailyChallengeResponse:
        """Get a daily challenge owned by the user."""
        daily = await self._daily_repo.fetch_daily(daily_id)
        if not daily or daily["user_id"] != user_id:
            raise EntityNotFoundError("DailyChallenge", daily_id)
        (response,) = await self._assemble([daily])
        return response

    async def update_daily(
        self,
        daily_id: int,
        user_id: int,
        data: DailyChallengeUpdateRequest,
    ) -> DailyChallengeResponse:
        """Move a daily challenge to another day."""
        daily = await self._daily_repo.update_daily_date(daily_id, user_id, data.date)
        if not daily:
            raise EntityNotFoundError("DailyChallenge", daily_id)
        (response,) = await self._assemble([daily])
        return response

    async def delete_daily(self, daily_id: int, user_id: int) -> None:
        """Delete a daily challenge with its challenges, rewards and history."""
        if not await self._daily_repo.delete_daily(daily_id, user_id):
            raise EntityNotFoundError("DailyChallenge", daily_id)

    @retry_on_conflict()
    async def claim_daily(self, daily_id: int, user_id: int) -> DailyClaimResponse:
        """Collect the rewards of a daily challenge whose challenges are all completed.

        A daily challenge without challenges can be claimed right away.

        Args:
            daily_id: Daily challenge to claim.
            user_id: Authenticated owner.

        Returns:
            The claimed daily challenge, the owner's balances and the new history entry.

        Raises:
            EntityNotFoundError: If the daily challenge is missing or owned by someone else.
            AlreadyClaimedError: If the rewards were already claimed.
            NotYetCompletedError: If a challenge is still pending.
        """
        async with self._pool.acquire() as conn, conn.transaction():
            locked = await self._daily_repo.lock_daily_for_claim(daily_id, user_id, conn=conn)
            if locked is None:
                raise EntityNotFoundError("DailyChallenge", daily_id)
            if locked["claimed_date"] is not None:
                raise AlreadyClaimedError("DailyChallenge", daily_id)

            # Later statements see every challenge committed before the lock was granted.
            status = await self._daily_repo.fetch_daily_status(daily_id, user_id, conn=conn)
            if status is None or status["has_pending"]:
                raise NotYetCompletedError("DailyChallenge", daily_id)
            daily = await self._daily_repo.mark_daily_claimed(daily_id, user_id, conn=conn)
            if daily is None:
                raise NotYetCompletedError("DailyChallenge", daily_id)

            rewards = await self._daily_repo.fetch_daily_rewards([daily_id], conn=conn)
            applied = await self._progression.apply(user_id, resolve_rewards(rewards), conn=conn)
            history = await self._daily_repo.create_history(daily_id, daily["claimed_date"], True, conn=conn)
            (response,) = await self._assemble([daily], conn=conn)

        log.info("User %s claimed daily challenge %s (%d rewards)", user_id, daily_id, len(rewards))
        return DailyClaimResponse(
            daily_challenge=response,
            progress=applied.progress,
            history=msgspec.convert(history, ChallengeHistoryResponse),
        )

    # ===== Challenges =====

    async def create_challenge(self, user_id: int, data: ChallengeCreateRequest) -> ChallengeResponse:
        """Add a pending challenge to an unclaimed daily challenge of the user.

        Raises:
            EntityNotFoundError: If the daily challenge is missing or owned by someone else.
            RewardLockedError: If the day was already claimed.
        """
        name = _require_name(data.name)
        async with self._pool.acquire() as conn, conn.transaction():
            await self._lock_unclaimed_daily(data.daily_id, user_id, conn=conn)
            challenge = await self._daily_repo.create_challenge(
                data.daily_id,
                name,
                data.description,
                data.skill,
                conn=conn,
            )
        return msgspec.convert(challenge, ChallengeResponse)

    async def list_challenges(self, daily_id: int, user_id: int) -> list[ChallengeResponse]:
        """List the challenges of a daily challenge of the user."""
        await self._require_owned_daily(daily_id, user_id)
        return msgspec.convert(await self._daily_repo.fetch_challenges([daily_id]), list[ChallengeResponse])

    async def get_challenge(self, challenge_id: int, user_id: int) -> ChallengeResponse:
        """Get a challenge whose day belongs to the user."""
        challenge = await self._daily_repo.fetch_challenge(challenge_id)
        if not challenge or not await self._daily_repo.check_daily_owner(challenge["daily_id"], user_id):
            raise EntityNotFoundError("Challenge", challenge_id)
        return msgspec.convert(challenge, ChallengeResponse)

    async def update_challenge(
        self,
        challenge_id: int,
        user_id: int,
        data: ChallengeUpdateRequest,
    ) -> ChallengeResponse:
        """Update descriptive fields of a challenge. Completion is never changed here."""
        fields = self.supplied_fields(data)
        if "name" in fields:
            fields["name"] = _require_name(fields["name"])
        challenge = await self._daily_repo.update_challenge(challenge_id, user_id, fields)
        if not challenge:
            raise EntityNotFoundError("Challenge", challenge_id)
        return msgspec.convert(challenge, ChallengeResponse)

    async def delete_challenge(self, challenge_id: int, user_id: int) -> None:
        """Delete a challenge whose day belongs to the user."""
        if not await self._daily_repo.delete_challenge(challenge_id, user_id):
            raise EntityNotFoundError("Challenge", challenge_id)

    @retry_on_conflict()
    async def complete_challenge(self, challenge_id: int, user_id: int) -> ChallengeCompletionResponse:
        """Complete a challenge and add its points to the matching skill stat.

        Args:
            challenge_id: Challenge to complete.
            user_id: Authenticated owner.

        Returns:
            The completed challenge and the stat it raised, if it has a skill.

        Raises:
            EntityNotFoundError: If the challenge is missing or owned by someone else.
            AlreadyCompletedError: If the challenge was already completed.
        """
        async with self._pool.acquire() as conn, conn.transaction():
            challenge = await self._daily_repo.mark_challenge_completed(challenge_id, user_id, conn=conn)
            if challenge is None:
                status = await self._daily_repo.fetch_challenge_status(challenge_id, user_id, conn=conn)
                if status is None:
                    raise EntityNotFoundError("Challenge", challenge_id)
                raise AlreadyCompletedError("Challenge", challenge_id)

            effects = challenge_completion_effects(challenge["skill"])
            applied = await self._progression.apply(user_id, effects, conn=conn)

        log.info("User %s completed challenge %s", user_id, challenge_id)
        return ChallengeCompletionResponse(
            challenge=msgspec.convert(challenge, ChallengeResponse),
            stat=applied.stats[0] if applied.stats else None,
        )

    # ===== Daily rewards =====

    async def create_daily_reward(self, user_id: int, data: DailyRewardCreateRequest) -> DailyRewardResponse:
        """Attach a reward to an unclaimed daily challenge of the user.

        Raises:
            EntityNotFoundError: If the daily challenge is missing or owned by someone else.
            RewardLockedError: If the daily challenge was already claimed.
        """
        _validate_amount(data.amount)
        async with self._pool.acquire() as conn, conn.transaction():
            await self._lock_unclaimed_daily(data.daily_id, user_id, conn=conn)
            reward = await self._daily_repo.create_daily_reward(data.daily_id, data.type, data.amount, conn=conn)
        return msgspec.convert(reward, DailyRewardResponse)

    async def list_daily_rewards(self, daily_id: int, user_id: int) -> list[DailyRewardResponse]:
        """List the rewards of a daily challenge of the user."""
        await self._require_owned_daily(daily_id, user_id)
        return msgspec.convert(await self._daily_repo.fetch_daily_rewards([daily_id]), list[DailyRewardResponse])

    async def get_daily_reward(self, reward_id: int, user_id: int) -> DailyRewardResponse:
        """Get a daily reward whose day belongs to the user."""
        reward = await self._daily_repo.fetch_daily_reward(reward_id)
        if not reward or not await self._daily_repo.check_daily_owner(reward["daily_id"], user_id):
            raise EntityNotFoundError("DailyReward", reward_id)
        return msgspec.convert(reward, DailyRewardResponse)

    async def update_daily_reward(
        self,
        reward_id: int,
        user_id: int,
        data: DailyRewardUpdateRequest,
    ) -> DailyRewardResponse:
        """Edit a reward of an unclaimed daily challenge."""
        fields = self.supplied_fields(data)
        if "amount" in fields:
            _validate_amount(fields["amount"])
        async with self._pool.acquire() as conn, conn.transaction():
            reward = await self._daily_repo.fetch_daily_reward(reward_id, conn=conn)
            if not reward:
                raise EntityNotFoundError("DailyReward", reward_id)
            try:
                await self._lock_unclaimed_daily(reward["daily_id"], user_id, conn=conn)
            except EntityNotFoundError as e:
                raise EntityNotFoundError("DailyReward", reward_id) from e
            updated = await self._daily_repo.update_daily_reward(reward_id, fields, conn=conn)
        return msgspec.convert(updated, DailyRewardResponse)

    async def delete_daily_reward(self, reward_id: int, user_id: int) -> None:
        """Delete a reward of an unclaimed daily challenge."""
        async with self._pool.acquire() as conn, conn.transaction():
            reward = await self._daily_repo.fetch_daily_reward(reward_id, conn=conn)
            if not reward:
                raise EntityNotFoundError("DailyReward", reward_id)
            try:
                await self._lock_unclaimed_daily(reward["daily_id"], user_id, conn=conn)
            except EntityNotFoundError as e:
                raise EntityNotFoundError("DailyReward", reward_id) from e
            await self._daily_repo.delete_daily_reward(reward_id, conn=conn)

    # ===== History =====

    async def create_history(self, user_id: int, data: ChallengeHistoryCreateRequest) -> ChallengeHistoryResponse:
        """Record a history entry for a daily challenge of the user."""
        await self._require_owned_daily(data.daily_id, user_id)
        history = await self._daily_repo.create_history(data.daily_id, data.date, data.rewards_claimed)
        return msgspec.convert(history, ChallengeHistoryResponse)

    async def list_daily_history(self, daily_id: int, user_id: int) -> list[ChallengeHistoryResponse]:
        """List the history of a daily challenge of the user, newest first."""
        await self._require_owned_daily(daily_id, user_id)
        rows = await self._daily_repo.fetch_daily_history(daily_id)
        return msgspec.convert(rows, list[ChallengeHistoryResponse])

    async def list_user_history(self, user_id: int) -> list[ChallengeHistoryResponse]:
        """List the history across every daily challenge of a user, newest first."""
        rows = await self._daily_repo.fetch_user_history(user_id)
        return msgspec.convert(rows, list[ChallengeHistoryResponse])

    async def get_history(self, history_id: int, user_id: int) -> ChallengeHistoryResponse:
        """Get a history entry whose day belongs to the user."""
        history = await self._daily_repo.fetch_history(history_id)
        if not history or history["user_id"] != user_id:
            raise EntityNotFoundError("ChallengeHistory", history_id)
        return msgspec.convert(history, ChallengeHistoryResponse)

    async def update_history(
        self,
        history_id: int,
        user_id: int,
        data: ChallengeHistoryUpdateRequest,
    ) -> ChallengeHistoryResponse:
        """Edit a history entry whose day belongs to the user."""
        history = await self._daily_repo.update_history(history_id, user_id, self.supplied_fields(data))
        if not history:
            raise EntityNotFoundError("ChallengeHistory", history_id)
        return msgspec.convert(history, ChallengeHistoryResponse)

    async def delete_history(self, history_id: int, user_id: int) -> None:
        """Delete a history entry whose day belongs to the user."""
        if not await self._daily_repo.delete_history(history_id, user_id):
            raise EntityNotFoundError("ChallengeHistory", history_id)


async def provide_daily_service(state: State) -> DailyService:
    """Litestar DI provider for daily service.

    Args:
        state: Application state.

    Returns:
        DailyService instance.
    """
    return DailyService(
        pool=state.db_pool,
        state=state,
        daily_repo=DailyRepository(state.db_pool),
        users_repo=UsersRepository(state.db_pool),
        stats_repo=StatsRepository(state.db_pool),
    )
