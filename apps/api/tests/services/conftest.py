"""Shared fixtures for service unit tests.

This module provides mock fixtures for repositories, pools, and state objects
used across service unit tests. All repository fixtures use AsyncMock to handle
async/await automatically.
"""

import datetime as dt

import pytest
from asyncpg import Pool
from litestar.datastructures import State

from repository.auth_repository import AuthRepository
from repository.daily_repository import DailyRepository
from repository.quests_repository import QuestsRepository
from repository.stats_repository import StatsRepository
from repository.store_repository import StoreRepository
from repository.tasks_repository import TasksRepository
from repository.users_repository import UsersRepository

NOW = dt.datetime(2024, 5, 1, 12, 0, tzinfo=dt.timezone.utc)


@pytest.fixture
def mock_conn(mocker):
    """Connection handed out by the mock pool, with transaction() configured."""
    conn = mocker.MagicMock()

    async def mock_transaction_aenter(self):
        return None

    async def mock_transaction_aexit(self, exc_type, exc_val, exc_tb):
        return None

    transaction_cm = mocker.MagicMock()
    transaction_cm.__aenter__ = mock_transaction_aenter
    transaction_cm.__aexit__ = mock_transaction_aexit
    conn.transaction.return_value = transaction_cm
    return conn


@pytest.fixture
def mock_pool(mocker, mock_conn):
    """Mock AsyncPG connection pool.

    Returns:
        MagicMock pool with acquire() context manager configured.
    """
    pool = mocker.MagicMock(spec=Pool)

    async def mock_acquire_aenter(self):
        return mock_conn

    async def mock_acquire_aexit(self, exc_type, exc_val, exc_tb):
        return None

    acquire_cm = mocker.MagicMock()
    acquire_cm.__aenter__ = mock_acquire_aenter
    acquire_cm.__aexit__ = mock_acquire_aexit
    pool.acquire.return_value = acquire_cm

    return pool


@pytest.fixture
def mock_state(mocker):
    """Mock Litestar State."""
    return mocker.Mock(spec=State)


# Repository Fixtures


@pytest.fixture
def mock_auth_repo(mocker):
    """Mock AuthRepository."""
    return mocker.AsyncMock(spec=AuthRepository)


@pytest.fixture
def mock_daily_repo(mocker):
    """Mock DailyRepository."""
    return mocker.AsyncMock(spec=DailyRepository)


@pytest.fixture
def mock_quests_repo(mocker):
    """Mock QuestsRepository."""
    return mocker.AsyncMock(spec=QuestsRepository)


@pytest.fixture
def mock_stats_repo(mocker):
    """Mock StatsRepository."""
    return mocker.AsyncMock(spec=StatsRepository)


@pytest.fixture
def mock_store_repo(mocker):
    """Mock StoreRepository."""
    return mocker.AsyncMock(spec=StoreRepository)


@pytest.fixture
def mock_tasks_repo(mocker):
    """Mock TasksRepository."""
    return mocker.AsyncMock(spec=TasksRepository)


@pytest.fixture
def mock_users_repo(mocker):
    """Mock UsersRepository."""
    return mocker.AsyncMock(spec=UsersRepository)


# Row builders


@pytest.fixture
def progress_row():
    """Build a progression row as returned by UsersRepository."""

    def _row(user_id: int = 1, *, coins: int = 1000, exp: int = 50, health: int = 100, level: int = 1) -> dict:
        return {"id": user_id, "coins": coins, "exp": exp, "health": health, "level": level}

    return _row


@pytest.fixture
def stat_row():
    """Build a stat row as returned by StatsRepository."""

    def _row(skill: str = "focus", value: int = 10, *, user_id: int = 1, stat_id: int = 1) -> dict:
        return {
            "id": stat_id,
            "user_id": user_id,
            "skill": skill,
            "value": value,
            "level": value // 100 + 1,
            "updated_at": NOW,
        }

    return _row
